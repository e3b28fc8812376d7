"""Debate partner: short persona-driven replies on a topic."""

import logging

from nexus_learn.agents.errors import UpstreamError, with_deadline
from nexus_learn.agents.llm_client import LLMClient, to_contents
from nexus_learn.agents.prompts.debate import build_system_prompt
from nexus_learn.models.debate import PERSONA_LABELS, ChatMessage, DebatePersona

logger = logging.getLogger(__name__)

CONNECTION_LOST_REPLY = "Connection lost, please retry."
THINKING_REPLY = "(thinking...)"


def opening_message(topic: str, persona: DebatePersona) -> str:
    return (
        f'Hello! We are going to discuss "{topic}". '
        f"I am your {PERSONA_LABELS[persona]}. Are you ready?"
    )


class DebatePartner:
    """Generates debate replies; never raises on upstream trouble."""

    def __init__(
        self,
        llm_client: LLMClient,
        *,
        timeout: float = 15.0,
        language: str = "English",
    ) -> None:
        self._llm = llm_client
        self.timeout = timeout
        self._language = language

    async def reply(
        self,
        history: list[ChatMessage],
        topic: str,
        persona: DebatePersona,
    ) -> str:
        contents = to_contents([(m.role.value, m.text) for m in history])
        try:
            text = await with_deadline(
                self._llm.generate_text(
                    contents=contents,
                    system_prompt=build_system_prompt(topic, persona, self._language),
                    allow_empty=True,
                ),
                self.timeout,
                "debate reply",
            )
        except UpstreamError as exc:
            logger.warning("Debate reply failed: %s", exc)
            return CONNECTION_LOST_REPLY
        return text.strip() or THINKING_REPLY
