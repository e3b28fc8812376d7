"""Turn generation: history + context + action -> TurnResult.

The upstream is a flaky JSON-emitting model. This module is the decode
boundary: fences are stripped, the payload is parsed once, and a parse
failure becomes a labelled fallback turn. Timeouts and upstream errors are
raised as UpstreamTimeout / UpstreamFailure for the orchestrator to recover.
"""

import logging
from abc import ABC, abstractmethod

from nexus_learn.agents.errors import (
    MalformedResponse,
    UpstreamError,
    UpstreamFailure,
    with_deadline,
)
from nexus_learn.agents.llm_client import LLMClient, parse_structured, to_contents
from nexus_learn.agents.prompts.simulation import (
    TURN_RESPONSE_SCHEMA,
    build_system_prompt,
    build_user_turn,
)
from nexus_learn.models.common import ScenarioKind
from nexus_learn.models.simulation import HistoryEntry, TurnResult

logger = logging.getLogger(__name__)

PARSE_FALLBACK_DESCRIPTION = (
    "The simulation is recalibrating its data stream... (parse error)"
)
PARSE_FALLBACK_OPTION = "Continue"


def parse_fallback_turn() -> TurnResult:
    """Stable turn substituted when the model's output cannot be decoded."""
    return TurnResult(
        description=PARSE_FALLBACK_DESCRIPTION,
        options=[PARSE_FALLBACK_OPTION],
        is_ended=False,
        should_update_visuals=False,
    )


class TurnGenerator(ABC):
    """Produces the next narrative turn.

    Subclasses implement ``_request`` and return the raw model text; the
    deadline, decoding and fallback policy live here so every generator
    obeys them.
    """

    def __init__(self, *, timeout: float = 15.0) -> None:
        self.timeout = timeout

    async def generate(
        self,
        history: list[HistoryEntry],
        context: str,
        action: str,
        *,
        kind: ScenarioKind = ScenarioKind.CUSTOM,
    ) -> TurnResult:
        """Generate one turn.

        Raises:
            UpstreamTimeout: the deadline passed.
            UpstreamFailure: the upstream errored or returned nothing usable.
        """
        try:
            raw = await with_deadline(
                self._request(list(history), context, action, kind),
                self.timeout,
                "turn generation",
            )
        except UpstreamError:
            raise
        except Exception as exc:
            logger.exception("Turn generation failed unexpectedly")
            raise UpstreamFailure(str(exc)) from exc

        if not raw or not raw.strip():
            raise UpstreamFailure("Empty turn payload")

        try:
            return parse_structured(raw, TurnResult)
        except MalformedResponse as exc:
            logger.warning("Malformed turn payload, using fallback turn: %s", exc)
            return parse_fallback_turn()

    @abstractmethod
    async def _request(
        self,
        history: list[HistoryEntry],
        context: str,
        action: str,
        kind: ScenarioKind,
    ) -> str:
        """Return the raw model output for one turn."""
        ...


class LLMTurnGenerator(TurnGenerator):
    """Turn generator backed by the Gemini text model."""

    def __init__(
        self,
        llm_client: LLMClient,
        *,
        timeout: float = 15.0,
        language: str = "English",
    ) -> None:
        super().__init__(timeout=timeout)
        self._llm = llm_client
        self._language = language

    async def _request(
        self,
        history: list[HistoryEntry],
        context: str,
        action: str,
        kind: ScenarioKind,
    ) -> str:
        turns = [(entry.role.value, entry.text) for entry in history]
        turns.append(("user", build_user_turn(action)))
        return await self._llm.generate_text(
            contents=to_contents(turns),
            system_prompt=build_system_prompt(kind, context, self._language),
            response_schema=TURN_RESPONSE_SCHEMA,
        )
