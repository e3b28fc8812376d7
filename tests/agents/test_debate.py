"""Tests for the debate partner."""

import asyncio

import pytest

from nexus_learn.agents.debate import (
    CONNECTION_LOST_REPLY,
    THINKING_REPLY,
    DebatePartner,
    opening_message,
)
from nexus_learn.agents.errors import UpstreamFailure
from nexus_learn.agents.prompts.debate import PERSONA_INSTRUCTIONS
from nexus_learn.models.common import Role
from nexus_learn.models.debate import PERSONA_LABELS, ChatMessage, DebatePersona
from tests.fakes import StubLLMClient

HISTORY = [
    ChatMessage(role=Role.MODEL, text="Shall we begin?"),
    ChatMessage(role=Role.USER, text="Nuclear power is the safest energy source."),
]


class TestDebatePartner:

    async def test_reply_passes_history_and_persona(self) -> None:
        llm = StubLLMClient("  Safest by which metric?  ")
        partner = DebatePartner(llm, language="English")

        reply = await partner.reply(HISTORY, "Nuclear power", DebatePersona.SOCRATIC)

        assert reply == "Safest by which metric?"
        request = llm.text_requests[0]
        assert [c["role"] for c in request["contents"]] == ["model", "user"]
        assert PERSONA_INSTRUCTIONS[DebatePersona.SOCRATIC] in request["system_prompt"]
        assert "Nuclear power" in request["system_prompt"]
        assert request["allow_empty"] is True

    async def test_empty_reply_is_thinking(self) -> None:
        partner = DebatePartner(StubLLMClient("   "))
        assert await partner.reply(HISTORY, "Energy", DebatePersona.OPTIMIST) == THINKING_REPLY

    async def test_upstream_failure_is_connection_lost(self) -> None:
        partner = DebatePartner(StubLLMClient(UpstreamFailure("503")))
        assert await partner.reply(HISTORY, "Energy", DebatePersona.SKEPTIC) == CONNECTION_LOST_REPLY

    async def test_timeout_is_connection_lost(self) -> None:
        class SlowClient(StubLLMClient):
            async def generate_text(self, **kwargs):
                await asyncio.sleep(0.2)
                return "too late"

        partner = DebatePartner(SlowClient(), timeout=0.01)
        assert await partner.reply(HISTORY, "Energy", DebatePersona.SKEPTIC) == CONNECTION_LOST_REPLY


class TestOpeningMessage:

    @pytest.mark.parametrize("persona", list(DebatePersona))
    def test_names_topic_and_persona(self, persona: DebatePersona) -> None:
        text = opening_message("Universal basic income", persona)
        assert "Universal basic income" in text
        assert PERSONA_LABELS[persona] in text

    def test_every_persona_has_instructions(self) -> None:
        assert set(PERSONA_INSTRUCTIONS) == set(DebatePersona)
