"""Debate partner models."""

from enum import StrEnum

from pydantic import Field

from nexus_learn.models.common import NexusBase, Role


class DebatePersona(StrEnum):
    """Conversational stance the debate partner takes."""

    SKEPTIC = "SKEPTIC"
    OPTIMIST = "OPTIMIST"
    COLLABORATOR = "COLLABORATOR"
    SOCRATIC = "SOCRATIC"


PERSONA_LABELS: dict[DebatePersona, str] = {
    DebatePersona.SKEPTIC: "Skeptic",
    DebatePersona.OPTIMIST: "Optimist",
    DebatePersona.COLLABORATOR: "Collaborator",
    DebatePersona.SOCRATIC: "Socratic tutor",
}


class ChatMessage(NexusBase):
    """One line of a debate conversation."""

    role: Role
    text: str


class DebateConfig(NexusBase):
    topic: str = Field(..., min_length=1)
    persona: DebatePersona = DebatePersona.SKEPTIC
