"""Shared types, enums, and base models used across Nexus Learn domain models."""

from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from uuid_extensions import uuid7


def utc_now() -> datetime:
    """Return the current UTC timestamp (timezone-aware)."""
    return datetime.now(tz=timezone.utc)


def new_uuid7() -> UUID:
    """Generate a new time-sortable UUID v7."""
    return uuid7()


# --- Reusable annotated types ---

UTCTimestamp = Annotated[
    datetime, Field(description="UTC timezone-aware timestamp.")
]


# --- Shared enums ---


class ScenarioKind(StrEnum):
    """Subject a simulation run is about."""

    HISTORY = "HISTORY"
    CHEMISTRY = "CHEMISTRY"
    PHYSICS = "PHYSICS"
    LITERATURE = "LITERATURE"
    CODING = "CODING"
    CUSTOM = "CUSTOM"


class VisualStyle(StrEnum):
    """Visualization strategy for a run.

    ARTISTIC renders generated pictures, SCHEMATIC renders a procedural
    3D scene from a SceneConfig.
    """

    ARTISTIC = "ARTISTIC"
    SCHEMATIC = "SCHEMATIC"


class Role(StrEnum):
    """Author of a transcript entry."""

    USER = "user"
    MODEL = "model"


# --- Base model ---


class NexusBase(BaseModel):
    """Base model with common configuration for all Nexus Learn Pydantic models.

    Fields are snake_case in Python and camelCase on the wire, which is what
    the generative model emits and what the UI consumes.
    """

    model_config = {
        "populate_by_name": True,
        "alias_generator": to_camel,
        "protected_namespaces": (),
    }
