"""Interactive story models: role, scene, interactables, story state."""

from enum import StrEnum

from pydantic import Field, field_validator

from nexus_learn.models.common import NexusBase


class InteractableType(StrEnum):
    """What touching a hotspot does."""

    EXAMINE = "EXAMINE"
    PICKUP = "PICKUP"      # adds the item label to the inventory
    TRANSITION = "TRANSITION"


class StoryInteractable(NexusBase):
    """A clickable hotspot in the current story scene."""

    id: str = Field(..., min_length=1)
    label: str
    type: InteractableType
    description: str


class StoryRole(NexusBase):
    """The player character generated for a theme."""

    role: str = Field(..., min_length=1)
    visual_prompt: str = Field(..., min_length=1)


class StoryScene(NexusBase):
    """One generated story beat."""

    narrative: str = Field(..., min_length=1)
    visual_prompt: str = ""
    interactables: list[StoryInteractable] = Field(default_factory=list)

    @field_validator("interactables", mode="before")
    @classmethod
    def _at_most_three(cls, value: object) -> object:
        if isinstance(value, list):
            return value[:3]
        return value


class StoryState(NexusBase):
    """In-memory state of one interactive story, owned by StoryOrchestrator."""

    theme: str
    narrative: str = ""
    visual_prompt: str = ""
    interactables: list[StoryInteractable] = Field(default_factory=list)
    inventory: list[str] = Field(default_factory=list)
    bg_image: str | None = None
    user_role: str = ""
    character_image: str | None = None
    history: list[str] = Field(default_factory=list)
    is_loading: bool = True
    is_image_loading: bool = False
    init_error: bool = False
