"""Simulation run models: transcript, turn results, scenes, reports, run state.

The generative model speaks camelCase JSON (``isEnded``,
``shouldUpdateVisuals``, ``keyLearnings``); the alias generator on
NexusBase maps it onto the snake_case fields below.

Run lifecycle:
INIT -> AWAITING_VISUAL_CHOICE | GENERATING_FIRST_VISUAL -> READY
     -> GENERATING_TURN -> (GENERATING_VISUAL) -> READY -> ... -> ENDED
"""

from enum import StrEnum
from typing import Literal

from pydantic import ConfigDict, Field, computed_field, field_validator, model_validator

from nexus_learn.models.common import (
    NexusBase,
    Role,
    ScenarioKind,
    UTCTimestamp,
    VisualStyle,
    new_uuid7,
    utc_now,
)

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class SessionPhase(StrEnum):
    """Where a run sits in the orchestrator state machine."""

    INIT = "INIT"
    AWAITING_VISUAL_CHOICE = "AWAITING_VISUAL_CHOICE"
    GENERATING_FIRST_VISUAL = "GENERATING_FIRST_VISUAL"
    READY = "READY"
    GENERATING_TURN = "GENERATING_TURN"
    GENERATING_VISUAL = "GENERATING_VISUAL"
    ENDED = "ENDED"


class SceneObjectType(StrEnum):
    """Primitive kinds a procedural scene is built from.

    BEAKER and FLASK are containers that may hold liquid; CUBE is the
    generic solid.
    """

    BEAKER = "BEAKER"
    FLASK = "FLASK"
    CUBE = "CUBE"
    SPHERE = "SPHERE"
    CYLINDER = "CYLINDER"
    PLANE = "PLANE"


# ---------------------------------------------------------------------------
# Transcript and report
# ---------------------------------------------------------------------------


class HistoryEntry(NexusBase):
    """One transcript line. Immutable once appended."""

    model_config = ConfigDict(frozen=True)

    role: Role
    text: str


class AnalysisReport(NexusBase):
    """End-of-run evaluation produced by the model."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    evaluation: str = ""
    key_learnings: list[str] = Field(default_factory=list)
    suggestions: str = ""

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, value: object) -> object:
        """Models occasionally overshoot the scale; clamp instead of rejecting."""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return max(0, min(100, round(value)))
        return value


class TurnResult(NexusBase):
    """Structured output of one narrative turn."""

    description: str = Field(..., min_length=1)
    options: list[str] = Field(default_factory=list)
    is_ended: bool = False
    should_update_visuals: bool = False
    report: AnalysisReport | None = None

    @field_validator("options", mode="before")
    @classmethod
    def _clean_options(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, list):
            return [o.strip() for o in value if isinstance(o, str) and o.strip()]
        return value

    @model_validator(mode="after")
    def _no_options_once_ended(self) -> "TurnResult":
        """Options only describe the next action of a live run."""
        if self.is_ended:
            self.options = []
        return self


# ---------------------------------------------------------------------------
# Procedural scene
# ---------------------------------------------------------------------------

Vector3 = tuple[float, float, float]


class SceneObject(NexusBase):
    """A single primitive in a procedural 3D scene."""

    id: str = Field(..., min_length=1)
    type: SceneObjectType
    position: Vector3
    scale: Vector3 = (1.0, 1.0, 1.0)
    color: str | None = None
    label: str | None = None
    liquid_color: str | None = None
    liquid_level: float | None = Field(default=None, ge=0.0, le=1.0)
    roughness: float | None = None
    metalness: float | None = None

    @field_validator("scale", mode="before")
    @classmethod
    def _default_scale(cls, value: object) -> object:
        return (1.0, 1.0, 1.0) if value is None else value


class SceneConfig(NexusBase):
    """Declarative description of a procedural scene."""

    objects: list[SceneObject] = Field(default_factory=list)
    lighting_color: str | None = None
    environment: Literal["LAB", "SPACE", "DEFAULT"] = "DEFAULT"

    @model_validator(mode="after")
    def _unique_ids(self) -> "SceneConfig":
        seen: set[str] = set()
        for obj in self.objects:
            if obj.id in seen:
                raise ValueError(f"Duplicate scene object id: {obj.id}")
            seen.add(obj.id)
        return self

    def has_ground(self) -> bool:
        return any(o.type == SceneObjectType.PLANE for o in self.objects)

    def with_ground(self) -> "SceneConfig":
        """Return this scene with a ground plane added if it has none."""
        if self.has_ground():
            return self
        ground_id = "ground"
        taken = {o.id for o in self.objects}
        while ground_id in taken:
            ground_id = f"_{ground_id}"
        ground = SceneObject(
            id=ground_id,
            type=SceneObjectType.PLANE,
            position=(0.0, 0.0, 0.0),
            scale=(10.0, 1.0, 10.0),
            color="#3f3f46",
        )
        return self.model_copy(update={"objects": [ground, *self.objects]})


# ---------------------------------------------------------------------------
# Archive record
# ---------------------------------------------------------------------------


class SavedRecord(NexusBase):
    """A completed run, as handed to the archive. Never mutated."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(new_uuid7()))
    timestamp: UTCTimestamp = Field(default_factory=utc_now)
    scenario_kind: ScenarioKind
    topic: str
    report: AnalysisReport
    transcript: list[HistoryEntry] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Run state
# ---------------------------------------------------------------------------


class RunState(NexusBase):
    """In-memory state of one simulation run.

    Owned and mutated only by TurnOrchestrator; everything else reads
    copies of it.
    """

    scenario_kind: ScenarioKind
    topic: str = ""
    context: str = ""
    phase: SessionPhase = SessionPhase.INIT
    turn: int = 0

    description: str = "Initializing the simulation environment..."
    history: list[HistoryEntry] = Field(default_factory=list)
    options: list[str] = Field(default_factory=list)
    retry_action: str | None = None

    is_loading: bool = True
    is_image_loading: bool = False
    waiting_for_visual_choice: bool = False
    visual_style: VisualStyle | None = None
    is_ended: bool = False

    last_image: str | None = None
    last_scene_config: SceneConfig | None = None
    report: AnalysisReport | None = None
    report_persisted: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_busy(self) -> bool:
        """Whether input controls should be disabled.

        A pending visual alone does not block input, except for the final
        visual of an ended run, which must settle before the report shows.
        """
        return (
            self.is_loading
            or self.waiting_for_visual_choice
            or (self.is_ended and self.is_image_loading)
        )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def report_visible(self) -> bool:
        """The report is surfaced only after the final visual settled."""
        return self.is_ended and self.report is not None and not self.is_image_loading
