"""Simulation turn orchestrator: the per-run state machine.

INIT -> AWAITING_VISUAL_CHOICE | GENERATING_FIRST_VISUAL -> READY
     -> GENERATING_TURN -> (GENERATING_VISUAL) -> READY -> ... -> ENDED

Rules:
- Every RunState mutation happens inside a transition method on this class.
- Upstream timeouts, failures and malformed payloads are recovered here;
  nothing escapes a transition. Rejected transitions are silent no-ops.
- Visual generation runs as a background task after the text result is
  known. Each request is tagged with a sequence number and its result is
  applied only if no newer visual request was issued since.
- The report is archived at most once per run.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from nexus_learn.agents.errors import UpstreamError
from nexus_learn.agents.prompts.simulation import START_ACTION
from nexus_learn.agents.turn_generator import TurnGenerator
from nexus_learn.agents.visual_generator import VisualGenerator
from nexus_learn.agents.visual_mode import initial_visual_style, is_scientific
from nexus_learn.models.common import Role, ScenarioKind, VisualStyle
from nexus_learn.models.simulation import (
    AnalysisReport,
    HistoryEntry,
    RunState,
    SavedRecord,
    SceneConfig,
    SessionPhase,
)
from nexus_learn.repositories.base import ArchiveStore

logger = logging.getLogger(__name__)

INIT_FAILED_DESCRIPTION = "Initialization failed. Please retry."
CONNECTION_UNSTABLE_DESCRIPTION = (
    "The simulation engine connection is unstable and the outcome could not "
    "be determined. Try a different action."
)
TOPIC_PREVIEW_LENGTH = 50
UNKNOWN_TOPIC = "Unknown simulation"


class TurnOrchestrator:
    """Drives one simulation run from initialize to the archived report."""

    def __init__(
        self,
        *,
        scenario_kind: ScenarioKind,
        turn_generator: TurnGenerator,
        visual_generator: VisualGenerator,
        archive: ArchiveStore,
        topic: str = "",
        initial_context: str = "",
    ) -> None:
        self._state = RunState(
            scenario_kind=scenario_kind,
            topic=topic,
            context=initial_context or topic,
        )
        self._turns = turn_generator
        self._visuals = visual_generator
        self._archive = archive
        self._initialized = False
        self._init_done = False
        self._visual_seq = 0
        self._visual_tasks: set[asyncio.Task] = set()

    @property
    def state(self) -> RunState:
        """A deep copy of the current run state."""
        return self._state.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def initialize(self) -> RunState:
        """Generate the opening turn. Runs once; later calls are no-ops."""
        if self._initialized:
            return self.state
        self._initialized = True
        s = self._state
        s.is_loading = True
        self._settle_phase()

        try:
            result = await self._turns.generate(
                [], s.context, START_ACTION, kind=s.scenario_kind,
            )
        except UpstreamError as exc:
            logger.warning("Run initialization failed: %s", exc)
            s.description = INIT_FAILED_DESCRIPTION
            s.options = []
            s.is_loading = False
            s.is_image_loading = False
            s.visual_style = initial_visual_style(s.scenario_kind)
            self._init_done = True
            self._settle_phase()
            return self.state
        except BaseException:
            self._initialized = False
            s.is_loading = False
            self._settle_phase()
            raise

        s.description = result.description
        s.options = list(result.options)
        s.history = [HistoryEntry(role=Role.MODEL, text=result.description)]
        s.is_loading = False
        self._init_done = True

        if result.is_ended:
            self._apply_end(result.report)
            self._settle_phase()
            await self.check_completion()
            return self.state

        if is_scientific(s.scenario_kind):
            s.waiting_for_visual_choice = True
        else:
            s.visual_style = VisualStyle.ARTISTIC
            self._start_visual()

        self._settle_phase()
        logger.info(
            "Run initialized (%s, style=%s)", s.scenario_kind.value, s.visual_style,
        )
        return self.state

    async def choose_visualization(self, style: VisualStyle) -> RunState:
        """Fix the run's visual style. Valid once, while the choice is pending."""
        s = self._state
        if not s.waiting_for_visual_choice:
            return self.state

        s.visual_style = style
        s.waiting_for_visual_choice = False
        self._start_visual()
        self._settle_phase()
        logger.info("Visualization chosen: %s", style.value)
        return self.state

    async def handle_action(self, action_text: str) -> RunState:
        """Advance the narrative by one user action.

        Ignored when the action is blank or the run is loading, ended, or
        waiting for the visualization choice.
        """
        s = self._state
        action = (action_text or "").strip()
        if not action or s.is_loading or s.is_ended or s.waiting_for_visual_choice:
            return self.state

        prior_history = list(s.history)
        s.history.append(HistoryEntry(role=Role.USER, text=action))
        s.is_loading = True
        s.retry_action = None
        self._settle_phase()

        try:
            result = await self._turns.generate(
                list(s.history), s.context, action, kind=s.scenario_kind,
            )
        except UpstreamError as exc:
            logger.warning("Turn failed, keeping previous state: %s", exc)
            s.history = prior_history
            s.is_loading = False
            s.description = CONNECTION_UNSTABLE_DESCRIPTION
            s.retry_action = action
            self._settle_phase()
            return self.state
        except BaseException:
            s.history = prior_history
            s.is_loading = False
            self._settle_phase()
            raise

        s.history.append(HistoryEntry(role=Role.MODEL, text=result.description))
        s.description = result.description
        s.options = list(result.options)
        s.is_loading = False
        s.turn += 1

        if result.is_ended:
            self._apply_end(result.report)

        if result.should_update_visuals or result.is_ended:
            self._start_visual()
        else:
            logger.debug("Turn %d: visuals unchanged", s.turn)

        self._settle_phase()
        await self.check_completion()
        return self.state

    async def check_completion(self) -> bool:
        """Archive the report of an ended run. Idempotent; True if it saved now."""
        s = self._state
        if not s.is_ended or s.report is None or s.report_persisted:
            return False

        s.report_persisted = True
        record = self.build_record()
        try:
            await self._archive.save(record)
        except Exception:
            logger.exception("Failed to archive run %s", record.id)
            return False
        logger.info("Archived run %s (score %d)", record.id, record.report.score)
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def build_record(self) -> SavedRecord:
        """Snapshot the run as an archive record."""
        s = self._state
        if s.report is None:
            raise ValueError("Run has no report to archive")
        topic = s.topic
        if not topic and s.history:
            topic = s.history[0].text.strip()[:TOPIC_PREVIEW_LENGTH]
        return SavedRecord(
            scenario_kind=s.scenario_kind,
            topic=topic or UNKNOWN_TOPIC,
            report=s.report,
            transcript=list(s.history),
        )

    async def wait_for_visuals(self) -> None:
        """Wait until every in-flight visual request has finished."""
        while self._visual_tasks:
            await asyncio.gather(*list(self._visual_tasks), return_exceptions=True)

    def close(self) -> None:
        """Exit the run; in-flight visuals are cancelled and never applied."""
        self._visual_seq += 1
        for task in list(self._visual_tasks):
            task.cancel()

    def _apply_end(self, report: AnalysisReport | None) -> None:
        s = self._state
        s.is_ended = True
        s.options = []
        if report is not None and s.report is None:
            s.report = report

    def _start_visual(self) -> None:
        s = self._state
        if s.visual_style is None:
            return

        self._visual_seq += 1
        tag = self._visual_seq
        s.is_image_loading = True

        call: Coroutine[Any, Any, None]
        if s.visual_style == VisualStyle.SCHEMATIC:
            topic = s.topic or s.context
            call = self._run_scene(tag, topic, s.description, s.last_scene_config)
        else:
            call = self._run_image(tag, s.description, s.visual_style)

        task = asyncio.create_task(call)
        self._visual_tasks.add(task)
        task.add_done_callback(self._visual_tasks.discard)

    async def _run_image(self, tag: int, description: str, style: VisualStyle) -> None:
        image: str | None = None
        try:
            image = await self._visuals.generate_image(description, style)
        except Exception:
            logger.exception("Image request %d crashed", tag)

        if tag != self._visual_seq:
            logger.debug("Dropping stale image for request %d", tag)
            return
        s = self._state
        if image is not None:
            s.last_image = image
        s.is_image_loading = False
        self._settle_phase()

    async def _run_scene(
        self,
        tag: int,
        topic: str,
        description: str,
        previous: SceneConfig | None,
    ) -> None:
        scene: SceneConfig | None = None
        try:
            scene = await self._visuals.generate_scene_config(topic, description, previous)
        except Exception:
            logger.exception("Scene request %d crashed", tag)

        if tag != self._visual_seq:
            logger.debug("Dropping stale scene for request %d", tag)
            return
        s = self._state
        if scene is not None:
            s.last_scene_config = scene
        s.is_image_loading = False
        self._settle_phase()

    def _settle_phase(self) -> None:
        s = self._state
        if s.is_ended:
            s.phase = SessionPhase.ENDED
        elif not self._init_done:
            s.phase = SessionPhase.INIT
        elif s.waiting_for_visual_choice:
            s.phase = SessionPhase.AWAITING_VISUAL_CHOICE
        elif s.is_loading:
            s.phase = SessionPhase.GENERATING_TURN
        elif s.is_image_loading:
            s.phase = (
                SessionPhase.GENERATING_FIRST_VISUAL
                if s.turn == 0
                else SessionPhase.GENERATING_VISUAL
            )
        else:
            s.phase = SessionPhase.READY
