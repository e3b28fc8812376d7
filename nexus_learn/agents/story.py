"""Interactive story orchestrator.

Initialize generates the player role first; the opening scene and the
character portrait depend only on the role, so they are requested
concurrently. Background images regenerate after every scene as tagged
background tasks; a stale or failed image never replaces a newer one.
"""

import asyncio
import logging

from nexus_learn.agents.prompts.story import CONTINUE_ACTION, START_ACTION
from nexus_learn.agents.story_generator import StoryGenerator
from nexus_learn.agents.visual_generator import VisualGenerator
from nexus_learn.models.common import VisualStyle
from nexus_learn.models.story import InteractableType, StoryScene, StoryState

logger = logging.getLogger(__name__)


class StoryOrchestrator:
    """Drives one interactive story session."""

    def __init__(
        self,
        *,
        theme: str,
        story_generator: StoryGenerator,
        visual_generator: VisualGenerator,
    ) -> None:
        self._state = StoryState(theme=theme)
        self._stories = story_generator
        self._visuals = visual_generator
        self._image_seq = 0
        self._image_tasks: set[asyncio.Task] = set()

    @property
    def state(self) -> StoryState:
        return self._state.model_copy(deep=True)

    async def initialize(self) -> StoryState:
        s = self._state
        s.is_loading = True
        s.init_error = False

        try:
            role = await self._stories.initialize_role(s.theme)
            scene, portrait = await asyncio.gather(
                self._stories.generate_scene([], START_ACTION, s.theme, role.role),
                self._visuals.generate_image(role.visual_prompt, VisualStyle.ARTISTIC),
            )
        except Exception:
            logger.exception("Story initialization failed for theme %r", s.theme)
            s.init_error = True
            return self.state

        s.user_role = role.role
        s.character_image = portrait
        s.history = []
        self._apply_scene(scene)
        s.is_loading = False
        return self.state

    async def interact(self, item_id: str) -> StoryState:
        """Use a hotspot of the current scene. PICKUP items go to the inventory."""
        s = self._state
        if s.is_loading:
            return self.state
        item = next((i for i in s.interactables if i.id == item_id), None)
        if item is None:
            return self.state

        action = item.description
        if item.type == InteractableType.PICKUP:
            action = f"Picked up {item.label}. {item.description}"
            s.inventory.append(item.label)
        await self._load_scene(action)
        return self.state

    async def continue_story(self) -> StoryState:
        """Ask for the next beat without a specific action."""
        s = self._state
        if s.is_loading or s.is_image_loading:
            return self.state
        await self._load_scene(CONTINUE_ACTION)
        return self.state

    async def custom_action(self, text: str) -> StoryState:
        s = self._state
        action = (text or "").strip()
        if not action or s.is_loading:
            return self.state
        await self._load_scene(f"The player attempts: {action}")
        return self.state

    async def wait_for_visuals(self) -> None:
        while self._image_tasks:
            await asyncio.gather(*list(self._image_tasks), return_exceptions=True)

    def close(self) -> None:
        self._image_seq += 1
        for task in list(self._image_tasks):
            task.cancel()

    async def _load_scene(self, action: str) -> None:
        s = self._state
        s.is_loading = True
        scene = await self._stories.generate_scene(
            list(s.history), action, s.theme, s.user_role,
        )
        self._apply_scene(scene)
        s.is_loading = False

    def _apply_scene(self, scene: StoryScene) -> None:
        s = self._state
        s.narrative = scene.narrative
        s.visual_prompt = scene.visual_prompt
        s.interactables = list(scene.interactables)
        s.history.append(scene.narrative)
        if scene.visual_prompt:
            self._start_background(scene.visual_prompt)

    def _start_background(self, prompt: str) -> None:
        self._image_seq += 1
        self._state.is_image_loading = True
        task = asyncio.create_task(self._run_background(self._image_seq, prompt))
        self._image_tasks.add(task)
        task.add_done_callback(self._image_tasks.discard)

    async def _run_background(self, tag: int, prompt: str) -> None:
        image = await self._visuals.generate_image(prompt, VisualStyle.ARTISTIC)
        if tag != self._image_seq:
            return
        s = self._state
        if image is not None:
            s.bg_image = image
        s.is_image_loading = False
