"""Test doubles built on the real generator and archive base classes.

The fakes implement only the raw upstream hooks (``_request``,
``_render_image``, ``_compose_scene``, ...), so deadlines, decoding and
fallbacks are exercised through the production code paths.
"""

import asyncio
import json

from nexus_learn.agents.llm_client import LLMClient
from nexus_learn.agents.story_generator import StoryGenerator
from nexus_learn.agents.turn_generator import TurnGenerator
from nexus_learn.agents.visual_generator import VisualGenerator
from nexus_learn.models.common import ScenarioKind, VisualStyle
from nexus_learn.models.simulation import (
    HistoryEntry,
    SavedRecord,
    SceneConfig,
    SceneObject,
    SceneObjectType,
)
from nexus_learn.models.story import StoryRole, StoryScene
from nexus_learn.repositories.base import ArchiveStore


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------


def turn_json(
    description: str,
    options: tuple[str, ...] = ("Look around", "Ask a question"),
    *,
    is_ended: bool = False,
    should_update_visuals: bool = True,
    report: dict | None = None,
) -> str:
    """Raw model output for one turn, in the model's camelCase wire shape."""
    payload: dict = {
        "description": description,
        "options": list(options),
        "isEnded": is_ended,
        "shouldUpdateVisuals": should_update_visuals,
    }
    if report is not None:
        payload["report"] = report
    return json.dumps(payload)


def report_json(score: int = 85) -> dict:
    return {
        "score": score,
        "evaluation": "Solid reasoning throughout.",
        "keyLearnings": ["Reactions conserve mass", "Catalysts lower activation energy"],
        "suggestions": "Try predicting products before mixing.",
    }


def beaker_scene(level: float = 0.5) -> SceneConfig:
    return SceneConfig(
        objects=[
            SceneObject(
                id="ground",
                type=SceneObjectType.PLANE,
                position=(0.0, 0.0, 0.0),
                scale=(10.0, 1.0, 10.0),
            ),
            SceneObject(
                id="beaker-1",
                type=SceneObjectType.BEAKER,
                position=(0.0, 0.5, 0.0),
                liquid_color="#3b82f6",
                liquid_level=level,
            ),
        ],
        environment="LAB",
    )


# ---------------------------------------------------------------------------
# Generators
# ---------------------------------------------------------------------------


class ScriptedTurnGenerator(TurnGenerator):
    """Replays scripted raw outputs; an Exception entry is raised instead.

    Once the script runs out every call returns a plain continuing turn.
    """

    def __init__(self, *script: str | BaseException, delay: float = 0.0, timeout: float = 15.0) -> None:
        super().__init__(timeout=timeout)
        self.script: list[str | BaseException] = list(script)
        self.delay = delay
        self.calls: list[tuple[list[HistoryEntry], str, str, ScenarioKind]] = []

    def push(self, *entries: str | BaseException) -> None:
        self.script.extend(entries)

    async def _request(self, history, context, action, kind) -> str:
        self.calls.append((list(history), context, action, kind))
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.script:
            return turn_json(f"Beat {len(self.calls)}")
        entry = self.script.pop(0)
        if isinstance(entry, BaseException):
            raise entry
        return entry


class FakeVisualGenerator(VisualGenerator):
    """Records every visual call; upstream results come from scripts.

    ``image_delays`` / ``scene_delays`` hold per-call latencies in call
    order, which lets tests make an early request finish after a later one.
    """

    def __init__(
        self,
        *,
        images: list[str | None | BaseException] | None = None,
        scenes: list[SceneConfig | BaseException] | None = None,
        image_delays: list[float] | None = None,
        scene_delays: list[float] | None = None,
        image_timeout: float = 20.0,
        scene_timeout: float = 15.0,
    ) -> None:
        super().__init__(image_timeout=image_timeout, scene_timeout=scene_timeout)
        self.images = list(images or [])
        self.scenes = list(scenes or [])
        self.image_delays = list(image_delays or [])
        self.scene_delays = list(scene_delays or [])
        self.image_calls: list[tuple[str, VisualStyle]] = []
        self.scene_calls: list[tuple[str, str, SceneConfig | None]] = []
        self.render_count = 0

    async def generate_image(self, description: str, style: VisualStyle) -> str | None:
        self.image_calls.append((description, style))
        return await super().generate_image(description, style)

    async def generate_scene_config(self, topic, description, previous) -> SceneConfig:
        self.scene_calls.append((topic, description, previous))
        return await super().generate_scene_config(topic, description, previous)

    async def _render_image(self, description: str) -> str | None:
        self.render_count += 1
        entry = self.images.pop(0) if self.images else f"data:image/png;base64,IMG{self.render_count}"
        if self.image_delays:
            await asyncio.sleep(self.image_delays.pop(0))
        if isinstance(entry, BaseException):
            raise entry
        return entry

    async def _compose_scene(self, topic, description, previous) -> SceneConfig:
        if self.scenes:
            entry = self.scenes.pop(0)
        else:
            entry = beaker_scene(level=0.25 * (len(self.scene_calls) % 4))
        if self.scene_delays:
            await asyncio.sleep(self.scene_delays.pop(0))
        if isinstance(entry, BaseException):
            raise entry
        return entry


class ScriptedStoryGenerator(StoryGenerator):
    """Scripted roles and scenes; Exception entries are raised instead."""

    def __init__(
        self,
        *,
        roles: list[StoryRole | BaseException] | None = None,
        scenes: list[StoryScene | BaseException] | None = None,
        timeout: float = 15.0,
    ) -> None:
        super().__init__(timeout=timeout)
        self.roles = list(roles or [])
        self.scenes = list(scenes or [])
        self.scene_calls: list[tuple[list[str], str, str, str]] = []

    async def _request_role(self, theme: str) -> StoryRole:
        if not self.roles:
            return StoryRole(role="Archivist", visual_prompt="Old archivist, lantern light")
        entry = self.roles.pop(0)
        if isinstance(entry, BaseException):
            raise entry
        return entry

    async def _request_scene(self, history, action, theme, role) -> StoryScene:
        self.scene_calls.append((list(history), action, theme, role))
        if not self.scenes:
            return StoryScene(
                narrative=f"Scene {len(self.scene_calls)}",
                visual_prompt=f"Dusty hall {len(self.scene_calls)}",
            )
        entry = self.scenes.pop(0)
        if isinstance(entry, BaseException):
            raise entry
        return entry


class StubLLMClient(LLMClient):
    """LLMClient whose text replies come from a queue instead of HTTP."""

    def __init__(self, *replies: str | BaseException) -> None:
        super().__init__(api_key="test-key")
        self.replies: list[str | BaseException] = list(replies)
        self.text_requests: list[dict] = []

    async def generate_text(self, *, contents, system_prompt="", response_schema=None, allow_empty=False) -> str:
        self.text_requests.append(
            {"contents": contents, "system_prompt": system_prompt, "allow_empty": allow_empty},
        )
        if not self.replies:
            return "I see your point, but consider the counterexample."
        entry = self.replies.pop(0)
        if isinstance(entry, BaseException):
            raise entry
        return entry

    async def generate_image(self, prompt: str) -> str | None:
        return None


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------


class InMemoryArchiveStore(ArchiveStore):
    def __init__(self, *, fail: bool = False) -> None:
        self.records: dict[str, SavedRecord] = {}
        self.save_calls = 0
        self.fail = fail

    async def save(self, record: SavedRecord) -> None:
        self.save_calls += 1
        if self.fail:
            raise RuntimeError("archive unavailable")
        self.records[record.id] = record

    async def get(self, record_id: str) -> SavedRecord | None:
        return self.records.get(record_id)

    async def list_all(self) -> list[SavedRecord]:
        return sorted(self.records.values(), key=lambda r: r.timestamp, reverse=True)

    async def delete(self, record_id: str) -> bool:
        return self.records.pop(record_id, None) is not None
