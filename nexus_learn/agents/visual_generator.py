"""Visual generation: illustrations and procedural scene configs.

Both public calls swallow upstream errors; callers always get something
renderable:

- generate_image -> data URL or None (SCHEMATIC never reaches the network)
- generate_scene_config -> new scene, else the previous scene unchanged,
  else a deterministic placeholder scene
"""

import logging
from abc import ABC, abstractmethod

from nexus_learn.agents.errors import MalformedResponse, UpstreamError, with_deadline
from nexus_learn.agents.llm_client import LLMClient, parse_structured
from nexus_learn.agents.prompts import scene as scene_prompts
from nexus_learn.models.common import VisualStyle
from nexus_learn.models.simulation import SceneConfig, SceneObject, SceneObjectType

logger = logging.getLogger(__name__)

IMAGE_PROMPT_LIMIT = 300
FAILED_MARKER_ID = "generation-failed"


def build_image_prompt(description: str) -> str:
    return (
        "Digital art, highly detailed, cinematic lighting. "
        f"Scene: {description[:IMAGE_PROMPT_LIMIT]}"
    )


def placeholder_scene() -> SceneConfig:
    """Scene shown when generation fails before any scene existed."""
    return SceneConfig(
        objects=[
            SceneObject(
                id="ground",
                type=SceneObjectType.PLANE,
                position=(0.0, 0.0, 0.0),
                scale=(10.0, 1.0, 10.0),
                color="#3f3f46",
            ),
            SceneObject(
                id=FAILED_MARKER_ID,
                type=SceneObjectType.CUBE,
                position=(0.0, 0.5, 0.0),
                color="#ef4444",
                label="Scene generation failed",
            ),
        ],
        environment="DEFAULT",
    )


class VisualGenerator(ABC):
    """Generates the visual layer of a run.

    Subclasses implement ``_render_image`` and ``_compose_scene``; the
    SCHEMATIC short-circuit, deadlines and fallbacks are applied here.
    """

    def __init__(self, *, image_timeout: float = 20.0, scene_timeout: float = 15.0) -> None:
        self.image_timeout = image_timeout
        self.scene_timeout = scene_timeout

    async def generate_image(self, description: str, style: VisualStyle) -> str | None:
        """Illustrate ``description``. Never raises."""
        if style == VisualStyle.SCHEMATIC:
            return None
        try:
            return await with_deadline(
                self._render_image(description), self.image_timeout, "image generation",
            )
        except UpstreamError as exc:
            logger.warning("Image generation failed: %s", exc)
        except Exception:
            logger.exception("Image generation failed unexpectedly")
        return None

    async def generate_scene_config(
        self,
        topic: str,
        description: str,
        previous: SceneConfig | None,
    ) -> SceneConfig:
        """Evolve ``previous`` (or build a baseline) for ``description``. Never raises."""
        try:
            scene = await with_deadline(
                self._compose_scene(topic, description, previous),
                self.scene_timeout,
                "scene generation",
            )
            return scene.with_ground()
        except (UpstreamError, MalformedResponse) as exc:
            logger.warning("Scene generation failed: %s", exc)
        except Exception:
            logger.exception("Scene generation failed unexpectedly")

        if previous is not None:
            return previous
        return placeholder_scene()

    @abstractmethod
    async def _render_image(self, description: str) -> str | None:
        ...

    @abstractmethod
    async def _compose_scene(
        self,
        topic: str,
        description: str,
        previous: SceneConfig | None,
    ) -> SceneConfig:
        ...


class LLMVisualGenerator(VisualGenerator):
    """Visual generator backed by the Gemini image and text models."""

    def __init__(
        self,
        llm_client: LLMClient,
        *,
        image_timeout: float = 20.0,
        scene_timeout: float = 15.0,
    ) -> None:
        super().__init__(image_timeout=image_timeout, scene_timeout=scene_timeout)
        self._llm = llm_client

    async def _render_image(self, description: str) -> str | None:
        return await self._llm.generate_image(build_image_prompt(description))

    async def _compose_scene(
        self,
        topic: str,
        description: str,
        previous: SceneConfig | None,
    ) -> SceneConfig:
        raw = await self._llm.generate_text(
            contents=scene_prompts.build_prompt(topic, description, previous),
            system_prompt=scene_prompts.SYSTEM_PROMPT,
            response_schema=scene_prompts.SCENE_RESPONSE_SCHEMA,
        )
        return parse_structured(raw, SceneConfig)
