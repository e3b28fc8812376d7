"""Story-mode generation: player role and scene beats.

Both calls degrade instead of raising: a failed role becomes a generic
explorer, a failed scene becomes a "signal interference" beat offering a
single retry hotspot.
"""

import logging
from abc import ABC, abstractmethod

from nexus_learn.agents.errors import MalformedResponse, UpstreamError, with_deadline
from nexus_learn.agents.llm_client import LLMClient, parse_structured, to_contents
from nexus_learn.agents.prompts import story as story_prompts
from nexus_learn.models.story import (
    InteractableType,
    StoryInteractable,
    StoryRole,
    StoryScene,
)

logger = logging.getLogger(__name__)


def fallback_role() -> StoryRole:
    return StoryRole(role="Explorer", visual_prompt="Explorer face, mysterious, digital art")


def fallback_scene() -> StoryScene:
    return StoryScene(
        narrative="The signal is breaking up...",
        visual_prompt="Glitch art, static noise, abstract",
        interactables=[
            StoryInteractable(
                id="retry",
                label="Retry",
                type=InteractableType.EXAMINE,
                description="Try to reconnect",
            )
        ],
    )


class StoryGenerator(ABC):
    """Generates story roles and scenes with deadline and fallback policy."""

    def __init__(self, *, timeout: float = 15.0) -> None:
        self.timeout = timeout

    async def initialize_role(self, theme: str) -> StoryRole:
        try:
            return await with_deadline(self._request_role(theme), self.timeout, "role generation")
        except (UpstreamError, MalformedResponse) as exc:
            logger.warning("Role generation failed, using default role: %s", exc)
        except Exception:
            logger.exception("Role generation failed unexpectedly")
        return fallback_role()

    async def generate_scene(
        self,
        history: list[str],
        action: str,
        theme: str,
        role: str,
    ) -> StoryScene:
        try:
            return await with_deadline(
                self._request_scene(history, action, theme, role),
                self.timeout,
                "story scene generation",
            )
        except (UpstreamError, MalformedResponse) as exc:
            logger.warning("Story scene generation failed: %s", exc)
        except Exception:
            logger.exception("Story scene generation failed unexpectedly")
        return fallback_scene()

    @abstractmethod
    async def _request_role(self, theme: str) -> StoryRole:
        ...

    @abstractmethod
    async def _request_scene(
        self,
        history: list[str],
        action: str,
        theme: str,
        role: str,
    ) -> StoryScene:
        ...


class LLMStoryGenerator(StoryGenerator):
    """Story generator backed by the Gemini text model."""

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

    async def _request_role(self, theme: str) -> StoryRole:
        raw = await self._llm.generate_text(
            contents="Start",
            system_prompt=story_prompts.build_role_prompt(theme, self._language),
            response_schema=story_prompts.ROLE_RESPONSE_SCHEMA,
        )
        return parse_structured(raw, StoryRole)

    async def _request_scene(
        self,
        history: list[str],
        action: str,
        theme: str,
        role: str,
    ) -> StoryScene:
        raw = await self._llm.generate_text(
            contents=to_contents(story_prompts.build_scene_contents(history, action)),
            system_prompt=story_prompts.build_scene_prompt(theme, role, self._language),
            response_schema=story_prompts.SCENE_RESPONSE_SCHEMA,
        )
        return parse_structured(raw, StoryScene)
