"""FastAPI interactive story endpoints.

POST   /v1/stories                              - start a story (role + first scene)
GET    /v1/stories/{session_id}                 - current story state
POST   /v1/stories/{session_id}/interactions    - use a hotspot of the scene
POST   /v1/stories/{session_id}/continue        - next beat without an action
POST   /v1/stories/{session_id}/actions         - free-text player action
DELETE /v1/stories/{session_id}                 - leave the story
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field

from nexus_learn.agents.story import StoryOrchestrator
from nexus_learn.agents.story_generator import StoryGenerator
from nexus_learn.agents.visual_generator import VisualGenerator
from nexus_learn.api.dependencies import (
    SessionRegistry,
    get_story_generator,
    get_story_registry,
    get_visual_generator,
)
from nexus_learn.models.common import NexusBase
from nexus_learn.models.story import StoryState

router = APIRouter(prefix="/v1/stories", tags=["stories"])


class StartStoryRequest(NexusBase):
    theme: str = Field(..., min_length=1)


class InteractRequest(NexusBase):
    item_id: str


class StoryActionRequest(NexusBase):
    action: str = Field(..., max_length=2000)


class StoryResponse(NexusBase):
    session_id: str
    state: StoryState


def _get_or_404(
    registry: SessionRegistry[StoryOrchestrator], session_id: str,
) -> StoryOrchestrator:
    story = registry.get(session_id)
    if story is None:
        raise HTTPException(
            status_code=404,
            detail=f"Story {session_id} not found.",
        )
    return story


@router.post("", status_code=201, response_model=StoryResponse)
async def start_story(
    body: StartStoryRequest,
    registry: SessionRegistry[StoryOrchestrator] = Depends(get_story_registry),
    story_generator: StoryGenerator = Depends(get_story_generator),
    visual_generator: VisualGenerator = Depends(get_visual_generator),
) -> StoryResponse:
    story = StoryOrchestrator(
        theme=body.theme.strip(),
        story_generator=story_generator,
        visual_generator=visual_generator,
    )
    session_id = registry.add(story)
    state = await story.initialize()
    return StoryResponse(session_id=session_id, state=state)


@router.get("/{session_id}", response_model=StoryResponse)
async def get_story(
    session_id: str,
    registry: SessionRegistry[StoryOrchestrator] = Depends(get_story_registry),
) -> StoryResponse:
    story = _get_or_404(registry, session_id)
    return StoryResponse(session_id=session_id, state=story.state)


@router.post("/{session_id}/interactions", response_model=StoryResponse)
async def interact(
    session_id: str,
    body: InteractRequest,
    registry: SessionRegistry[StoryOrchestrator] = Depends(get_story_registry),
) -> StoryResponse:
    story = _get_or_404(registry, session_id)
    state = await story.interact(body.item_id)
    return StoryResponse(session_id=session_id, state=state)


@router.post("/{session_id}/continue", response_model=StoryResponse)
async def continue_story(
    session_id: str,
    registry: SessionRegistry[StoryOrchestrator] = Depends(get_story_registry),
) -> StoryResponse:
    story = _get_or_404(registry, session_id)
    state = await story.continue_story()
    return StoryResponse(session_id=session_id, state=state)


@router.post("/{session_id}/actions", response_model=StoryResponse)
async def story_action(
    session_id: str,
    body: StoryActionRequest,
    registry: SessionRegistry[StoryOrchestrator] = Depends(get_story_registry),
) -> StoryResponse:
    story = _get_or_404(registry, session_id)
    state = await story.custom_action(body.action)
    return StoryResponse(session_id=session_id, state=state)


@router.delete("/{session_id}", status_code=204)
async def leave_story(
    session_id: str,
    registry: SessionRegistry[StoryOrchestrator] = Depends(get_story_registry),
) -> None:
    story = registry.remove(session_id)
    if story is None:
        raise HTTPException(
            status_code=404,
            detail=f"Story {session_id} not found.",
        )
    story.close()
