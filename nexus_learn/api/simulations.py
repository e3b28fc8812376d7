"""FastAPI simulation endpoints.

POST   /v1/simulations                              - start a run (initialize)
GET    /v1/simulations/{session_id}                 - current run state
POST   /v1/simulations/{session_id}/visualization   - choose the visual style
POST   /v1/simulations/{session_id}/actions         - submit a user action
DELETE /v1/simulations/{session_id}                 - exit the run

Transitions the run rejects are not errors: the unchanged state is returned.
Visuals keep generating after the response; poll GET to observe them.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field

from nexus_learn.agents.orchestrator import TurnOrchestrator
from nexus_learn.agents.turn_generator import TurnGenerator
from nexus_learn.agents.visual_generator import VisualGenerator
from nexus_learn.api.dependencies import (
    SessionRegistry,
    get_archive_store,
    get_simulation_registry,
    get_turn_generator,
    get_visual_generator,
)
from nexus_learn.models.common import NexusBase, ScenarioKind, VisualStyle
from nexus_learn.models.simulation import RunState
from nexus_learn.repositories.base import ArchiveStore

router = APIRouter(prefix="/v1/simulations", tags=["simulations"])


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------


class StartSimulationRequest(NexusBase):
    scenario_kind: ScenarioKind
    topic: str = ""
    initial_context: str = ""


class ChooseVisualizationRequest(NexusBase):
    style: VisualStyle


class ActionRequest(NexusBase):
    action: str = Field(..., max_length=2000)


class SimulationResponse(NexusBase):
    session_id: str
    state: RunState


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_or_404(
    registry: SessionRegistry[TurnOrchestrator], session_id: str,
) -> TurnOrchestrator:
    run = registry.get(session_id)
    if run is None:
        raise HTTPException(
            status_code=404,
            detail=f"Simulation {session_id} not found.",
        )
    return run


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("", status_code=201, response_model=SimulationResponse)
async def start_simulation(
    body: StartSimulationRequest,
    registry: SessionRegistry[TurnOrchestrator] = Depends(get_simulation_registry),
    turn_generator: TurnGenerator = Depends(get_turn_generator),
    visual_generator: VisualGenerator = Depends(get_visual_generator),
    archive: ArchiveStore = Depends(get_archive_store),
) -> SimulationResponse:
    """Create a run and generate its opening turn."""
    if body.scenario_kind == ScenarioKind.CUSTOM and not (
        body.topic.strip() or body.initial_context.strip()
    ):
        raise HTTPException(
            status_code=422,
            detail="A custom simulation needs a topic or an initial context.",
        )

    run = TurnOrchestrator(
        scenario_kind=body.scenario_kind,
        turn_generator=turn_generator,
        visual_generator=visual_generator,
        archive=archive,
        topic=body.topic.strip(),
        initial_context=body.initial_context.strip(),
    )
    session_id = registry.add(run)
    state = await run.initialize()
    return SimulationResponse(session_id=session_id, state=state)


@router.get("/{session_id}", response_model=SimulationResponse)
async def get_simulation(
    session_id: str,
    registry: SessionRegistry[TurnOrchestrator] = Depends(get_simulation_registry),
) -> SimulationResponse:
    run = _get_or_404(registry, session_id)
    return SimulationResponse(session_id=session_id, state=run.state)


@router.post("/{session_id}/visualization", response_model=SimulationResponse)
async def choose_visualization(
    session_id: str,
    body: ChooseVisualizationRequest,
    registry: SessionRegistry[TurnOrchestrator] = Depends(get_simulation_registry),
) -> SimulationResponse:
    run = _get_or_404(registry, session_id)
    state = await run.choose_visualization(body.style)
    return SimulationResponse(session_id=session_id, state=state)


@router.post("/{session_id}/actions", response_model=SimulationResponse)
async def submit_action(
    session_id: str,
    body: ActionRequest,
    registry: SessionRegistry[TurnOrchestrator] = Depends(get_simulation_registry),
) -> SimulationResponse:
    """Advance the run by one action; the archive write happens on the last turn."""
    run = _get_or_404(registry, session_id)
    state = await run.handle_action(body.action)
    return SimulationResponse(session_id=session_id, state=state)


@router.delete("/{session_id}", status_code=204)
async def exit_simulation(
    session_id: str,
    registry: SessionRegistry[TurnOrchestrator] = Depends(get_simulation_registry),
) -> None:
    run = registry.remove(session_id)
    if run is None:
        raise HTTPException(
            status_code=404,
            detail=f"Simulation {session_id} not found.",
        )
    run.close()
