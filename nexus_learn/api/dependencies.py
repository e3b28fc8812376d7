"""FastAPI dependency injection factories.

The archive store opens its own sessions per operation. Generators
are built from settings on each request; they are cheap and stateless.
Live simulation and story sessions are kept in process-wide registries,
since their orchestrators outlive any single request.
"""

import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Generic, Protocol, TypeVar

from fastapi import Depends

from nexus_learn.agents.debate import DebatePartner
from nexus_learn.agents.llm_client import LLMClient
from nexus_learn.agents.orchestrator import TurnOrchestrator
from nexus_learn.agents.story import StoryOrchestrator
from nexus_learn.agents.story_generator import LLMStoryGenerator, StoryGenerator
from nexus_learn.agents.turn_generator import LLMTurnGenerator, TurnGenerator
from nexus_learn.agents.visual_generator import LLMVisualGenerator, VisualGenerator
from nexus_learn.config.settings import Settings, get_settings
from nexus_learn.db.session import async_session_factory
from nexus_learn.models.common import new_uuid7
from nexus_learn.repositories.archive import SqlArchiveStore
from nexus_learn.repositories.base import ArchiveStore

logger = logging.getLogger(__name__)


class Closeable(Protocol):
    def close(self) -> None: ...


S = TypeVar("S", bound=Closeable)


# ---------------------------------------------------------------------------
# Session registries
# ---------------------------------------------------------------------------


class SessionRegistry(Generic[S]):
    """In-process map of live sessions keyed by a generated id.

    Entries are kept in least-recently-used order. A session idle for longer
    than ``ttl_seconds`` is evicted, and adding beyond ``max_sessions`` evicts
    the least recently used one. Evicted sessions are closed.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = 3600.0,
        max_sessions: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._max = max_sessions
        self._clock = clock
        self._sessions: OrderedDict[str, tuple[S, float]] = OrderedDict()

    def add(self, session: S) -> str:
        self.evict_expired()
        while len(self._sessions) >= self._max:
            oldest_id, (oldest, _) = self._sessions.popitem(last=False)
            logger.info("Evicting session %s: registry full", oldest_id)
            oldest.close()

        session_id = str(new_uuid7())
        self._sessions[session_id] = (session, self._clock())
        return session_id

    def get(self, session_id: str) -> S | None:
        entry = self._sessions.get(session_id)
        if entry is None:
            return None
        session, last_seen = entry
        now = self._clock()
        if now - last_seen > self._ttl:
            del self._sessions[session_id]
            logger.info("Evicting session %s: idle", session_id)
            session.close()
            return None
        self._sessions[session_id] = (session, now)
        self._sessions.move_to_end(session_id)
        return session

    def remove(self, session_id: str) -> S | None:
        entry = self._sessions.pop(session_id, None)
        return None if entry is None else entry[0]

    def evict_expired(self) -> int:
        """Drop and close every idle session; return how many were evicted."""
        cutoff = self._clock() - self._ttl
        evicted = 0
        while self._sessions:
            session_id, (session, last_seen) = next(iter(self._sessions.items()))
            if last_seen >= cutoff:
                break
            del self._sessions[session_id]
            logger.info("Evicting session %s: idle", session_id)
            session.close()
            evicted += 1
        return evicted

    def __len__(self) -> int:
        return len(self._sessions)


_settings = get_settings()
_simulations: SessionRegistry[TurnOrchestrator] = SessionRegistry(
    ttl_seconds=_settings.SESSION_TTL_SECONDS,
    max_sessions=_settings.MAX_LIVE_SESSIONS,
)
_stories: SessionRegistry[StoryOrchestrator] = SessionRegistry(
    ttl_seconds=_settings.SESSION_TTL_SECONDS,
    max_sessions=_settings.MAX_LIVE_SESSIONS,
)


def get_simulation_registry() -> SessionRegistry[TurnOrchestrator]:
    return _simulations


def get_story_registry() -> SessionRegistry[StoryOrchestrator]:
    return _stories


# ---------------------------------------------------------------------------
# Generative model
# ---------------------------------------------------------------------------


def get_llm_client(settings: Settings = Depends(get_settings)) -> LLMClient:
    return LLMClient.from_settings(settings)


def get_turn_generator(
    settings: Settings = Depends(get_settings),
    llm: LLMClient = Depends(get_llm_client),
) -> TurnGenerator:
    return LLMTurnGenerator(
        llm,
        timeout=settings.TURN_TIMEOUT_SECONDS,
        language=settings.RESPONSE_LANGUAGE,
    )


def get_visual_generator(
    settings: Settings = Depends(get_settings),
    llm: LLMClient = Depends(get_llm_client),
) -> VisualGenerator:
    return LLMVisualGenerator(
        llm,
        image_timeout=settings.IMAGE_TIMEOUT_SECONDS,
        scene_timeout=settings.SCENE_TIMEOUT_SECONDS,
    )


def get_story_generator(
    settings: Settings = Depends(get_settings),
    llm: LLMClient = Depends(get_llm_client),
) -> StoryGenerator:
    return LLMStoryGenerator(
        llm,
        timeout=settings.TURN_TIMEOUT_SECONDS,
        language=settings.RESPONSE_LANGUAGE,
    )


def get_debate_partner(
    settings: Settings = Depends(get_settings),
    llm: LLMClient = Depends(get_llm_client),
) -> DebatePartner:
    return DebatePartner(
        llm,
        timeout=settings.TURN_TIMEOUT_SECONDS,
        language=settings.RESPONSE_LANGUAGE,
    )


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------


def get_archive_store() -> ArchiveStore:
    """Archive of completed runs; it commits on its own sessions."""
    return SqlArchiveStore(async_session_factory)
