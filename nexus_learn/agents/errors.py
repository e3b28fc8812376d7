"""Upstream error taxonomy for generative-model calls.

- UpstreamTimeout: the call exceeded its deadline
- UpstreamFailure: the call completed with an error or an empty payload
- MalformedResponse: a payload arrived but did not parse into the expected shape

All three are recovered inside the agents layer; none of them should ever
escape an orchestrator transition.
"""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

T = TypeVar("T")


class UpstreamError(Exception):
    """Base class for failures of the generative-model boundary."""


class UpstreamTimeout(UpstreamError):
    """Request exceeded its deadline."""


class UpstreamFailure(UpstreamError):
    """Request completed with an error or an empty payload."""


class MalformedResponse(ValueError):
    """Response received but failed to parse into the expected shape."""


async def with_deadline(call: Awaitable[T], seconds: float, what: str) -> T:
    """Await ``call`` for at most ``seconds``; raise UpstreamTimeout past it."""
    try:
        return await asyncio.wait_for(call, timeout=seconds)
    except asyncio.TimeoutError as exc:
        raise UpstreamTimeout(f"{what} timed out after {seconds:g}s") from exc
