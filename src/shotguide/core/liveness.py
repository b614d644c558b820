"""Liveness tokens that keep late async results away from stale galleries.

A generation request replaces the previous gallery entirely.  Sketch
requests of the previous gallery may still be in flight when that happens;
their results must be discarded on arrival instead of being applied to the
new gallery.

Each generation gets a :class:`LivenessToken`.  Starting a new generation
for the same session revokes the previous token.  :func:`guarded` awaits a
result and reports whether it may still be applied.
"""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Sessions remembered at once; the least recently active is forgotten first.
MAX_TRACKED_SESSIONS = 1024


@dataclass
class LivenessToken:
    """Marks whether the gallery awaiting a result is still current."""

    generation_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    alive: bool = True

    def revoke(self) -> None:
        if self.alive:
            logger.debug(f"Revoked generation {self.generation_id}")
        self.alive = False


async def guarded(token: LivenessToken, awaitable: Awaitable[T]) -> tuple[bool, T | None]:
    """Await *awaitable* and drop its result if *token* died meanwhile.

    Returns:
        ``(True, result)`` when the token is still alive on completion,
        ``(False, None)`` otherwise.
    """
    result = await awaitable
    if not token.alive:
        logger.info(f"Discarding late result for stale generation {token.generation_id}")
        return False, None
    return True, result


class GenerationTracker:
    """Tracks the current generation of every session.

    Only the latest generation of a session is alive.  Sessions are
    identified by an opaque string chosen by the client.  At most
    *max_sessions* sessions are remembered; beginning a generation for a new
    session beyond that limit revokes and forgets the least recently started
    one.
    """

    def __init__(self, max_sessions: int = MAX_TRACKED_SESSIONS) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.max_sessions = max_sessions
        self._current: OrderedDict[str, LivenessToken] = OrderedDict()

    def begin(self, session_id: str) -> LivenessToken:
        """Start a new generation for *session_id*, revoking the previous one."""
        previous = self._current.get(session_id)
        if previous is not None:
            previous.revoke()
        token = LivenessToken()
        self._current[session_id] = token
        self._current.move_to_end(session_id)
        while len(self._current) > self.max_sessions:
            evicted_id, evicted = self._current.popitem(last=False)
            evicted.revoke()
            logger.debug(f"Forgot session {evicted_id!r}")
        logger.debug(f"Session {session_id!r} started generation {token.generation_id}")
        return token

    def lookup(self, session_id: str, generation_id: str) -> LivenessToken | None:
        """Return the live token for *generation_id*, or ``None`` if it is stale or unknown."""
        token = self._current.get(session_id)
        if token is None or token.generation_id != generation_id:
            return None
        return token

    def end(self, session_id: str) -> None:
        """Revoke and forget the current generation of *session_id*."""
        token = self._current.pop(session_id, None)
        if token is not None:
            token.revoke()
