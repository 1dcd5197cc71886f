"""In-memory session store keyed by the browser's session id.

Entries untouched for ``SESSION_IDLE_TTL`` seconds are swept on the next lookup.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import Callable, Dict, Optional, Tuple

from .config import SESSION_IDLE_TTL
from .models import AppStatus
from .session import SessionController

logger = logging.getLogger(__name__)

sessions: Dict[str, SessionController] = {}
last_seen: Dict[str, float] = {}
_sessions_lock = threading.Lock()

controller_factory: Callable[[], SessionController] = SessionController
clock: Callable[[], float] = time.monotonic


def new_session_id() -> str:
    return uuid.uuid4().hex


def _sweep_idle(now: float) -> None:
    # A purify call still in flight keeps its session alive.
    expired = [
        session_id
        for session_id, seen in last_seen.items()
        if now - seen > SESSION_IDLE_TTL
        and session_id in sessions
        and sessions[session_id].state.status is not AppStatus.LOADING
    ]
    for session_id in expired:
        sessions.pop(session_id, None)
        last_seen.pop(session_id, None)
    if expired:
        logger.info("Evicted %d idle session(s)", len(expired))


def get_or_create_session(session_id: Optional[str]) -> Tuple[str, SessionController]:
    with _sessions_lock:
        now = clock()
        _sweep_idle(now)
        controller = sessions.get(session_id) if session_id else None
        if controller is None:
            session_id = new_session_id()
            controller = controller_factory()
            sessions[session_id] = controller
        last_seen[session_id] = now
        return session_id, controller


def cleanup_session(session_id: Optional[str]) -> None:
    with _sessions_lock:
        sessions.pop(session_id, None)
        last_seen.pop(session_id, None)
