"""Per-session state machine wiring the loader, purifier and highlighter."""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Any, BinaryIO, Callable, Dict, List, Optional, Tuple, Union

from .config import RATE_LIMIT_COOLDOWN, RESET_CONFIRM_WINDOW
from .errors import PurifierError, RateLimitExceeded
from .export import download_name
from .highlight import annotate, render_html
from .llm import purify
from .models import AppStatus, PurificationResult, Segment, SessionState
from .parser import load_document

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "API rate limit reached: please wait for the cooldown to finish and try again."
GENERIC_FAILURE_MESSAGE = "The AI service timed out, please try again."


def _spawn_thread(target: Callable[[], None]) -> None:
    threading.Thread(target=target, name="purify_worker", daemon=True).start()


class SessionController:
    """Owns one SessionState and every transition applied to it.

    ``purifier`` performs the remote call, ``clock`` is a monotonic time source
    for the cooldown and reset-confirmation deadlines, and ``spawn`` runs the
    purify job (a daemon thread by default).
    """

    def __init__(
        self,
        purifier: Callable[[str, str], PurificationResult] = purify,
        clock: Callable[[], float] = time.monotonic,
        spawn: Callable[[Callable[[], None]], None] = _spawn_thread,
    ):
        self._purifier = purifier
        self._clock = clock
        self._spawn = spawn
        self._lock = threading.Lock()
        self._generation = 0
        self.state = SessionState()

    # --- derived timers ---
    @property
    def cooldown_seconds(self) -> int:
        remaining = self.state.cooldown_until - self._clock()
        return max(0, math.ceil(remaining))

    @property
    def confirm_reset(self) -> bool:
        return self._clock() < self.state.confirm_reset_until

    # --- document ---
    def load_file(self, source: Union[bytes, BinaryIO], filename: str) -> None:
        """Load a new transcript. Loader errors propagate and leave state untouched."""
        text, display_name = load_document(source, filename)
        with self._lock:
            self._generation += 1
            state = self.state
            state.original_text = text
            state.file_name = display_name
            state.status = AppStatus.REVIEWING
            state.purified_result = None
            state.edited_text = ""
            state.error = None
            state.confirm_reset_until = 0.0

    # --- purification ---
    def start_purification(self) -> bool:
        with self._lock:
            state = self.state
            if not state.original_text or state.status is AppStatus.LOADING or self.cooldown_seconds > 0:
                return False
            state.status = AppStatus.LOADING
            state.error = None
            generation = self._generation
            raw_text, hints = state.original_text, state.hints

        logger.info("Starting purification (generation %d, %d chars)", generation, len(raw_text))
        self._spawn(lambda: self._run_purification(generation, raw_text, hints))
        return True

    def _run_purification(self, generation: int, raw_text: str, hints: str) -> None:
        try:
            result = self._purifier(raw_text, hints)
        except RateLimitExceeded:
            self._finish(generation, error=RATE_LIMIT_MESSAGE, rate_limited=True)
        except PurifierError as exc:
            self._finish(generation, error=str(exc) or GENERIC_FAILURE_MESSAGE)
        except Exception as exc:
            logger.exception("Unexpected purification failure")
            self._finish(generation, error=str(exc) or GENERIC_FAILURE_MESSAGE)
        else:
            self._finish(generation, result=result)

    def _finish(
        self,
        generation: int,
        result: Optional[PurificationResult] = None,
        error: Optional[str] = None,
        rate_limited: bool = False,
    ) -> None:
        with self._lock:
            if generation != self._generation:
                logger.info("Discarding stale purification result (generation %d)", generation)
                return
            state = self.state
            state.status = AppStatus.REVIEWING
            if result is not None:
                state.purified_result = result
                state.edited_text = result.purified_text
                return
            state.error = error
            if rate_limited:
                state.cooldown_until = self._clock() + RATE_LIMIT_COOLDOWN
            logger.warning("Purification failed: %s", error)

    # --- editing ---
    def set_hints(self, hints: str) -> None:
        with self._lock:
            self.state.hints = hints

    def edit_original_text(self, text: str) -> None:
        with self._lock:
            self.state.original_text = text

    def edit_purified_text(self, text: str) -> None:
        with self._lock:
            self.state.edited_text = text

    def dismiss_error(self) -> None:
        with self._lock:
            self.state.error = None

    # --- reset ---
    def reset(self) -> bool:
        """First call arms the confirmation; a second call within the window resets.

        Returns True when the session was actually cleared.
        """
        with self._lock:
            now = self._clock()
            if now >= self.state.confirm_reset_until:
                self.state.confirm_reset_until = now + RESET_CONFIRM_WINDOW
                return False
            self._generation += 1
            self.state = SessionState()
        logger.info("Session reset")
        return True

    # --- views ---
    def segments(self) -> List[Segment]:
        state = self.state
        if state.purified_result is None or not state.edited_text:
            return [Segment(state.edited_text)]
        return annotate(state.edited_text, state.purified_result.corrections)

    def download(self) -> Optional[Tuple[str, str]]:
        """Return ``(filename, content)``, or None when there is nothing to save."""
        state = self.state
        content = state.edited_text or (
            state.purified_result.purified_text if state.purified_result else ""
        ) or state.original_text
        if not content:
            return None
        return download_name(state.file_name), content

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            state = self.state
            result = state.purified_result
            return {
                "status": state.status.value,
                "originalText": state.original_text,
                "fileName": state.file_name,
                "result": result.to_dict() if result else None,
                "editedText": state.edited_text,
                "highlightedHtml": str(render_html(self.segments())),
                "hints": state.hints,
                "error": state.error,
                "cooldownSeconds": self.cooldown_seconds,
                "confirmReset": self.confirm_reset,
                "charCount": len(state.edited_text) or len(state.original_text),
            }
