"""Typed models used by the transcript purifier."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class AppStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    REVIEWING = "reviewing"


@dataclass(frozen=True)
class Correction:
    original: str
    corrected: str
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {"original": self.original, "corrected": self.corrected, "reason": self.reason}


@dataclass(frozen=True)
class PurificationResult:
    purified_text: str
    corrections: Tuple[Correction, ...] = ()
    uncertain_parts: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PurificationResult":
        """Build a result from the model's camelCase JSON payload.

        Raises KeyError, TypeError or ValueError when the payload does not have
        the expected shape; callers translate those into MalformedResponse.
        """
        if not isinstance(data, dict):
            raise TypeError(f"expected an object, got {type(data).__name__}")
        purified_text = data["purifiedText"]
        if not isinstance(purified_text, str):
            raise TypeError("purifiedText must be a string")

        corrections: List[Correction] = []
        for item in data["corrections"]:
            if not isinstance(item, dict):
                raise TypeError("each correction must be an object")
            values = [item["original"], item["corrected"], item["reason"]]
            if not all(isinstance(value, str) for value in values):
                raise TypeError("correction fields must be strings")
            corrections.append(Correction(*values))

        uncertain_parts = data["uncertainParts"]
        if not isinstance(uncertain_parts, list) or not all(isinstance(p, str) for p in uncertain_parts):
            raise TypeError("uncertainParts must be a list of strings")

        return cls(
            purified_text=purified_text,
            corrections=tuple(corrections),
            uncertain_parts=tuple(uncertain_parts),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "purifiedText": self.purified_text,
            "corrections": [c.to_dict() for c in self.corrections],
            "uncertainParts": list(self.uncertain_parts),
        }


@dataclass(frozen=True)
class Span:
    start: int
    end: int
    correction: Correction

    def overlaps(self, start: int, end: int) -> bool:
        return start < self.end and end > self.start


@dataclass(frozen=True)
class Segment:
    text: str
    correction: Optional[Correction] = None

    @property
    def annotated(self) -> bool:
        return self.correction is not None


@dataclass
class SessionState:
    status: AppStatus = AppStatus.IDLE
    original_text: str = ""
    file_name: str = ""
    purified_result: Optional[PurificationResult] = None
    edited_text: str = ""
    hints: str = ""
    error: Optional[str] = None
    cooldown_until: float = 0.0
    confirm_reset_until: float = 0.0
