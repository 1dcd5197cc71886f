import os
import sys

import pytest

# Add the project root to the path so we can import from the package
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from purifier.models import Correction, PurificationResult  # noqa: E402


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_result():
    return PurificationResult(
        purified_text="AI研究是一个重要的领域。我们今天讨论它。",
        corrections=(
            Correction(original="爱研究", corrected="AI研究", reason="Transcription typo"),
            Correction(original="那个我们", corrected="我们", reason="Removed filler"),
        ),
        uncertain_parts=("重要",),
    )


@pytest.fixture
def sample_payload(sample_result):
    return sample_result.to_dict()
