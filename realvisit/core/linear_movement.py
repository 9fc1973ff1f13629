"""
Linear mouse movement — a classic scripted-pointer fingerprint.

Human hands jitter; automation tends to move the cursor along perfectly
straight segments at constant velocity. For each consecutive triplet of
samples we take the 2-D cross product of the two displacement vectors:
near zero means both steps point the same way.

Heuristic only: a slow deliberate drag can trip it. The classifier needs at
least two bot signals, so this never produces a BOT verdict alone.
"""

from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

TRAIL_CAPACITY = 100       # samples kept per visit
MIN_SAMPLES = 10           # below this there's not enough evidence
WINDOW_SIZE = 20           # most recent samples examined
CROSS_THRESHOLD = 10       # |cross| below this = collinear step
LINEAR_RATIO = 0.8         # strictly more than 80% collinear = linear


@dataclass(frozen=True)
class MouseSample:
    x: float
    y: float
    t: float = 0.0


class MouseTrail:
    """Bounded window of mouse samples; the oldest are evicted first."""

    def __init__(self, samples: Iterable[MouseSample] = (), capacity: int = TRAIL_CAPACITY):
        self._samples: deque[MouseSample] = deque(samples, maxlen=capacity)

    def add(self, sample: MouseSample) -> None:
        self._samples.append(sample)

    @property
    def samples(self) -> list[MouseSample]:
        return list(self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    def is_linear(self) -> bool:
        return detect_linear_movement(self.samples)


def detect_linear_movement(samples: Sequence[MouseSample]) -> bool:
    if len(samples) < MIN_SAMPLES:
        return False

    window = samples[-WINDOW_SIZE:]
    linear_count = 0

    for i in range(2, len(window)):
        a, b, c = window[i - 2], window[i - 1], window[i]
        dx1, dy1 = b.x - a.x, b.y - a.y
        dx2, dy2 = c.x - b.x, c.y - b.y

        if abs(dx1 * dy2 - dy1 * dx2) < CROSS_THRESHOLD:
            linear_count += 1

    return linear_count / (len(window) - 2) > LINEAR_RATIO
