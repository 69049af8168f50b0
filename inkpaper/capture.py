"""
Stroke Capture
==============
Accumulates pointer samples into an ordered stroke session.

Points and strokes keep the exact order they were received in; nothing is
dropped, merged or reordered. Recognition reads the session through
`snapshot()`, which copies it by value.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from .errors import InvalidPoint, NoActiveStroke
from .models import Stroke, TimedPoint

logger = logging.getLogger(__name__)


class StrokeCapture:
    """
    Mutable stroke session for one drawing surface.

    Usage:
        capture = StrokeCapture()
        capture.begin_stroke(TimedPoint(x=0, y=0, t=0))
        capture.extend_stroke(TimedPoint(x=5, y=5, t=10))
        capture.end_stroke()
        strokes = capture.snapshot()
    """

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id or uuid.uuid4().hex
        self._strokes: list[list[TimedPoint]] = []
        self._open = False
        self._revision = 0

    @property
    def revision(self) -> int:
        """Incremented on every mutation of the session."""
        return self._revision

    @property
    def is_stroke_open(self) -> bool:
        return self._open

    @property
    def is_empty(self) -> bool:
        return not self._strokes

    @property
    def stroke_count(self) -> int:
        return len(self._strokes)

    @property
    def point_count(self) -> int:
        return sum(len(s) for s in self._strokes)

    def begin_stroke(self, point: TimedPoint):
        """Start a new stroke with its first point. Ends any open stroke."""
        if self._open:
            self.end_stroke()
        self._strokes.append([point])
        self._open = True
        self._touch()

    def extend_stroke(self, point: TimedPoint):
        """
        Append a point to the most recently begun stroke.

        Raises:
            NoActiveStroke: If no stroke is open.
            InvalidPoint: If the point is older than the stroke's last point.
        """
        if not self._open:
            raise NoActiveStroke()

        current = self._strokes[-1]
        last_t = current[-1].t
        if point.t < last_t:
            raise InvalidPoint(point.t, last_t)

        current.append(point)
        self._touch()

    def end_stroke(self):
        """Finalize the current stroke. Safe to call repeatedly."""
        if not self._open:
            return
        self._open = False
        logger.debug(
            f"Stroke {len(self._strokes)} ended "
            f"({len(self._strokes[-1])} points)"
        )

    def undo(self) -> bool:
        """Remove the most recent stroke. Returns False if there was none."""
        if not self._strokes:
            return False
        self._strokes.pop()
        self._open = False
        self._touch()
        return True

    def clear(self):
        """Empty the session."""
        if not self._strokes and not self._open:
            return
        self._strokes = []
        self._open = False
        self._touch()

    def snapshot(self) -> tuple[Stroke, ...]:
        """Copy the session into immutable Stroke models."""
        return tuple(Stroke(points=tuple(points)) for points in self._strokes)

    def _touch(self):
        self._revision += 1
