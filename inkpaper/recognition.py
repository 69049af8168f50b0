"""
Recognition Adapter
===================
Bridges stroke sessions to an external on-device handwriting recognizer.

The recognizer is an opaque capability described by `RecognitionEngine`;
anything with the same three coroutine methods can be plugged in, including
test doubles. The adapter owns:
    - Input building: strokes → canonical Ink (order preserved exactly)
    - Model readiness: check / download before the first call
    - Output normalization: ranked candidates, truncated to the top 5
    - Submission: recognize a capture and append the best text to a store
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Sequence, Union

from .capture import StrokeCapture
from .errors import (
    ModelNotReady,
    RecognitionFailed,
    RecognitionInProgress,
)
from .models import Candidate, Ink, RecognitionResult, RecognizedEntry, Stroke
from .store import RecognitionStore

logger = logging.getLogger(__name__)

# Sanskrit, Devanagari script
DEFAULT_LANGUAGE_CODE = "sa-Deva-IN"
DEFAULT_MAX_CANDIDATES = 5


class RecognitionEngine(Protocol):
    """External handwriting recognizer."""

    async def is_model_downloaded(self, language_code: str) -> bool:
        ...

    async def download_model(self, language_code: str) -> None:
        ...

    async def recognize(self, ink: Ink) -> Sequence[object]:
        """Ranked candidates: strings, (text, score) pairs or objects with .text."""
        ...


@dataclass
class Submission:
    """Outcome of submitting a capture for recognition."""
    result: RecognitionResult
    entry: Optional[RecognizedEntry] = None
    cleared: bool = False


class RecognitionAdapter:
    """
    Adapter between stroke sessions and a RecognitionEngine.

    Usage:
        adapter = RecognitionAdapter(engine)
        await adapter.prepare()
        submission = await adapter.submit(capture, store, question_index=1)
        print(submission.result.best_text)
    """

    def __init__(
        self,
        engine: RecognitionEngine,
        language_code: str = DEFAULT_LANGUAGE_CODE,
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
    ):
        self.engine = engine
        self.language_code = language_code
        self.max_candidates = max_candidates
        self._ready = False
        self._in_flight: set[str] = set()

    @property
    def ready(self) -> bool:
        return self._ready

    def is_busy(self, session_id: str) -> bool:
        return session_id in self._in_flight

    # ─── Input ────────────────────────────────────────────────────────────

    @staticmethod
    def build_input(
        session: Union[StrokeCapture, Iterable[Stroke]],
    ) -> Ink:
        """
        Convert a stroke session into the engine's canonical input.
        Pure and total: an empty session gives an empty Ink.
        """
        if isinstance(session, StrokeCapture):
            session = session.snapshot()
        return Ink(strokes=tuple(
            tuple(point.as_triple() for point in stroke.points)
            for stroke in session
        ))

    # ─── Model ────────────────────────────────────────────────────────────

    async def prepare(self):
        """
        Make sure the recognition model is available, downloading it when
        missing.

        Raises:
            ModelNotReady: If the check or the download fails.
        """
        try:
            downloaded = await self.engine.is_model_downloaded(self.language_code)
            if not downloaded:
                logger.info(f"Downloading recognition model: {self.language_code}")
                await self.engine.download_model(self.language_code)
        except Exception as e:
            self._ready = False
            logger.error(f"Model init failed: {e}")
            raise ModelNotReady(self.language_code, e) from e

        self._ready = True
        logger.info(f"Recognition model ready: {self.language_code}")

    # ─── Recognition ──────────────────────────────────────────────────────

    async def recognize(self, ink: Ink) -> RecognitionResult:
        """
        Run the engine on `ink`.

        Returns:
            RecognitionResult with at most `max_candidates` candidates,
            in the engine's order.

        Raises:
            ModelNotReady: If `prepare()` has not succeeded.
            RecognitionFailed: If the engine raises or returns unusable
                candidates.
        """
        if not self._ready:
            raise ModelNotReady(self.language_code)

        try:
            raw = await self.engine.recognize(ink)
        except Exception as e:
            logger.warning(f"Recognition error: {e}")
            raise RecognitionFailed(e) from e

        try:
            candidates = [
                self._normalize(c) for c in list(raw or [])[:self.max_candidates]
            ]
        except Exception as e:
            logger.warning(f"Unusable recognition output: {e}")
            raise RecognitionFailed(e) from e

        result = RecognitionResult(candidates=candidates)
        logger.debug(
            f"Recognized {ink.stroke_count} strokes → "
            f"{len(candidates)} candidates, best={result.best_text!r}"
        )
        return result

    async def submit(
        self,
        capture: StrokeCapture,
        store: RecognitionStore,
        question_index: Optional[int] = None,
        clear_on_success: bool = True,
    ) -> Submission:
        """
        Recognize a capture and store the best candidate.

        The input is built from the capture's state at call time. The capture
        is only cleared when it was not touched while the engine was running;
        on failure it is left exactly as it was.

        Raises:
            RecognitionInProgress: If this capture is already being recognized.
            ModelNotReady, RecognitionFailed: From `recognize()`.
        """
        session_id = capture.session_id
        if session_id in self._in_flight:
            raise RecognitionInProgress(session_id)

        self._in_flight.add(session_id)
        try:
            revision = capture.revision
            ink = self.build_input(capture.snapshot())
            result = await self.recognize(ink)
        finally:
            self._in_flight.discard(session_id)

        submission = Submission(result=result)
        text = result.best_text.strip()
        if text:
            submission.entry = store.add(text, question_index=question_index)

        if clear_on_success and capture.revision == revision:
            capture.clear()
            submission.cleared = True

        return submission

    def choose(
        self,
        store: RecognitionStore,
        result: RecognitionResult,
        index: int,
        question_index: Optional[int] = None,
    ) -> RecognizedEntry:
        """Store an alternative candidate picked by the user."""
        candidate = result.candidates[index]
        return store.add(candidate.text.strip(), question_index=question_index)

    @staticmethod
    def _normalize(raw: object) -> Candidate:
        if isinstance(raw, Candidate):
            return raw
        if isinstance(raw, str):
            return Candidate(text=raw)
        if isinstance(raw, (tuple, list)):
            text = raw[0]
            score = raw[1] if len(raw) > 1 else None
            return Candidate(text=str(text), score=score)
        return Candidate(
            text=str(getattr(raw, "text")),
            score=getattr(raw, "score", None),
        )
