"""
Errors
======
Exception hierarchy for the capture-to-document pipeline.

Every failure is scoped to a single operation: capture and store errors
leave prior state intact, recognition and export errors are reported to the
caller with strokes and marks preserved for a retry.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class InkPaperError(Exception):
    """Base class for all inkpaper errors."""


# ─── Capture ──────────────────────────────────────────────────────────────────


class CaptureError(InkPaperError):
    """Invalid operation on a stroke session."""


class NoActiveStroke(CaptureError):
    """A point was added while no stroke was open."""

    def __init__(self):
        super().__init__("No active stroke: call begin_stroke() first")


class InvalidPoint(CaptureError):
    """A point would break the non-decreasing timestamp order of a stroke."""

    def __init__(self, t: int, last_t: int):
        self.t = t
        self.last_t = last_t
        super().__init__(
            f"Point timestamp {t}ms is earlier than previous point ({last_t}ms)"
        )


# ─── Recognition ──────────────────────────────────────────────────────────────


class RecognitionError(InkPaperError):
    """Recognition could not produce a result."""


class ModelNotReady(RecognitionError):
    """The recognition model is not initialized or not downloaded."""

    def __init__(self, language_code: str, cause: Optional[BaseException] = None):
        self.language_code = language_code
        self.cause = cause
        message = f"Recognition model not ready: {language_code}"
        if cause is not None:
            message += f" ({cause})"
        super().__init__(message)


class RecognitionFailed(RecognitionError):
    """The external engine raised while recognizing."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Recognition failed: {cause}")


class RecognitionInProgress(RecognitionError):
    """A submission is already outstanding for this stroke session."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(
            f"Recognition already in progress for session {session_id}"
        )


# ─── Paper assembly ───────────────────────────────────────────────────────────


class PaperError(InkPaperError):
    """Invalid paper setup or marks input."""


class InvalidMarksInput(PaperError):
    """Marks input was non-numeric or negative."""

    def __init__(self, question_number: int, value: object):
        self.question_number = question_number
        self.value = value
        super().__init__(
            f"Invalid marks for Q{question_number}: {value!r} "
            f"(expected a non-negative integer)"
        )


class SectionLimitExceeded(PaperError):
    """More sections were requested than there are section letters."""

    def __init__(self, requested: int, limit: int):
        self.requested = requested
        self.limit = limit
        super().__init__(
            f"{requested} sections requested, at most {limit} are supported"
        )


# ─── Export ───────────────────────────────────────────────────────────────────


class ExportError(InkPaperError):
    """A document could not be produced or written."""


class FileWriteFailed(ExportError):
    """Writing an export file failed; earlier exports are untouched."""

    def __init__(self, path: Path, cause: BaseException):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Failed to write {self.path}: {cause}")


class FontLoadFailed(ExportError):
    """A font could not be loaded; renderers recover with a default font."""

    def __init__(self, path: Optional[str], cause: BaseException):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to load font {path}: {cause}")
