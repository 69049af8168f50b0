"""
Data Models
===========
Pydantic models for strokes, recognition output, stored entries and the
exam paper built at export time.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)

# Marks shown next to a question that has no explicit entry in the marks map.
# Display only: never counted towards Paper.total_marks.
DEFAULT_DISPLAY_MARKS = 5

PLACEHOLDER_TEXT = "[Write your question here]"


# ─── Enums ────────────────────────────────────────────────────────────────────


class BlockKind(str, Enum):
    """Kind of layout block handed to a page renderer."""
    TITLE = "title"
    META_ROW = "meta_row"
    INSTRUCTIONS_HEADING = "instructions_heading"
    INSTRUCTION = "instruction"
    SECTION_HEADING = "section_heading"
    QUESTION = "question"


class Align(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class ExportFormat(str, Enum):
    """Supported export document formats."""
    DOC = "doc"
    PDF = "pdf"


# ─── Stroke Models ────────────────────────────────────────────────────────────


class TimedPoint(BaseModel):
    """A single pointer sample: position plus capture time in milliseconds."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    t: int = Field(description="Capture time in milliseconds")

    def as_triple(self) -> tuple[float, float, int]:
        return (self.x, self.y, self.t)


class Stroke(BaseModel):
    """
    One continuous pen-down to pen-up gesture.
    Holds at least one point, timestamps never decrease.
    """
    model_config = ConfigDict(frozen=True)

    points: tuple[TimedPoint, ...]

    @field_validator("points")
    @classmethod
    def _check_points(cls, points: tuple[TimedPoint, ...]):
        if not points:
            raise ValueError("a stroke needs at least one point")
        for prev, curr in zip(points, points[1:]):
            if curr.t < prev.t:
                raise ValueError(
                    f"timestamps must be non-decreasing ({curr.t} < {prev.t})"
                )
        return points

    @property
    def duration_ms(self) -> int:
        return self.points[-1].t - self.points[0].t


class Ink(BaseModel):
    """
    Canonical recognition-engine input: ordered strokes of ordered
    (x, y, t) triples.
    """
    model_config = ConfigDict(frozen=True)

    strokes: tuple[tuple[tuple[float, float, int], ...], ...] = ()

    @property
    def stroke_count(self) -> int:
        return len(self.strokes)

    @property
    def point_count(self) -> int:
        return sum(len(s) for s in self.strokes)

    @property
    def is_empty(self) -> bool:
        return self.point_count == 0


# ─── Recognition Models ───────────────────────────────────────────────────────


class Candidate(BaseModel):
    """One ranked recognition result."""
    model_config = ConfigDict(frozen=True)

    text: str
    score: Any = Field(
        default=None,
        description="Opaque engine rank/score, passed through untouched",
    )


class RecognitionResult(BaseModel):
    """Top candidates from one recognition call, in engine order."""
    candidates: list[Candidate] = Field(default_factory=list)

    @computed_field
    @property
    def best(self) -> Optional[Candidate]:
        return self.candidates[0] if self.candidates else None

    @computed_field
    @property
    def best_text(self) -> str:
        best = self.best
        return best.text if best is not None else ""

    @property
    def texts(self) -> list[str]:
        return [c.text for c in self.candidates]


# ─── Store Models ─────────────────────────────────────────────────────────────


class RecognizedEntry(BaseModel):
    """
    A recognized piece of text. Entries are never mutated once stored.
    `question_index` ties the entry to a question on the paper.
    """
    model_config = ConfigDict(frozen=True)

    text: str
    time: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    question_index: Optional[int] = Field(default=None, ge=1)
    sequence: int = Field(default=0, ge=0)

    @property
    def display_text(self) -> str:
        """Text in the `Q<n>: <text>` form used by listings and exports."""
        if self.question_index is None:
            return self.text
        return f"Q{self.question_index}: {self.text}"


# ─── Paper Models ─────────────────────────────────────────────────────────────


class PaperSetup(BaseModel):
    """Inputs collected before writing a paper."""
    total_questions: int = Field(ge=1)
    title: Optional[str] = None
    time_hours: int = Field(default=3, ge=1)
    sections: int = Field(default=1, ge=1)


class PaperQuestion(BaseModel):
    """A single question as it appears on the paper."""
    number: int = Field(ge=1)
    text: str = PLACEHOLDER_TEXT
    marks: Optional[int] = Field(default=None, ge=0)

    @computed_field
    @property
    def display_marks(self) -> int:
        return self.marks if self.marks is not None else DEFAULT_DISPLAY_MARKS

    @computed_field
    @property
    def has_text(self) -> bool:
        return self.text != PLACEHOLDER_TEXT


class PaperSection(BaseModel):
    """A labelled, contiguous run of questions."""
    index: int = Field(ge=1)
    label: str
    question_numbers: list[int] = Field(default_factory=list)


class Paper(BaseModel):
    """
    Export-time paper model. Built fresh for every export, never persisted.
    """
    title: str
    time_hours: int
    section_count: int
    questions: dict[int, PaperQuestion] = Field(default_factory=dict)
    sections: list[PaperSection] = Field(default_factory=list)
    total_marks: int = Field(
        default=0,
        ge=0,
        description="Sum of explicitly set marks only",
    )

    @property
    def time_label(self) -> str:
        unit = "Hours" if self.time_hours > 1 else "Hour"
        return f"Time: {self.time_hours} {unit}"

    @property
    def marks_label(self) -> str:
        return f"Maximum Marks: {self.total_marks}"

    def section_questions(self, section: PaperSection) -> list[PaperQuestion]:
        return [self.questions[n] for n in section.question_numbers]


# ─── Layout Model ─────────────────────────────────────────────────────────────


class LayoutBlock(BaseModel):
    """
    One renderer-independent block of the PDF layout.
    `right_text` is the right-hand cell of two-column rows.
    """
    kind: BlockKind
    text: str
    right_text: Optional[str] = None
    align: Align = Align.LEFT
    bold: bool = False
    font_size: float = 12.0
    space_after: float = 0.0


# ─── Reports ──────────────────────────────────────────────────────────────────


class PaperReport(BaseModel):
    """Summary of a paper before export."""
    total_questions: int = 0
    section_count: int = 0
    questions_with_text: int = 0
    placeholder_questions: list[int] = Field(default_factory=list)
    questions_missing_marks: list[int] = Field(default_factory=list)
    explicit_marks_total: int = 0
    display_marks_total: int = 0

    @computed_field
    @property
    def completion_rate(self) -> float:
        if self.total_questions == 0:
            return 0.0
        return round(
            self.questions_with_text / self.total_questions * 100,
            2
        )


class ExportResult(BaseModel):
    """A completed export on disk."""
    format: ExportFormat
    path: str
    size_bytes: int = 0
    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
