"""
Document Assembler
==================
Builds the sectioned Paper model from store contents and a marks map.

Rules:
    - questions_per_section = ceil(N / S)
    - sections are consecutive ranges, labelled "SECTION - A", "SECTION - B", ...
    - question text is the question's entries, oldest first, joined by a space
    - total marks count explicitly set marks only, while a question without
      marks still shows [5] on the page
"""

from __future__ import annotations

import logging
import math
import string
from typing import Mapping, Optional, Union

from .errors import InvalidMarksInput, SectionLimitExceeded
from .models import (
    PLACEHOLDER_TEXT,
    Paper,
    PaperQuestion,
    PaperSection,
    PaperSetup,
)
from .store import RecognitionStore, format_tag

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "QUESTION PAPER"
SECTION_LETTERS = string.ascii_uppercase


def section_label(index: int) -> str:
    """
    Label for the 1-based section `index`.

    Raises:
        SectionLimitExceeded: Beyond the 26th section.
    """
    if index < 1 or index > len(SECTION_LETTERS):
        raise SectionLimitExceeded(index, len(SECTION_LETTERS))
    return f"SECTION - {SECTION_LETTERS[index - 1]}"


def partition_questions(total_questions: int, sections: int) -> list[list[int]]:
    """
    Split questions 1..N into consecutive ranges of ceil(N / S).
    Ranges past the last question are dropped, so fewer than S ranges come
    back when S > N.
    """
    if total_questions < 1 or sections < 1:
        return []
    per_section = math.ceil(total_questions / sections)
    ranges = []
    current = 1
    for _ in range(sections):
        if current > total_questions:
            break
        end = min(current + per_section - 1, total_questions)
        ranges.append(list(range(current, end + 1)))
        current = end + 1
    return ranges


class MarksSheet:
    """
    Sparse map of question number to marks.
    Invalid input raises and leaves the sheet unchanged.
    """

    def __init__(self, marks: Optional[Mapping[int, int]] = None):
        self._marks: dict[int, int] = {}
        for question, value in (marks or {}).items():
            self.set(question, value)

    def set(self, question_number: int, value: int):
        if question_number < 1 or isinstance(value, bool) \
                or not isinstance(value, int) or value < 0:
            raise InvalidMarksInput(question_number, value)
        self._marks[question_number] = value

    def set_from_text(self, question_number: int, text: str) -> Optional[int]:
        """
        Apply a typed marks value. Blank input clears the question's marks.

        Returns:
            The stored marks, or None when cleared.
        """
        text = (text or "").strip()
        if not text:
            self.clear(question_number)
            return None
        try:
            value = int(text)
        except ValueError:
            raise InvalidMarksInput(question_number, text) from None
        self.set(question_number, value)
        return value

    def clear(self, question_number: int):
        self._marks.pop(question_number, None)

    def get(self, question_number: int) -> Optional[int]:
        return self._marks.get(question_number)

    def as_dict(self) -> dict[int, int]:
        return dict(self._marks)

    @property
    def total(self) -> int:
        return sum(self._marks.values())

    def __contains__(self, question_number: int) -> bool:
        return question_number in self._marks

    def __len__(self) -> int:
        return len(self._marks)


class DocumentAssembler:
    """
    Assembles a Paper from a RecognitionStore.

    Usage:
        assembler = DocumentAssembler(store)
        paper = assembler.build(PaperSetup(total_questions=7, sections=2),
                                marks={1: 10})
    """

    def __init__(self, store: RecognitionStore):
        self.store = store

    def build(
        self,
        setup: PaperSetup,
        marks: Union[MarksSheet, Mapping[int, int], None] = None,
    ) -> Paper:
        """
        Build the paper model.

        Args:
            setup: Question count, title, time and section count.
            marks: Sparse marks map; missing questions show the default marks.

        Returns:
            A fresh Paper.

        Raises:
            SectionLimitExceeded: If the questions spread over more than 26
                sections.
            InvalidMarksInput: If a marks value is negative or not an integer.
        """
        if not isinstance(marks, MarksSheet):
            marks = MarksSheet(marks)
        marks_map = marks.as_dict()

        questions: dict[int, PaperQuestion] = {}
        for number in range(1, setup.total_questions + 1):
            text = self.store.question_text(number)
            questions[number] = PaperQuestion(
                number=number,
                text=text if text else PLACEHOLDER_TEXT,
                marks=marks_map.get(number),
            )

        sections = [
            PaperSection(
                index=i,
                label=section_label(i),
                question_numbers=numbers,
            )
            for i, numbers in enumerate(
                partition_questions(setup.total_questions, setup.sections),
                start=1,
            )
        ]

        title = (setup.title or "").strip() or DEFAULT_TITLE
        paper = Paper(
            title=title,
            time_hours=setup.time_hours,
            section_count=setup.sections,
            questions=questions,
            sections=sections,
            total_marks=sum(marks_map.values()),
        )

        logger.info(
            f"Assembled paper '{paper.title}': "
            f"{len(questions)} questions in {len(sections)} sections, "
            f"{paper.total_marks} marks"
        )
        return paper

    def paper_text(self, setup: PaperSetup) -> str:
        """
        Plain-text dump of every question, `Q<n>: <text>` per paragraph.
        Unanswered questions keep an empty body.
        """
        return "\n\n".join(
            format_tag(n, self.store.question_text(n))
            for n in range(1, setup.total_questions + 1)
        )
