"""
Paper Validator
===============
Pre-export check of an assembled paper.

Reports:
    - Total Questions / Sections
    - Questions With Recognized Text
    - Questions Still Showing the Placeholder
    - Questions Without Explicit Marks (shown as [5], counted as 0)
    - Explicit Marks Total vs. Marks Shown on the Page

Never blocks an export; it only reports.
"""

from __future__ import annotations

import logging

from .models import Paper, PaperReport

logger = logging.getLogger(__name__)


class PaperValidator:
    """
    Validates an assembled Paper and produces a PaperReport.
    """

    def validate(self, paper: Paper) -> PaperReport:
        """
        Run all checks on a paper.

        Args:
            paper: The assembled paper.

        Returns:
            PaperReport with completion and marks figures.
        """
        report = PaperReport(
            total_questions=len(paper.questions),
            section_count=len(paper.sections),
            explicit_marks_total=paper.total_marks,
        )

        if not paper.questions:
            logger.warning("Paper has no questions")
            return report

        with_text = 0
        display_total = 0
        for number in sorted(paper.questions):
            question = paper.questions[number]
            if question.has_text:
                with_text += 1
            else:
                report.placeholder_questions.append(number)
            if question.marks is None:
                report.questions_missing_marks.append(number)
            display_total += question.display_marks

        report.questions_with_text = with_text
        report.display_marks_total = display_total

        # Log summary
        logger.info("=" * 60)
        logger.info("PAPER REPORT")
        logger.info("=" * 60)
        logger.info(f"Total Questions: {report.total_questions}")
        logger.info(f"Sections: {report.section_count}")
        logger.info(
            f"Questions With Text: {report.questions_with_text} "
            f"({report.completion_rate}%)"
        )
        logger.info(
            f"Placeholder Questions: {len(report.placeholder_questions)}"
        )
        logger.info(
            f"Questions Without Marks: {len(report.questions_missing_marks)}"
        )
        logger.info(
            f"Maximum Marks (explicit): {report.explicit_marks_total}"
        )
        if report.display_marks_total != report.explicit_marks_total:
            logger.info(
                f"Marks shown on page: {report.display_marks_total}"
            )
        logger.info("=" * 60)

        return report
