"""
RTF Encoder
===========
Serializes a Paper into a rich-text (.doc) document.

All non-ASCII text goes through `escape_rtf_text`, so the output is pure
ASCII: codepoints up to 32767 become `\\u<n>?`, higher ones are split into a
UTF-16 surrogate pair whose halves are shifted into the signed 16-bit range.
"""

from __future__ import annotations

import logging

from .models import Paper

logger = logging.getLogger(__name__)

INSTRUCTIONS = (
    "1. All questions are compulsory.",
    "2. Write your answers in the space provided.",
    "3. Figures to the right indicate full marks.",
)

FONT_NAME = "Noto Sans Devanagari"
GENERATOR = "Sanskrit Handwriting App"

_RTF_SPECIALS = {0x5C, 0x7B, 0x7D}  # \ { }


def escape_rtf_text(text: str) -> str:
    """Escape `text` for an RTF body, codepoint by codepoint."""
    parts: list[str] = []
    for ch in text:
        cp = ord(ch)
        if cp < 128:
            if cp in _RTF_SPECIALS:
                parts.append("\\" + ch)
            elif cp == 0x0A:
                parts.append("\\par\n")
            else:
                parts.append(ch)
        elif cp <= 32767:
            parts.append(f"\\u{cp}?")
        else:
            hi = 0xD800 + ((cp - 0x10000) >> 10)
            lo = 0xDC00 + ((cp - 0x10000) & 0x3FF)
            parts.append(f"\\u{hi - 65536}?\\u{lo - 65536}?")
    return "".join(parts)


class RtfEncoder:
    """Renders Paper models as RTF text."""

    def encode(self, paper: Paper) -> str:
        lines: list[str] = []
        write = lines.append

        # ── Header ────────────────────────────────────────────────────
        write("{\\rtf1\\ansi\\ansicpg1252\\deff0\\nouicompat\\deflang1033\n")
        write(f"{{\\fonttbl{{\\f0\\fnil\\fcharset0 {FONT_NAME};}}}}\n")
        write(f"{{\\*\\generator {GENERATOR}}}\n")
        write("\\viewkind4\\uc1 \n")
        write("\\pard\\sa200\\sl276\\slmult1\\f0\\fs22\\lang9\\par\n")

        # ── Title, time and marks ─────────────────────────────────────
        write(f"\\pard\\qc{{\\b\\fs28 {escape_rtf_text(paper.title)}\\par}}\n")
        write("\\par\n")
        write("\\trowd\\trgaph108\\trleft-108\n")
        write("\\cellx4500\\cellx9000\n")
        write(f"{paper.time_label}\\cell")
        write(f"{paper.marks_label}\\cell\\row")
        write("\\par\n")

        # ── Instructions ──────────────────────────────────────────────
        write("\\pard\\ql{\\b INSTRUCTIONS:\\par}\n")
        for line in INSTRUCTIONS:
            write(f"{line}\\par\n")
        write("\\par\n")

        # ── Sections ──────────────────────────────────────────────────
        for section in paper.sections:
            write(f"\\pard\\qc{{\\b\\fs20 {section.label}\\par}}\n")
            write("\\par\n")
            for question in paper.section_questions(section):
                write("\\trowd\\trgaph108\\trleft-108\n")
                write("\\cellx8000\\cellx9000\n")
                write(
                    f"{{\\b Q.{question.number}}} "
                    f"{escape_rtf_text(question.text)}\\cell"
                )
                write(f"{{\\b [{question.display_marks}]}}\\cell\\row")
                write("\\par\n")
                write("\\par\n")
                write("\\par\n")

        write("}")
        document = "".join(lines)
        logger.debug(f"Encoded RTF document ({len(document)} chars)")
        return document
