"""
Ink Paper Engine
================
Main orchestrator that wires stroke capture, recognition, the recognition
store, paper assembly and document export together.

Usage:
    engine = InkPaperEngine(EngineConfig(output_dir="papers"), recognizer)
    await engine.prepare()
    capture = engine.new_capture()
    ...  # feed pointer samples
    await engine.submit(capture, question_index=1)
    paper = engine.build_paper(PaperSetup(total_questions=5), marks={1: 10})
    result = await engine.export_pdf(paper)

Architecture:
    StrokeCapture → RecognitionAdapter → RecognitionStore →
    DocumentAssembler → Paper → RtfEncoder (.doc) | PdfLayoutEngine (.pdf)
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

from .assembler import DocumentAssembler, MarksSheet
from .capture import StrokeCapture
from .errors import ModelNotReady
from .models import ExportFormat, ExportResult, Paper, PaperReport, PaperSetup
from .pdf_layout import FitzPageRenderer, PageRenderer, PdfLayoutEngine
from .recognition import (
    DEFAULT_LANGUAGE_CODE,
    DEFAULT_MAX_CANDIDATES,
    RecognitionAdapter,
    RecognitionEngine,
    Submission,
)
from .rtf import RtfEncoder
from .storage import init_storage, unique_export_path, write_atomic
from .store import RecognitionStore
from .validator import PaperValidator

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class EngineConfig:
    """Configuration for the ink paper engine."""

    # Recognition
    language_code: str = DEFAULT_LANGUAGE_CODE
    max_candidates: int = DEFAULT_MAX_CANDIDATES

    # Output settings
    output_dir: str = "output"
    font_path: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


class InkPaperEngine:
    """
    End-to-end pipeline from handwriting to exported papers.

    One engine owns one RecognitionStore; every capture surface and every
    export reads the same store through it.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        recognizer: Optional[RecognitionEngine] = None,
        renderer: Optional[PageRenderer] = None,
        store: Optional[RecognitionStore] = None,
    ):
        self.config = config or EngineConfig()
        self._setup_logging()

        self.store = store if store is not None else RecognitionStore()
        self.adapter = (
            RecognitionAdapter(
                recognizer,
                language_code=self.config.language_code,
                max_candidates=self.config.max_candidates,
            )
            if recognizer is not None
            else None
        )
        self.assembler = DocumentAssembler(self.store)
        self.validator = PaperValidator()
        self.rtf_encoder = RtfEncoder()
        self.layout_engine = PdfLayoutEngine()
        self.renderer = renderer or FitzPageRenderer(font_path=self.config.font_path)
        self._export_lock = threading.Lock()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        package_logger = logging.getLogger("inkpaper")
        package_logger.setLevel(log_level)

        # Console handler
        if not package_logger.handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(
                logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
            )
            package_logger.addHandler(console)

        # File handler
        if self.config.log_file:
            log_dir = Path(self.config.log_file).parent
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(
                self.config.log_file, encoding="utf-8"
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(
                logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
            )
            package_logger.addHandler(file_handler)

    # ─── Capture & Recognition ────────────────────────────────────────────

    def new_capture(self) -> StrokeCapture:
        return StrokeCapture()

    async def prepare(self):
        """Make the recognition model available."""
        await self._require_adapter().prepare()

    async def submit(
        self,
        capture: StrokeCapture,
        question_index: Optional[int] = None,
    ) -> Submission:
        """Recognize a capture and store its best candidate."""
        return await self._require_adapter().submit(
            capture, self.store, question_index=question_index
        )

    def _require_adapter(self) -> RecognitionAdapter:
        if self.adapter is None:
            raise ModelNotReady(self.config.language_code)
        return self.adapter

    # ─── Paper ────────────────────────────────────────────────────────────

    def build_paper(
        self,
        setup: PaperSetup,
        marks: Union[MarksSheet, Mapping[int, int], None] = None,
    ) -> Paper:
        return self.assembler.build(setup, marks)

    def validate(self, paper: Paper) -> PaperReport:
        return self.validator.validate(paper)

    def paper_text(self, setup: PaperSetup) -> str:
        return self.assembler.paper_text(setup)

    # ─── Export ───────────────────────────────────────────────────────────

    async def export_doc(self, paper: Paper) -> ExportResult:
        """Write the paper as an RTF .doc file under a fresh name."""
        content = self.rtf_encoder.encode(paper)
        return await asyncio.to_thread(self._write_export, ExportFormat.DOC, content)

    async def export_pdf(self, paper: Paper) -> ExportResult:
        """Lay out, render and write the paper as a PDF under a fresh name."""
        blocks = self.layout_engine.layout(paper)
        data = await asyncio.to_thread(self.renderer.render, blocks)
        return await asyncio.to_thread(self._write_export, ExportFormat.PDF, data)

    async def export(self, paper: Paper, fmt: ExportFormat) -> ExportResult:
        if fmt == ExportFormat.PDF:
            return await self.export_pdf(paper)
        return await self.export_doc(paper)

    def _write_export(
        self,
        fmt: ExportFormat,
        data: Union[str, bytes],
    ) -> ExportResult:
        with self._export_lock:
            output_dir = init_storage(self.config.output_dir)
            path = unique_export_path(output_dir, fmt.value)
            size = write_atomic(path, data)
        return ExportResult(format=fmt, path=str(path), size_bytes=size)
