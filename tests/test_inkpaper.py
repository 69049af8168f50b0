"""
Test Suite for Ink Paper Engine
===============================
Unit tests for capture, recognition, the store, paper assembly and the
document encoders.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from inkpaper.assembler import (
    DEFAULT_TITLE,
    DocumentAssembler,
    MarksSheet,
    partition_questions,
    section_label,
)
from inkpaper.capture import StrokeCapture
from inkpaper.errors import (
    InvalidMarksInput,
    InvalidPoint,
    ModelNotReady,
    NoActiveStroke,
    RecognitionFailed,
    RecognitionInProgress,
    SectionLimitExceeded,
)
from inkpaper.models import (
    PLACEHOLDER_TEXT,
    Align,
    BlockKind,
    Candidate,
    Ink,
    PaperSetup,
    RecognitionResult,
    Stroke,
    TimedPoint,
)
from inkpaper.pdf_layout import PdfLayoutEngine
from inkpaper.recognition import RecognitionAdapter
from inkpaper.rtf import RtfEncoder, escape_rtf_text
from inkpaper.store import RecognitionStore, split_tag
from inkpaper.validator import PaperValidator


@pytest.fixture(autouse=True)
def _quiet_package_logger():
    package_logger = logging.getLogger("inkpaper")
    handler = logging.NullHandler()
    package_logger.addHandler(handler)
    yield
    package_logger.removeHandler(handler)


def _pt(x: float, y: float, t: int) -> TimedPoint:
    return TimedPoint(x=x, y=y, t=t)


def _draw(capture: StrokeCapture, *points: tuple[float, float, int]):
    first, *rest = points
    capture.begin_stroke(_pt(*first))
    for p in rest:
        capture.extend_stroke(_pt(*p))
    capture.end_stroke()


class FakeRecognizer:
    """In-memory stand-in for the on-device recognizer."""

    def __init__(self, candidates=None, downloaded=True, fail=None,
                 download_error=None):
        self.candidates = list(candidates or [])
        self.downloaded = downloaded
        self.fail = fail
        self.download_error = download_error
        self.downloads: list[str] = []
        self.calls: list[Ink] = []
        self.gate = None

    async def is_model_downloaded(self, language_code):
        return self.downloaded

    async def download_model(self, language_code):
        if self.download_error:
            raise self.download_error
        self.downloads.append(language_code)
        self.downloaded = True

    async def recognize(self, ink):
        self.calls.append(ink)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise self.fail
        return list(self.candidates)


def _ready_adapter(recognizer: FakeRecognizer) -> RecognitionAdapter:
    adapter = RecognitionAdapter(recognizer)
    asyncio.run(adapter.prepare())
    return adapter


# ═══════════════════════════════════════════════════════════════════════════════
# MODEL TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestStrokeModels:
    """Test TimedPoint and Stroke models."""

    def test_point_is_immutable(self):
        point = _pt(1.0, 2.0, 3)
        with pytest.raises(ValidationError):
            point.x = 5.0

    def test_stroke_requires_points(self):
        with pytest.raises(ValidationError):
            Stroke(points=())

    def test_stroke_rejects_decreasing_time(self):
        with pytest.raises(ValidationError):
            Stroke(points=(_pt(0, 0, 10), _pt(1, 1, 5)))

    def test_stroke_allows_equal_timestamps(self):
        stroke = Stroke(points=(_pt(0, 0, 10), _pt(1, 1, 10)))
        assert stroke.duration_ms == 0

    def test_recognition_result_best(self):
        result = RecognitionResult(candidates=[
            Candidate(text="अ", score=0.9),
            Candidate(text="आ"),
        ])
        assert result.best.text == "अ"
        assert result.best_text == "अ"
        assert result.texts == ["अ", "आ"]

    def test_empty_result(self):
        result = RecognitionResult()
        assert result.best is None
        assert result.best_text == ""


# ═══════════════════════════════════════════════════════════════════════════════
# STROKE CAPTURE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestStrokeCapture:
    """Test the stroke session."""

    def test_points_kept_in_order(self):
        capture = StrokeCapture()
        _draw(capture, (0, 0, 0), (5, 5, 10), (10, 0, 20))
        _draw(capture, (3, 3, 30), (4, 4, 40))

        strokes = capture.snapshot()
        assert len(strokes) == 2
        assert [p.t for p in strokes[0].points] == [0, 10, 20]
        assert [p.t for p in strokes[1].points] == [30, 40]
        assert capture.point_count == 5

    def test_extend_without_stroke(self):
        capture = StrokeCapture()
        with pytest.raises(NoActiveStroke):
            capture.extend_stroke(_pt(0, 0, 0))

    def test_extend_after_end(self):
        capture = StrokeCapture()
        _draw(capture, (0, 0, 0))
        with pytest.raises(NoActiveStroke):
            capture.extend_stroke(_pt(1, 1, 1))
        assert capture.point_count == 1

    def test_end_is_idempotent(self):
        capture = StrokeCapture()
        capture.begin_stroke(_pt(0, 0, 0))
        capture.end_stroke()
        capture.end_stroke()
        assert capture.stroke_count == 1
        assert not capture.is_stroke_open

    def test_begin_closes_open_stroke(self):
        capture = StrokeCapture()
        capture.begin_stroke(_pt(0, 0, 0))
        capture.begin_stroke(_pt(5, 5, 5))
        capture.extend_stroke(_pt(6, 6, 6))
        strokes = capture.snapshot()
        assert len(strokes[0].points) == 1
        assert len(strokes[1].points) == 2

    def test_out_of_order_point_rejected(self):
        capture = StrokeCapture()
        capture.begin_stroke(_pt(0, 0, 10))
        with pytest.raises(InvalidPoint):
            capture.extend_stroke(_pt(1, 1, 5))
        capture.extend_stroke(_pt(2, 2, 15))
        assert [p.t for p in capture.snapshot()[0].points] == [10, 15]

    def test_undo_removes_last_stroke(self):
        capture = StrokeCapture()
        _draw(capture, (0, 0, 0))
        _draw(capture, (1, 1, 1))
        assert capture.undo() is True
        assert capture.stroke_count == 1
        assert capture.undo() is True
        assert capture.undo() is False

    def test_clear(self):
        capture = StrokeCapture()
        _draw(capture, (0, 0, 0), (1, 1, 1))
        revision = capture.revision
        capture.clear()
        assert capture.is_empty
        assert capture.revision > revision

    def test_snapshot_is_a_copy(self):
        capture = StrokeCapture()
        capture.begin_stroke(_pt(0, 0, 0))
        snap = capture.snapshot()
        capture.extend_stroke(_pt(1, 1, 1))
        assert len(snap[0].points) == 1


# ═══════════════════════════════════════════════════════════════════════════════
# RECOGNITION ADAPTER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestRecognitionAdapter:
    """Test input building, model readiness and submission."""

    def test_build_input_preserves_order(self):
        capture = StrokeCapture()
        _draw(capture, (0, 0, 0), (5, 5, 10), (10, 0, 20))
        _draw(capture, (10, 0, 20), (0, 0, 30))

        ink = RecognitionAdapter.build_input(capture)
        assert ink.strokes == (
            ((0.0, 0.0, 0), (5.0, 5.0, 10), (10.0, 0.0, 20)),
            ((10.0, 0.0, 20), (0.0, 0.0, 30)),
        )
        assert ink.stroke_count == 2
        assert ink.point_count == 5

    def test_build_input_no_dedup(self):
        capture = StrokeCapture()
        _draw(capture, (1, 1, 5), (1, 1, 5), (1, 1, 5))
        ink = RecognitionAdapter.build_input(capture.snapshot())
        assert ink.point_count == 3

    def test_build_input_empty_session(self):
        ink = RecognitionAdapter.build_input(StrokeCapture())
        assert ink.is_empty

    def test_prepare_downloads_missing_model(self):
        recognizer = FakeRecognizer(downloaded=False)
        adapter = RecognitionAdapter(recognizer)
        asyncio.run(adapter.prepare())
        assert adapter.ready
        assert recognizer.downloads == ["sa-Deva-IN"]

    def test_prepare_failure(self):
        recognizer = FakeRecognizer(
            downloaded=False, download_error=OSError("offline")
        )
        adapter = RecognitionAdapter(recognizer)
        with pytest.raises(ModelNotReady):
            asyncio.run(adapter.prepare())
        assert not adapter.ready

    def test_recognize_requires_model(self):
        adapter = RecognitionAdapter(FakeRecognizer(candidates=["x"]))
        with pytest.raises(ModelNotReady):
            asyncio.run(adapter.recognize(Ink()))

    def test_truncates_to_top_five(self):
        recognizer = FakeRecognizer(candidates=list("abcdefg"))
        adapter = _ready_adapter(recognizer)
        result = asyncio.run(adapter.recognize(Ink()))
        assert result.texts == ["a", "b", "c", "d", "e"]

    def test_normalizes_candidate_shapes(self):
        class Raw:
            def __init__(self, text, score):
                self.text = text
                self.score = score

        recognizer = FakeRecognizer(candidates=[("a", 0.5), Raw("b", 2), "c"])
        adapter = _ready_adapter(recognizer)
        result = asyncio.run(adapter.recognize(Ink()))
        assert result.texts == ["a", "b", "c"]
        assert result.candidates[0].score == 0.5
        assert result.candidates[1].score == 2
        assert result.candidates[2].score is None

    def test_malformed_candidate_beyond_top_five_ignored(self):
        recognizer = FakeRecognizer(candidates=list("abcde") + [object()])
        adapter = _ready_adapter(recognizer)
        result = asyncio.run(adapter.recognize(Ink()))
        assert result.texts == ["a", "b", "c", "d", "e"]

    def test_malformed_candidate_raises_recognition_failed(self):
        capture = StrokeCapture()
        _draw(capture, (0, 0, 0))
        store = RecognitionStore()
        adapter = _ready_adapter(FakeRecognizer(candidates=["a", object()]))

        with pytest.raises(RecognitionFailed):
            asyncio.run(adapter.submit(capture, store))
        assert capture.stroke_count == 1
        assert len(store) == 0

    def test_score_is_opaque(self):
        recognizer = FakeRecognizer(candidates=[("a", "rank-1")])
        adapter = _ready_adapter(recognizer)
        result = asyncio.run(adapter.recognize(Ink()))
        assert result.candidates[0].score == "rank-1"

    def test_end_to_end_scenario(self):
        capture = StrokeCapture()
        _draw(capture, (0, 0, 0), (5, 5, 10), (10, 0, 20))
        store = RecognitionStore()
        recognizer = FakeRecognizer(candidates=["अ", "आ", "इ"])
        adapter = _ready_adapter(recognizer)

        submission = asyncio.run(adapter.submit(capture, store))

        assert submission.result.best.text == "अ"
        assert len(submission.result.candidates) == 3
        assert store.snapshot()[0].text == "अ"
        assert recognizer.calls[0].strokes == (
            ((0.0, 0.0, 0), (5.0, 5.0, 10), (10.0, 0.0, 20)),
        )
        assert submission.cleared
        assert capture.is_empty

    def test_submit_tags_question(self):
        capture = StrokeCapture()
        _draw(capture, (0, 0, 0))
        store = RecognitionStore()
        adapter = _ready_adapter(FakeRecognizer(candidates=["  राम  "]))

        submission = asyncio.run(adapter.submit(capture, store, question_index=3))
        assert submission.entry.question_index == 3
        assert submission.entry.text == "राम"
        assert store.by_question(3)[0].display_text == "Q3: राम"

    def test_blank_result_not_stored(self):
        capture = StrokeCapture()
        _draw(capture, (0, 0, 0))
        store = RecognitionStore()
        adapter = _ready_adapter(FakeRecognizer(candidates=["   "]))
        submission = asyncio.run(adapter.submit(capture, store))
        assert submission.entry is None
        assert len(store) == 0

    def test_engine_failure_keeps_capture(self):
        capture = StrokeCapture()
        _draw(capture, (0, 0, 0), (1, 1, 1))
        store = RecognitionStore()
        adapter = _ready_adapter(FakeRecognizer(fail=RuntimeError("boom")))

        with pytest.raises(RecognitionFailed) as exc_info:
            asyncio.run(adapter.submit(capture, store))

        assert isinstance(exc_info.value.cause, RuntimeError)
        assert capture.point_count == 2
        assert len(store) == 0
        assert not adapter.is_busy(capture.session_id)

    def test_model_not_ready_keeps_capture(self):
        capture = StrokeCapture()
        _draw(capture, (0, 0, 0))
        adapter = RecognitionAdapter(FakeRecognizer(candidates=["x"]))
        with pytest.raises(ModelNotReady):
            asyncio.run(adapter.submit(capture, RecognitionStore()))
        assert capture.stroke_count == 1

    def test_second_submission_rejected(self):
        capture = StrokeCapture()
        _draw(capture, (0, 0, 0))
        store = RecognitionStore()
        recognizer = FakeRecognizer(candidates=["अ"])
        adapter = _ready_adapter(recognizer)

        async def scenario():
            recognizer.gate = asyncio.Event()
            first = asyncio.create_task(adapter.submit(capture, store))
            await asyncio.sleep(0)
            with pytest.raises(RecognitionInProgress):
                await adapter.submit(capture, store)
            recognizer.gate.set()
            return await first

        submission = asyncio.run(scenario())
        assert submission.result.best_text == "अ"
        assert len(store) == 1
        assert len(recognizer.calls) == 1

    def test_other_sessions_not_blocked(self):
        first_capture = StrokeCapture()
        second_capture = StrokeCapture()
        _draw(first_capture, (0, 0, 0))
        _draw(second_capture, (1, 1, 1))
        store = RecognitionStore()
        recognizer = FakeRecognizer(candidates=["क"])
        adapter = _ready_adapter(recognizer)

        async def scenario():
            recognizer.gate = asyncio.Event()
            first = asyncio.create_task(adapter.submit(first_capture, store))
            second = asyncio.create_task(adapter.submit(second_capture, store))
            await asyncio.sleep(0)
            recognizer.gate.set()
            return await asyncio.gather(first, second)

        asyncio.run(scenario())
        assert len(store) == 2

    def test_input_captured_at_call_time(self):
        capture = StrokeCapture()
        _draw(capture, (0, 0, 0))
        store = RecognitionStore()
        recognizer = FakeRecognizer(candidates=["ग"])
        adapter = _ready_adapter(recognizer)

        async def scenario():
            recognizer.gate = asyncio.Event()
            task = asyncio.create_task(adapter.submit(capture, store))
            await asyncio.sleep(0)
            _draw(capture, (9, 9, 90))
            recognizer.gate.set()
            return await task

        submission = asyncio.run(scenario())
        assert recognizer.calls[0].stroke_count == 1
        assert not submission.cleared
        assert capture.stroke_count == 2
        assert store.snapshot()[0].text == "ग"

    def test_choose_alternative(self):
        store = RecognitionStore()
        adapter = RecognitionAdapter(FakeRecognizer())
        result = RecognitionResult(candidates=[
            Candidate(text="अ"), Candidate(text="आ"),
        ])
        entry = adapter.choose(store, result, 1, question_index=2)
        assert entry.text == "आ"
        assert store.by_question(2) == [entry]


# ═══════════════════════════════════════════════════════════════════════════════
# RECOGNITION STORE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestRecognitionStore:
    """Test ordering, filtering and notifications."""

    def test_newest_first(self):
        store = RecognitionStore()
        store.add("A")
        store.add("B")
        assert [e.text for e in store.snapshot()] == ["B", "A"]

    def test_by_question_ascending(self):
        store = RecognitionStore()
        store.add("first", question_index=1)
        store.add("other", question_index=2)
        store.add("second", question_index=1)
        store.add("untagged")

        entries = store.by_question(1)
        assert [e.text for e in entries] == ["first", "second"]
        assert entries[0].time < entries[1].time
        assert store.snapshot()[0].text == "untagged"

    def test_times_strictly_increase_with_fixed_clock(self):
        fixed = datetime(2024, 1, 1, tzinfo=timezone.utc)
        store = RecognitionStore(clock=lambda: fixed)
        for text in ("a", "b", "c"):
            store.add(text, question_index=1)
        times = [e.time for e in store.by_question(1)]
        assert times == sorted(times)
        assert len(set(times)) == 3

    def test_clock_going_backwards(self):
        ticks = iter([
            datetime(2024, 1, 1, 12, tzinfo=timezone.utc),
            datetime(2024, 1, 1, 11, tzinfo=timezone.utc),
        ])
        store = RecognitionStore(clock=lambda: next(ticks))
        store.add("a", question_index=1)
        store.add("b", question_index=1)
        assert [e.text for e in store.by_question(1)] == ["a", "b"]

    def test_question_ten_not_matched_by_one(self):
        store = RecognitionStore()
        store.add_tagged("Q1: one")
        store.add_tagged("Q10: ten")
        assert [e.text for e in store.by_question(1)] == ["one"]
        assert [e.text for e in store.by_question(10)] == ["ten"]

    def test_question_text_joins_chronologically(self):
        store = RecognitionStore()
        store.add_tagged("Q2: नमः")
        store.add_tagged("Q2: शिवाय")
        assert store.question_text(2) == "नमः शिवाय"
        assert store.question_text(3) == ""

    def test_split_tag(self):
        assert split_tag("Q4: text") == (4, "text")
        assert split_tag("Q4:text") == (None, "Q4:text")
        assert split_tag("Q0: text") == (None, "Q0: text")
        assert split_tag("plain") == (None, "plain")

    def test_combined_text(self):
        store = RecognitionStore()
        store.add("a", question_index=1)
        store.add("b")
        assert store.combined_text() == "b Q1: a"

    def test_subscribers_receive_full_snapshot(self):
        store = RecognitionStore()
        received = []

        def on_change(snapshot):
            assert snapshot is store.snapshot()
            received.append([e.text for e in snapshot])

        store.subscribe(on_change)
        store.add("A")
        store.add("B")
        store.clear()
        assert received == [["A"], ["B", "A"], []]

    def test_unsubscribe(self):
        store = RecognitionStore()
        received = []
        subscription = store.subscribe(received.append)
        store.add("A")
        subscription.unsubscribe()
        store.add("B")
        assert len(received) == 1
        assert not subscription.active

    def test_failing_subscriber_does_not_block_others(self):
        store = RecognitionStore()
        received = []

        def broken(snapshot):
            raise RuntimeError("subscriber bug")

        store.subscribe(broken)
        store.subscribe(received.append)
        store.add("A")
        assert len(received) == 1
        assert len(store) == 1

    def test_snapshots_are_immutable(self):
        store = RecognitionStore()
        store.add("A")
        snapshot = store.snapshot()
        store.add("B")
        assert len(snapshot) == 1
        assert isinstance(snapshot, tuple)


# ═══════════════════════════════════════════════════════════════════════════════
# DOCUMENT ASSEMBLER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestSections:
    """Test section partitioning and labels."""

    def test_seven_questions_two_sections(self):
        assert partition_questions(7, 2) == [[1, 2, 3, 4], [5, 6, 7]]

    def test_single_section(self):
        assert partition_questions(5, 1) == [[1, 2, 3, 4, 5]]

    def test_more_sections_than_questions(self):
        assert partition_questions(2, 3) == [[1], [2]]

    def test_uneven_split_drops_trailing_sections(self):
        # ceil(5 / 4) = 2 → [1, 2], [3, 4], [5]
        assert partition_questions(5, 4) == [[1, 2], [3, 4], [5]]

    def test_labels(self):
        assert section_label(1) == "SECTION - A"
        assert section_label(2) == "SECTION - B"
        assert section_label(26) == "SECTION - Z"

    def test_label_beyond_alphabet(self):
        with pytest.raises(SectionLimitExceeded):
            section_label(27)


class TestMarksSheet:
    """Test marks entry."""

    def test_set_from_text(self):
        sheet = MarksSheet()
        assert sheet.set_from_text(1, " 10 ") == 10
        assert sheet.get(1) == 10

    def test_blank_clears(self):
        sheet = MarksSheet({1: 4})
        assert sheet.set_from_text(1, "") is None
        assert 1 not in sheet

    @pytest.mark.parametrize("value", ["abc", "-1", "2.5"])
    def test_invalid_text_keeps_previous(self, value):
        sheet = MarksSheet({1: 4})
        with pytest.raises(InvalidMarksInput):
            sheet.set_from_text(1, value)
        assert sheet.get(1) == 4

    def test_invalid_mapping(self):
        with pytest.raises(InvalidMarksInput):
            MarksSheet({1: -3})

    @pytest.mark.parametrize("question", [0, -2])
    def test_rejects_question_below_one(self, question):
        sheet = MarksSheet()
        with pytest.raises(InvalidMarksInput):
            sheet.set(question, 10)
        assert len(sheet) == 0
        assert sheet.total == 0


class TestDocumentAssembler:
    """Test paper assembly."""

    def _store(self) -> RecognitionStore:
        store = RecognitionStore()
        store.add_tagged("Q1: धर्म")
        store.add_tagged("Q2: अर्थ")
        store.add_tagged("Q1: क्षेत्रे")
        return store

    def test_question_text_and_placeholder(self):
        paper = DocumentAssembler(self._store()).build(
            PaperSetup(total_questions=3)
        )
        assert paper.questions[1].text == "धर्म क्षेत्रे"
        assert paper.questions[2].text == "अर्थ"
        assert paper.questions[3].text == PLACEHOLDER_TEXT
        assert not paper.questions[3].has_text

    def test_total_marks_counts_explicit_only(self):
        paper = DocumentAssembler(RecognitionStore()).build(
            PaperSetup(total_questions=3), marks={1: 10, 2: 0}
        )
        assert paper.total_marks == 10
        assert paper.questions[3].marks is None
        assert paper.questions[3].display_marks == 5
        assert paper.questions[2].display_marks == 0

    def test_sections_in_paper(self):
        paper = DocumentAssembler(RecognitionStore()).build(
            PaperSetup(total_questions=7, sections=2)
        )
        assert [s.label for s in paper.sections] == ["SECTION - A", "SECTION - B"]
        assert paper.sections[0].question_numbers == [1, 2, 3, 4]
        assert paper.sections[1].question_numbers == [5, 6, 7]
        assert paper.section_count == 2

    def test_too_many_sections(self):
        with pytest.raises(SectionLimitExceeded):
            DocumentAssembler(RecognitionStore()).build(
                PaperSetup(total_questions=27, sections=27)
            )

    def test_section_request_beyond_alphabet_with_fewer_ranges(self):
        # ceil(30 / 27) = 2 → fifteen ranges, labelled A..O
        paper = DocumentAssembler(RecognitionStore()).build(
            PaperSetup(total_questions=30, sections=27)
        )
        assert len(paper.sections) == 15
        assert paper.sections[-1].label == "SECTION - O"
        assert paper.sections[-1].question_numbers == [29, 30]

    def test_default_title(self):
        paper = DocumentAssembler(RecognitionStore()).build(
            PaperSetup(total_questions=1, title="  ")
        )
        assert paper.title == DEFAULT_TITLE

    def test_time_label(self):
        assembler = DocumentAssembler(RecognitionStore())
        one = assembler.build(PaperSetup(total_questions=1, time_hours=1))
        three = assembler.build(PaperSetup(total_questions=1, time_hours=3))
        assert one.time_label == "Time: 1 Hour"
        assert three.time_label == "Time: 3 Hours"

    def test_paper_text(self):
        text = DocumentAssembler(self._store()).paper_text(
            PaperSetup(total_questions=3)
        )
        assert text == "Q1: धर्म क्षेत्रे\n\nQ2: अर्थ\n\nQ3: "

    def test_setup_validation(self):
        with pytest.raises(ValidationError):
            PaperSetup(total_questions=0)


# ═══════════════════════════════════════════════════════════════════════════════
# RTF ENCODER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestRtfEscaping:
    """Test codepoint escaping."""

    def test_plain_ascii(self):
        assert escape_rtf_text("Hello, world 123") == "Hello, world 123"

    def test_specials(self):
        assert escape_rtf_text("a\\b{c}") == "a\\\\b\\{c\\}"

    def test_newline(self):
        assert escape_rtf_text("a\nb") == "a\\par\nb"

    def test_devanagari(self):
        # U+0905 DEVANAGARI LETTER A
        assert escape_rtf_text("अ") == "\\u2309?"

    def test_bmp_boundary(self):
        assert escape_rtf_text(chr(32767)) == "\\u32767?"

    def test_surrogate_pair(self):
        cp = 0x1F600
        hi = 0xD800 + ((cp - 0x10000) >> 10) - 65536
        lo = 0xDC00 + ((cp - 0x10000) & 0x3FF) - 65536
        assert (hi, lo) == (-10179, -8704)
        assert escape_rtf_text(chr(cp)) == f"\\u{hi}?\\u{lo}?"

    def test_high_bmp_is_split_too(self):
        # U+FFFD is above 32767, so it takes the pair branch
        cp = 0xFFFD
        hi = 0xD800 + ((cp - 0x10000) >> 10) - 65536
        lo = 0xDC00 + ((cp - 0x10000) & 0x3FF) - 65536
        assert escape_rtf_text(chr(cp)) == f"\\u{hi}?\\u{lo}?"

    def test_output_is_ascii(self):
        escaped = escape_rtf_text("राम 😀 {x}")
        escaped.encode("ascii")


class TestRtfEncoder:
    """Test document structure."""

    def _paper(self):
        store = RecognitionStore()
        store.add_tagged("Q1: राम")
        return DocumentAssembler(store).build(
            PaperSetup(total_questions=3, sections=2, title="Sanskrit {I}"),
            marks={1: 8},
        )

    def test_header_and_footer(self):
        rtf = RtfEncoder().encode(self._paper())
        assert rtf.startswith("{\\rtf1\\ansi\\ansicpg1252\\deff0")
        assert "{\\fonttbl{\\f0\\fnil\\fcharset0 Noto Sans Devanagari;}}" in rtf
        assert rtf.endswith("}")

    def test_title_escaped(self):
        rtf = RtfEncoder().encode(self._paper())
        assert "\\pard\\qc{\\b\\fs28 Sanskrit \\{I\\}\\par}" in rtf

    def test_meta_row(self):
        rtf = RtfEncoder().encode(self._paper())
        assert "Time: 3 Hours\\cellMaximum Marks: 8\\cell\\row" in rtf

    def test_instructions(self):
        rtf = RtfEncoder().encode(self._paper())
        assert "{\\b INSTRUCTIONS:\\par}" in rtf
        assert "3. Figures to the right indicate full marks.\\par" in rtf

    def test_sections_and_questions(self):
        rtf = RtfEncoder().encode(self._paper())
        assert rtf.index("SECTION - A") < rtf.index("Q.1}") < rtf.index("Q.2}")
        assert rtf.index("Q.2}") < rtf.index("SECTION - B") < rtf.index("Q.3}")
        assert "{\\b Q.1} \\u2352?\\u2366?\\u2350?\\cell{\\b [8]}\\cell\\row" in rtf
        assert "{\\b Q.2} [Write your question here]\\cell{\\b [5]}" in rtf

    def test_document_is_ascii(self):
        RtfEncoder().encode(self._paper()).encode("ascii")


# ═══════════════════════════════════════════════════════════════════════════════
# PDF LAYOUT TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestPdfLayout:
    """Test block grouping and ordering."""

    def test_block_order(self):
        paper = DocumentAssembler(RecognitionStore()).build(
            PaperSetup(total_questions=3, sections=2, title="test paper"),
            marks={2: 7},
        )
        blocks = PdfLayoutEngine().layout(paper)
        kinds = [b.kind for b in blocks]
        assert kinds == [
            BlockKind.TITLE,
            BlockKind.META_ROW,
            BlockKind.INSTRUCTIONS_HEADING,
            BlockKind.INSTRUCTION,
            BlockKind.INSTRUCTION,
            BlockKind.INSTRUCTION,
            BlockKind.SECTION_HEADING,
            BlockKind.QUESTION,
            BlockKind.QUESTION,
            BlockKind.SECTION_HEADING,
            BlockKind.QUESTION,
        ]

        assert blocks[0].text == "TEST PAPER"
        assert blocks[0].align == Align.CENTER
        assert blocks[1].right_text == "Maximum Marks: 7"
        assert blocks[7].text == f"Q.1 {PLACEHOLDER_TEXT}"
        assert blocks[7].right_text == "[5]"
        assert blocks[8].right_text == "[7]"
        assert blocks[7].bold
        assert blocks[9].text == "SECTION - B"


# ═══════════════════════════════════════════════════════════════════════════════
# VALIDATOR TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestPaperValidator:
    """Test the paper report."""

    def test_report(self):
        store = RecognitionStore()
        store.add_tagged("Q1: text")
        paper = DocumentAssembler(store).build(
            PaperSetup(total_questions=4, sections=2), marks={1: 10, 2: 3}
        )
        report = PaperValidator().validate(paper)
        assert report.total_questions == 4
        assert report.section_count == 2
        assert report.questions_with_text == 1
        assert report.placeholder_questions == [2, 3, 4]
        assert report.questions_missing_marks == [3, 4]
        assert report.explicit_marks_total == 13
        assert report.display_marks_total == 23
        assert report.completion_rate == 25.0
