"""
Tests for multi-pass recognition and the math-only fallback.
"""

import asyncio

import pytest

from gcse_marker.collaborators import RawTextDetection
from gcse_marker.config import RecognitionConfig
from gcse_marker.core.models import BoundingBox
from gcse_marker.diagnostics import DiagnosticsCollector
from gcse_marker.exceptions import OCRFailure
from gcse_marker.ocr import TextRecognitionOrchestrator
from gcse_marker.ocr.orchestrator import fragments_from_detections

DETECTIONS = [
    ("x = 3", (20, 20, 60, 15), 0.9),
    ("Answer 9", (250, 220, 80, 15), 0.8),
]
ALL_PASSES = ["clean", "enhanced", "sharpened"]


def recognize(orchestrator, image_bytes, submission_id=""):
    return asyncio.run(orchestrator.recognize(image_bytes, submission_id))


class TestRecognize:
    """Tests for TextRecognitionOrchestrator.recognize()."""

    # ─────────────────────────────────────────────────────────────────────────
    # Happy path
    # ─────────────────────────────────────────────────────────────────────────

    def test_recognize_when_all_passes_succeed_then_fragments_pooled(self, page_bytes, text_recognizer_cls):
        """Every pass contributes fragments in original coordinates."""
        recognizer = text_recognizer_cls(DETECTIONS)
        result = recognize(TextRecognitionOrchestrator(recognizer), page_bytes)

        assert recognizer.calls == 3
        assert result.passes_succeeded == ALL_PASSES
        assert result.passes_failed == []
        assert len(result.fragments) == 6
        assert {f.bbox for f in result.fragments} == {
            BoundingBox(20, 20, 60, 15),
            BoundingBox(250, 220, 80, 15),
        }
        assert not result.used_fallback

    def test_recognize_when_passes_agree_then_one_cluster_per_region(self, page_bytes, text_recognizer_cls):
        """Duplicate detections across passes collapse into one cluster."""
        result = recognize(TextRecognitionOrchestrator(text_recognizer_cls(DETECTIONS)), page_bytes)

        assert len(result.clusters) == 2
        assert result.clusters[0].bbox == BoundingBox(20, 20, 60, 15)
        assert result.clusters[0].text.startswith("x = 3")
        assert result.overall_confidence == pytest.approx(0.85)

    def test_recognize_when_nothing_detected_then_empty_not_failure(self, page_bytes, text_recognizer_cls):
        """A blank page is a successful recognition with no clusters."""
        result = recognize(TextRecognitionOrchestrator(text_recognizer_cls([])), page_bytes)
        assert result.clusters == []
        assert result.passes_succeeded == ALL_PASSES
        assert result.overall_confidence is None

    # ─────────────────────────────────────────────────────────────────────────
    # Partial failure
    # ─────────────────────────────────────────────────────────────────────────

    def test_recognize_when_one_pass_raises_then_others_used(self, page_bytes, text_recognizer_cls):
        """A failed pass is excluded and recorded."""
        diagnostics = DiagnosticsCollector()
        orchestrator = TextRecognitionOrchestrator(
            text_recognizer_cls(DETECTIONS, fail_on={1}), diagnostics=diagnostics,
        )
        result = recognize(orchestrator, page_bytes, "sub-9")

        assert result.passes_succeeded == ["clean", "sharpened"]
        assert result.passes_failed == ["enhanced"]
        assert len(result.fragments) == 4
        assert "enhanced" in result.warnings[0]
        issue = diagnostics.issues_of_type("pass_failure")[0]
        assert issue.context == {"pass": "enhanced"}
        assert issue.submission_id == "sub-9"

    # ─────────────────────────────────────────────────────────────────────────
    # Math-only fallback
    # ─────────────────────────────────────────────────────────────────────────

    def test_recognize_when_all_passes_fail_then_fallback_block(
        self, page_bytes, text_recognizer_cls, math_recognizer_cls
    ):
        """The whole page is read by the math recognizer as one block."""
        math = math_recognizer_cls(text="x = 3, y = 2", confidence=0.7)
        orchestrator = TextRecognitionOrchestrator(text_recognizer_cls(DETECTIONS, fail_on={0, 1, 2}), math)
        result = recognize(orchestrator, page_bytes)

        block = result.fallback_block
        assert result.used_fallback
        assert result.clusters == []
        assert block.bbox == BoundingBox(0, 0, 100, 100)
        assert block.recognized_text == "x = 3, y = 2"
        assert block.confidence == 0.7
        assert block.math_likeness == 1.0
        assert len(math.calls) == 1

    def test_recognize_when_fallback_reports_no_confidence_then_default_used(
        self, page_bytes, text_recognizer_cls, math_recognizer_cls
    ):
        """Missing fallback confidence defaults to 0.5."""
        orchestrator = TextRecognitionOrchestrator(
            text_recognizer_cls(fail_on={0, 1, 2}), math_recognizer_cls(confidence=None),
        )
        assert recognize(orchestrator, page_bytes).fallback_block.confidence == 0.5

    def test_recognize_when_no_math_recognizer_then_raises_ocr_failure(self, page_bytes, text_recognizer_cls):
        """Without a fallback, total pass failure is fatal."""
        orchestrator = TextRecognitionOrchestrator(text_recognizer_cls(fail_on={0, 1, 2}))
        with pytest.raises(OCRFailure, match="no math fallback"):
            recognize(orchestrator, page_bytes)

    def test_recognize_when_fallback_disabled_then_raises_ocr_failure(
        self, page_bytes, text_recognizer_cls, math_recognizer_cls
    ):
        """enable_math_fallback=False turns the fallback off."""
        math = math_recognizer_cls()
        orchestrator = TextRecognitionOrchestrator(
            text_recognizer_cls(fail_on={0, 1, 2}), math, RecognitionConfig(enable_math_fallback=False),
        )
        with pytest.raises(OCRFailure):
            recognize(orchestrator, page_bytes)
        assert math.calls == []

    def test_recognize_when_fallback_raises_then_raises_ocr_failure(
        self, page_bytes, text_recognizer_cls, math_recognizer_cls
    ):
        """A failing fallback is wrapped in OCRFailure."""
        orchestrator = TextRecognitionOrchestrator(
            text_recognizer_cls(fail_on={0, 1, 2}), math_recognizer_cls(error=TimeoutError("slow")),
        )
        with pytest.raises(OCRFailure, match="math fallback failed"):
            recognize(orchestrator, page_bytes)

    def test_recognize_when_fallback_returns_blank_then_raises_ocr_failure(
        self, page_bytes, text_recognizer_cls, math_recognizer_cls
    ):
        """Blank fallback text is a failure."""
        orchestrator = TextRecognitionOrchestrator(
            text_recognizer_cls(fail_on={0, 1, 2}), math_recognizer_cls(text=""),
        )
        with pytest.raises(OCRFailure, match="returned no text"):
            recognize(orchestrator, page_bytes)

    def test_recognize_when_image_unreadable_and_no_fallback_then_raises_ocr_failure(self, text_recognizer_cls):
        """Bytes that are not an image never reach the text recognizer."""
        recognizer = text_recognizer_cls(DETECTIONS)
        with pytest.raises(OCRFailure, match="no math fallback"):
            recognize(TextRecognitionOrchestrator(recognizer), b"definitely not an image")
        assert recognizer.calls == 0

    def test_recognize_when_image_unreadable_then_math_fallback_used(
        self, text_recognizer_cls, math_recognizer_cls
    ):
        """An image that cannot be preprocessed is still offered to the math recognizer."""
        recognizer = text_recognizer_cls(DETECTIONS)
        math = math_recognizer_cls(text="y = 2x + 1")
        diagnostics = DiagnosticsCollector()
        orchestrator = TextRecognitionOrchestrator(recognizer, math, diagnostics=diagnostics)

        result = recognize(orchestrator, b"definitely not an image", submission_id="sub-4")

        assert result.used_fallback
        assert result.fallback_block.recognized_text == "y = 2x + 1"
        assert math.calls == [b"definitely not an image"]
        assert recognizer.calls == 0
        assert any("Cannot preprocess" in w for w in result.warnings)
        issues = diagnostics.issues_of_type("pass_failure")
        assert [i.context["pass"] for i in issues] == ["preprocessing"]


class TestFragmentsFromDetections:
    """Tests for fragments_from_detections()."""

    def test_fragments_when_scaled_pass_then_coordinates_divided(self):
        """Coordinates from a resized pass are mapped back."""
        detection = RawTextDetection("y = 4", ((40, 40), (120, 40), (120, 70), (40, 70)), 0.6)
        fragments = fragments_from_detections([detection], "enhanced", 2.0)
        assert fragments[0].bbox == BoundingBox(20, 20, 40, 15)
        assert fragments[0].source_pass == "enhanced"

    def test_fragments_when_text_or_vertices_missing_then_dropped(self):
        """Detections without text or a polygon are ignored."""
        detections = [
            RawTextDetection("  ", ((0, 0), (1, 1)), 0.9),
            RawTextDetection("x", (), 0.9),
        ]
        assert fragments_from_detections(detections, "clean", 1.0) == []

    def test_fragments_when_confidence_out_of_range_then_clamped(self):
        """Recognizer confidences are clamped into [0, 1]."""
        detection = RawTextDetection("7", ((0, 0), (10, 10)), 1.3)
        assert fragments_from_detections([detection], "clean", 1.0)[0].confidence == 1.0
