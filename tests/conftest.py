import io
import sys
from pathlib import Path

import pytest
from PIL import Image, ImageDraw

# Add src to sys.path so we can import gcse_marker
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from gcse_marker.collaborators import MathRecognition, RawTextDetection  # noqa: E402


PAGE_WIDTH = 400
PAGE_HEIGHT = 300


def png_bytes(width: int = PAGE_WIDTH, height: int = PAGE_HEIGHT) -> bytes:
    """White page with a couple of dark strokes, encoded as PNG."""
    img = Image.new("RGB", (width, height), color="white")
    draw = ImageDraw.Draw(img)
    draw.line((20, 30, 120, 30), fill="black", width=3)
    draw.line((20, 200, 200, 200), fill="black", width=3)
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


# ─────────────────────────────────────────────────────────────────────────────
# Fake collaborators
# ─────────────────────────────────────────────────────────────────────────────


class FakeTextRecognizer:
    """
    Returns the same detections for every pass, scaled to the pass image.

    Detections are (text, (x, y, w, h), confidence) in original page
    pixels. Passes start in build order (clean, enhanced, sharpened), so
    fail_on={1} fails the enhanced pass.
    """

    def __init__(self, detections=(), fail_on=(), base_width: int = PAGE_WIDTH):
        self.detections = list(detections)
        self.fail_on = set(fail_on)
        self.base_width = base_width
        self.calls = 0

    async def recognize(self, image_bytes: bytes):
        call = self.calls
        self.calls += 1
        if call in self.fail_on:
            raise RuntimeError(f"vision quota exceeded (call {call})")
        with Image.open(io.BytesIO(image_bytes)) as img:
            scale = img.width / self.base_width
        results = []
        for text, (x, y, w, h), confidence in self.detections:
            left, top, right, bottom = x * scale, y * scale, (x + w) * scale, (y + h) * scale
            results.append(RawTextDetection(
                text=text,
                vertices=((left, top), (right, top), (right, bottom), (left, bottom)),
                confidence=confidence,
            ))
        return results


class FakeMathRecognizer:
    """Math recognizer returning a fixed result, or raising `error`."""

    def __init__(self, text: str = "x=3", confidence=0.92, error: Exception | None = None):
        self.text = text
        self.confidence = confidence
        self.error = error
        self.calls = []

    async def recognize(self, image_bytes: bytes):
        self.calls.append(image_bytes)
        if self.error is not None:
            raise self.error
        return MathRecognition(self.text, self.confidence)


class FakeMarkingModel:
    """
    Marking model answering from a dict keyed by scheme question number.

    Unknown questions get `default`. Every call is recorded.
    """

    def __init__(self, responses=None, default: str = '{"annotations": []}'):
        self.responses = dict(responses or {})
        self.default = default
        self.calls = []

    async def generate(self, question, scheme, student_work):
        self.calls.append({"question": question, "scheme": scheme, "student_work": student_work})
        return self.responses.get(scheme.question_number, self.default)


# ─────────────────────────────────────────────────────────────────────────────
# Reference data
# ─────────────────────────────────────────────────────────────────────────────


def _marks(*codes: str) -> list:
    return [{"mark": code, "answer": f"criterion for {code}", "comments": ""} for code in codes]


PAPER_X_QUESTIONS = {
    "1": "Work out the value of 3.2 squared multiplied by 4",
    "2": "Expand and simplify (x + 5)(x - 2)",
    "3": "Write 0.000 34 in standard form",
    "4": "Find the size of the angle marked y in the isosceles triangle",
    "5": "Calculate the compound interest earned on 2500 pounds at 3 percent for 4 years",
    "6": "Solve the simultaneous equations 3x + 2y = 14 and x - y = 3",
}

PAPER_Y_QUESTION_6 = "Solve the simultaneous equations 3x + 2y = 12 and x - y = 1"


@pytest.fixture
def paper_x_questions():
    """Question texts of 1MA1/1H keyed by number."""
    return dict(PAPER_X_QUESTIONS)


@pytest.fixture
def paper_y_question_6():
    """1MA1/2H Q6: 1H Q6 with different numbers."""
    return PAPER_Y_QUESTION_6


@pytest.fixture
def paper_x_record():
    """Edexcel 1MA1/1H June 2022 with six flat questions and a two-part Q7."""
    questions = [
        {"question_number": number, "question_text": text, "marks": 2}
        for number, text in PAPER_X_QUESTIONS.items()
    ]
    questions.append({
        "question_number": "7",
        "question_text": "100 people were asked if they own a cat or a dog.",
        "marks": 5,
        "sub_questions": [
            {"question_part": "a", "question_text": "Complete the Venn diagram.", "marks": 3},
            {"question_part": "b", "question_text": "Find the probability that a person owns a cat.", "marks": 2},
        ],
    })
    scheme = {number: {"marks": _marks("M1", "A1")} for number in PAPER_X_QUESTIONS}
    scheme["7a"] = {"answer": "Venn diagram", "marks": _marks("B1", "B1", "B1")}
    scheme["7b"] = {"answer": "32/100", "marks": _marks("M1", "A1")}
    scheme["3alt"] = {"marks": _marks("B2")}
    return {
        "id": "edexcel-1ma1-1h-june-2022",
        "metadata": {
            "exam_board": "Edexcel",
            "exam_code": "1MA1/1H",
            "exam_series": "June 2022",
            "qualification": "GCSE",
            "subject": "Mathematics",
            "tier": "Higher",
        },
        "questions": questions,
        "marking_scheme": {
            "questions": scheme,
            "generalMarkingGuidance": "All candidates must receive the same treatment.",
        },
    }


@pytest.fixture
def paper_y_record():
    """Edexcel 1MA1/2H June 2022 holding a near-duplicate of X's Q6."""
    return {
        "id": "edexcel-1ma1-2h-june-2022",
        "metadata": {
            "exam_board": "Edexcel",
            "exam_code": "1MA1/2H",
            "exam_series": "June 2022",
            "qualification": "GCSE",
            "subject": "Mathematics",
            "tier": "Higher",
        },
        "questions": [
            {"question_number": "6", "question_text": PAPER_Y_QUESTION_6, "marks": 3},
        ],
        "marking_scheme": {"questions": {"6": {"marks": _marks("M1", "M1", "A1")}}},
    }


@pytest.fixture
def corpus(paper_x_record, paper_y_record):
    from gcse_marker.matching import InMemoryQuestionCorpus
    return InMemoryQuestionCorpus.from_records([paper_x_record, paper_y_record])


@pytest.fixture
def boundary_records():
    """Edexcel June 2022 maths boundaries: paper tables for Higher, overall for Foundation."""
    return [{
        "id": "edexcel-gcse-june-2022",
        "exam_board": "Edexcel",
        "qualification": "GCSE",
        "exam_series": "June 2022",
        "subjects": [{
            "name": "Mathematics",
            "code": "1MA1",
            "max_mark": 240,
            "tiers": [
                {
                    "tier_level": "Higher",
                    "boundaries_type": "Paper-Specific",
                    "paper_codes": ["1H", "2H", "3H"],
                    "papers": [
                        {"code": "1H", "max_mark": 80, "boundaries": {"9": 70, "8": 60, "7": 50}},
                        {"code": "2H", "max_mark": 80, "boundaries": {"9": 68, "8": 58, "7": 48}},
                    ],
                    "overall_total_boundaries": {"9": 210, "8": 180, "7": 150},
                },
                {
                    "tier_level": "Foundation Tier",
                    "boundaries_type": "Overall-Total",
                    "paper_codes": ["1F", "2F", "3F"],
                    "overall_total_boundaries": {"5": 180, "4": 150, "3": 110},
                },
            ],
        }],
    }]


@pytest.fixture
def boundary_store(boundary_records):
    from gcse_marker.grading import InMemoryGradeBoundaryStore
    return InMemoryGradeBoundaryStore.from_records(boundary_records)


@pytest.fixture
def page_bytes():
    """One blank-ish answer page."""
    return png_bytes()


@pytest.fixture
def sample_image(tmp_path: Path):
    """Create a simple test image."""
    img = Image.new("RGB", (200, 100), color="white")
    img_path = tmp_path / "sample.png"
    img.save(img_path)
    return img_path


@pytest.fixture
def text_recognizer_cls():
    return FakeTextRecognizer


@pytest.fixture
def math_recognizer_cls():
    return FakeMathRecognizer


@pytest.fixture
def marking_model_cls():
    return FakeMarkingModel
