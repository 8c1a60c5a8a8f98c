from pathlib import Path

import pytest

from quiz_funnel.models import OpenMindednessQuestion, QuizContent

DATA_DIR = Path(__file__).resolve().parents[1] / "data"

OPEN_MINDEDNESS = {
    "id": "om",
    "prompt": {"en": "Which methods would you consider?"},
    "options": [
        {"id": "o1", "text": {"en": "Peer feedback"}, "points": 1},
        {"id": "o2", "text": {"en": "Psychological testing"}, "points": 2},
        {"id": "o3", "text": {"en": "Self-evaluation"}},
    ],
}


def _question(question_id, position, scores=(1, 2, 3, 4)):
    return {
        "id": question_id,
        "position": position,
        "prompt": {"en": f"Question {question_id}", "et": f"Küsimus {question_id}"},
        "answers": [
            {"id": f"{question_id}-{score}", "text": {"en": f"Answer {score}"}, "score": score}
            for score in scores
        ],
    }


def quiz_document(**overrides):
    document = {
        "id": "quiz-1",
        "slug": "sample",
        "quiz_type": "standard",
        "languages": ["en", "et"],
        "title": {"en": "Sample Quiz", "et": "Näidistest"},
        "questions": [_question(qid, index) for index, qid in enumerate("abcdef", start=1)],
        "result_tiers": [
            {"min_score": 6, "max_score": 11, "title": {"en": "Low"}},
            {"min_score": 12, "max_score": 17, "title": {"en": "Mid"}, "insights": [{"en": "Act now"}]},
            {"min_score": 18, "max_score": 24, "title": {"en": "High"}},
        ],
        "open_mindedness_tiers": [
            {"min_score": 0, "max_score": 1, "title": {"en": "Traditional"}},
            {"min_score": 2, "max_score": 4, "title": {"en": "Open"}},
        ],
    }
    document.update(overrides)
    return document


def hypothesis_document(**overrides):
    def hypothesis(question_id, position):
        return {
            "id": question_id,
            "position": position,
            "hypothesis": {"en": f"Hypothesis {question_id}"},
            "truth_explanation": {"en": f"Truth {question_id}"},
            "correct_answer_woman": False,
            "correct_answer_man": False,
        }

    document = {
        "id": "quiz-h",
        "slug": "hypotheses",
        "quiz_type": "hypothesis",
        "pages": [
            {"id": "p1", "number": 1, "title": {"en": "Page one"}, "questions": [hypothesis("h1", 1), hypothesis("h2", 2)]},
            {"id": "p2", "number": 2, "title": {"en": "Page two"}, "questions": [hypothesis("h3", 1), hypothesis("h4", 2)]},
        ],
        "result_tiers": [
            {"min_score": 75, "max_score": 100, "title": {"en": "Expert"}},
            {"min_score": 40, "max_score": 74, "title": {"en": "Getting there"}},
            {"min_score": 0, "max_score": 39, "title": {"en": "Novice"}},
        ],
    }
    document.update(overrides)
    return document


@pytest.fixture
def make_content():
    def _make(document=None, **overrides):
        document = document or quiz_document(**overrides)
        return QuizContent.from_dict(document, OpenMindednessQuestion.from_dict(OPEN_MINDEDNESS))

    return _make


@pytest.fixture
def hypothesis_content(make_content):
    return make_content(hypothesis_document())
