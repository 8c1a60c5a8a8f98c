from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .localization import DEFAULT_LANGUAGE, merge_text_maps

QUIZ_TYPES = ("standard", "emotional", "hypothesis")
QUESTION_TYPES = ("single_choice", "open_mindedness", "hypothesis")
DEFAULT_CTA_URL = "https://sparkly.hr"

Text = Dict[str, str]


def _text(value) -> Text:
    if isinstance(value, dict):
        return {str(k): str(v) for k, v in value.items() if v is not None}
    if isinstance(value, str):
        return {DEFAULT_LANGUAGE: value}
    return {}


def _check_unique_positions(items, what: str) -> None:
    seen = set()
    for item in items:
        if item.position in seen:
            raise ValueError(f"duplicate {what} position {item.position}")
        seen.add(item.position)


@dataclass(frozen=True)
class Answer:
    id: str
    text: Text
    score: int = 0
    position: int = 0

    @classmethod
    def from_dict(cls, data: dict, position: int = 0) -> "Answer":
        return cls(
            id=str(data["id"]),
            text=_text(data.get("text")),
            score=int(data.get("score", 0) or 0),
            position=int(data.get("position", position)),
        )


@dataclass(frozen=True)
class Question:
    id: str
    position: int
    prompt: Text
    answers: Tuple[Answer, ...]
    type: str = "single_choice"

    @classmethod
    def from_dict(cls, data: dict, position: int = 0) -> "Question":
        answers = tuple(
            sorted(
                (Answer.from_dict(item, index) for index, item in enumerate(data.get("answers", []))),
                key=lambda a: a.position,
            )
        )
        return cls(
            id=str(data["id"]),
            position=int(data.get("position", position)),
            prompt=_text(data.get("prompt")),
            answers=answers,
            type=data.get("type", "single_choice"),
        )

    def answer(self, answer_id: str) -> Optional[Answer]:
        for answer in self.answers:
            if answer.id == answer_id:
                return answer
        return None


@dataclass(frozen=True)
class OpenMindednessOption:
    id: str
    text: Text
    points: int = 1

    @classmethod
    def from_dict(cls, data: dict) -> "OpenMindednessOption":
        points = data.get("points")
        return cls(id=str(data["id"]), text=_text(data.get("text")), points=1 if points is None else int(points))


@dataclass(frozen=True)
class OpenMindednessQuestion:
    """The global open-mindedness module; quizzes reference it, never own it."""

    id: str
    prompt: Text
    options: Tuple[OpenMindednessOption, ...]

    @classmethod
    def from_dict(cls, data: dict) -> "OpenMindednessQuestion":
        return cls(
            id=str(data.get("id", "open-mindedness")),
            prompt=_text(data.get("prompt")),
            options=tuple(OpenMindednessOption.from_dict(item) for item in data.get("options", [])),
        )

    @property
    def max_score(self) -> int:
        return sum(option.points for option in self.options)


@dataclass(frozen=True)
class ResultTier:
    min_score: int
    max_score: int
    title: Text
    description: Text = field(default_factory=dict)
    insights: Tuple[Text, ...] = ()
    emoji: str = "🌟"
    color_class: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "ResultTier":
        return cls(
            min_score=int(data["min_score"]),
            max_score=int(data["max_score"]),
            title=_text(data.get("title")),
            description=_text(data.get("description")),
            insights=tuple(_text(item) for item in data.get("insights", [])),
            emoji=data.get("emoji") or "🌟",
            color_class=data.get("color_class") or "",
        )

    def contains(self, score: float) -> bool:
        return self.min_score <= score <= self.max_score


@dataclass(frozen=True)
class HypothesisQuestion:
    id: str
    page_id: str
    position: int
    hypothesis: Text
    interview_question: Text
    truth_explanation: Text
    correct_answer_woman: bool = False
    correct_answer_man: bool = False

    @classmethod
    def from_dict(cls, data: dict, page_id: str, position: int = 0) -> "HypothesisQuestion":
        return cls(
            id=str(data["id"]),
            page_id=page_id,
            position=int(data.get("position", position)),
            hypothesis=_text(data.get("hypothesis")),
            interview_question=_text(data.get("interview_question")),
            truth_explanation=_text(data.get("truth_explanation")),
            correct_answer_woman=bool(data.get("correct_answer_woman", False)),
            correct_answer_man=bool(data.get("correct_answer_man", False)),
        )

    def is_correct(self, answer: bool) -> bool:
        return answer == self.correct_answer_woman and answer == self.correct_answer_man


@dataclass(frozen=True)
class HypothesisPage:
    id: str
    number: int
    title: Text
    description: Text
    questions: Tuple[HypothesisQuestion, ...]

    @classmethod
    def from_dict(cls, data: dict, number: int = 0) -> "HypothesisPage":
        page_id = str(data["id"])
        questions = tuple(
            sorted(
                (
                    HypothesisQuestion.from_dict(item, page_id, index)
                    for index, item in enumerate(data.get("questions", []))
                ),
                key=lambda q: q.position,
            )
        )
        return cls(
            id=page_id,
            number=int(data.get("number", number)),
            title=_text(data.get("title")),
            description=_text(data.get("description")),
            questions=questions,
        )


@dataclass(frozen=True)
class QuizConfig:
    id: str
    slug: str
    quiz_type: str = "standard"
    is_active: bool = True
    shuffle_questions: bool = False
    shuffle_answers: bool = False
    include_open_mindedness: bool = False
    enable_scoring: bool = True
    primary_language: str = DEFAULT_LANGUAGE
    languages: Tuple[str, ...] = (DEFAULT_LANGUAGE,)
    title: Text = field(default_factory=dict)
    description: Text = field(default_factory=dict)
    headline: Text = field(default_factory=dict)
    headline_highlight: Text = field(default_factory=dict)
    badge_text: Text = field(default_factory=dict)
    duration_text: Text = field(default_factory=dict)
    discover_items: Tuple[Text, ...] = ()
    start_cta_text: Text = field(default_factory=dict)
    cta_title: Text = field(default_factory=dict)
    cta_description: Text = field(default_factory=dict)
    cta_text: Text = field(default_factory=dict)
    cta_url: str = DEFAULT_CTA_URL

    @classmethod
    def from_dict(cls, data: dict) -> "QuizConfig":
        quiz_type = data.get("quiz_type", "standard")
        if quiz_type not in QUIZ_TYPES:
            raise ValueError(f"unknown quiz type {quiz_type!r}")
        primary = data.get("primary_language", DEFAULT_LANGUAGE)
        languages = tuple(data.get("languages") or (primary,))
        if primary not in languages:
            languages = (primary,) + languages

        # A live CTA template overrides the quiz's own CTA copy per language.
        template = data.get("cta_template") or {}
        return cls(
            id=str(data.get("id") or data["slug"]),
            slug=data["slug"],
            quiz_type=quiz_type,
            is_active=bool(data.get("is_active", True)),
            shuffle_questions=bool(data.get("shuffle_questions", False)),
            # answer shuffling only applies to standard quizzes
            shuffle_answers=quiz_type == "standard" and bool(data.get("shuffle_answers", False)),
            include_open_mindedness=bool(data.get("include_open_mindedness", False)),
            enable_scoring=bool(data.get("enable_scoring", True)),
            primary_language=primary,
            languages=languages,
            title=_text(data.get("title")),
            description=_text(data.get("description")),
            headline=_text(data.get("headline")),
            headline_highlight=_text(data.get("headline_highlight")),
            badge_text=_text(data.get("badge_text")),
            duration_text=_text(data.get("duration_text")),
            discover_items=tuple(_text(item) for item in data.get("discover_items", [])),
            start_cta_text=_text(data.get("start_cta_text")),
            cta_title=merge_text_maps(_text(data.get("cta_title")), _text(template.get("cta_title"))),
            cta_description=merge_text_maps(
                _text(data.get("cta_description")), _text(template.get("cta_description"))
            ),
            cta_text=merge_text_maps(_text(data.get("cta_text")), _text(template.get("cta_text"))),
            cta_url=template.get("cta_url") or data.get("cta_url") or DEFAULT_CTA_URL,
        )


@dataclass(frozen=True)
class QuizContent:
    """Everything the flow needs for one quiz, as fetched by slug."""

    config: QuizConfig
    questions: Tuple[Question, ...] = ()
    tiers: Tuple[ResultTier, ...] = ()
    open_mindedness: Optional[OpenMindednessQuestion] = None
    open_mindedness_tiers: Tuple[ResultTier, ...] = ()
    pages: Tuple[HypothesisPage, ...] = ()

    @classmethod
    def from_dict(cls, data: dict, open_mindedness: Optional[OpenMindednessQuestion] = None) -> "QuizContent":
        config = QuizConfig.from_dict(data)
        questions = tuple(
            sorted(
                (Question.from_dict(item, index) for index, item in enumerate(data.get("questions", []))),
                key=lambda q: q.position,
            )
        )
        _check_unique_positions(questions, "question")
        pages = tuple(
            sorted(
                (HypothesisPage.from_dict(item, index + 1) for index, item in enumerate(data.get("pages", []))),
                key=lambda p: p.number,
            )
        )
        # Tiers keep the authored order; resolution is first-match by list order.
        tiers = tuple(ResultTier.from_dict(item) for item in data.get("result_tiers", []))
        om_tiers = tuple(ResultTier.from_dict(item) for item in data.get("open_mindedness_tiers", []))
        return cls(
            config=config,
            questions=tuple(q for q in questions if q.type != "open_mindedness"),
            tiers=tiers,
            open_mindedness=open_mindedness if config.include_open_mindedness else None,
            open_mindedness_tiers=om_tiers,
            pages=pages,
        )

    @property
    def hypothesis_questions(self) -> List[HypothesisQuestion]:
        return [question for page in self.pages for question in page.questions]

    def question(self, question_id: str) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def hypothesis_question(self, question_id: str) -> Optional[HypothesisQuestion]:
        for question in self.hypothesis_questions:
            if question.id == question_id:
                return question
        return None
