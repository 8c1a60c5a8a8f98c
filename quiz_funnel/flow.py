"""Quiz flow state machine.

    welcome -> quiz -> [mindedness] -> email -> results -> (reset) welcome

Standard and emotional quizzes step through questions one at a time.
Hypothesis quizzes are paginated: a page is submitted as a whole, its truths
are revealed, then the visitor moves to the next page.

The controller mutates only the SessionState it was given; the web layer
serializes that state into the visitor's session between requests.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import InvalidTransition, SessionNotInitialized
from .ledger import AnswerLedger, LedgerEntry
from .models import Answer, HypothesisPage, HypothesisQuestion, Question, QuizContent
from .scoring import ScoreSummary, summarize
from .shuffle import answer_seed, seeded_shuffle, session_shuffle

logger = logging.getLogger(__name__)

STAGES = ("welcome", "quiz", "mindedness", "email", "results")


@dataclass
class SessionState:
    stage: str = "welcome"
    question_index: int = 0
    page_index: int = 0
    page_submitted: bool = False
    ledger: AnswerLedger = field(default_factory=AnswerLedger)
    open_mindedness: List[str] = field(default_factory=list)
    email: str = ""
    feedback_new_learnings: str = ""
    feedback_action_plan: str = ""
    question_order: List[str] = field(default_factory=list)
    answer_seeds: Dict[str, int] = field(default_factory=dict)
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    lead_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "stage": self.stage,
            "question_index": self.question_index,
            "page_index": self.page_index,
            "page_submitted": self.page_submitted,
            "ledger": self.ledger.to_list(),
            "open_mindedness": list(self.open_mindedness),
            "email": self.email,
            "feedback_new_learnings": self.feedback_new_learnings,
            "feedback_action_plan": self.feedback_action_plan,
            "question_order": list(self.question_order),
            "answer_seeds": dict(self.answer_seeds),
            "session_id": self.session_id,
            "lead_id": self.lead_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "SessionState":
        stage = data.get("stage", "welcome")
        return cls(
            stage=stage if stage in STAGES else "welcome",
            question_index=int(data.get("question_index", 0)),
            page_index=int(data.get("page_index", 0)),
            page_submitted=bool(data.get("page_submitted", False)),
            ledger=AnswerLedger.from_list(data.get("ledger", [])),
            open_mindedness=list(data.get("open_mindedness", [])),
            email=data.get("email", ""),
            feedback_new_learnings=data.get("feedback_new_learnings", ""),
            feedback_action_plan=data.get("feedback_action_plan", ""),
            question_order=list(data.get("question_order", [])),
            answer_seeds={str(k): int(v) for k, v in data.get("answer_seeds", {}).items()},
            session_id=data.get("session_id") or uuid.uuid4().hex,
            lead_id=data.get("lead_id"),
        )


class FlowController:
    def __init__(self, content: QuizContent, state: Optional[SessionState]):
        self.content = content
        self._state = state
        if state is not None:
            self._clamp_indices()

    def _clamp_indices(self) -> None:
        # a stored session can outlive a content change that shortened the quiz
        state = self.state
        question_index, page_index = state.question_index, state.page_index
        if self.is_hypothesis:
            page_index = max(0, min(page_index, len(self.content.pages) - 1))
        else:
            question_index = max(0, min(question_index, len(self.regular_questions()) - 1))
        if (question_index, page_index) != (state.question_index, state.page_index):
            logger.warning(
                "Clamping stored position (%s, %s) to (%s, %s) for quiz %s",
                state.question_index,
                state.page_index,
                question_index,
                page_index,
                self.config.slug,
            )
            state.question_index = question_index
            if page_index != state.page_index:
                state.page_index = page_index
                state.page_submitted = self._page_complete(page_index)

    @property
    def state(self) -> SessionState:
        if self._state is None:
            raise SessionNotInitialized("FlowController used before a SessionState was attached")
        return self._state

    @property
    def config(self):
        return self.content.config

    @property
    def is_hypothesis(self) -> bool:
        return self.config.quiz_type == "hypothesis"

    @property
    def has_open_mindedness(self) -> bool:
        return self.config.include_open_mindedness and self.content.open_mindedness is not None

    def _expect(self, action: str, *stages: str) -> SessionState:
        state = self.state
        if state.stage not in stages:
            raise InvalidTransition(action, state.stage)
        return state

    def _finish_questions(self) -> None:
        self.state.stage = "mindedness" if self.has_open_mindedness else "email"

    # -- standard / emotional ------------------------------------------------

    def regular_questions(self) -> List[Question]:
        order = self.state.question_order
        if not order:
            return list(self.content.questions)
        by_id = {question.id: question for question in self.content.questions}
        ordered = [by_id[qid] for qid in order if qid in by_id]
        # questions added to the quiz after the permutation was drawn go last
        ordered.extend(q for q in self.content.questions if q.id not in order)
        return ordered

    def total_question_count(self) -> int:
        if self.is_hypothesis:
            count = len(self.content.hypothesis_questions)
        else:
            count = len(self.content.questions)
        return count + (1 if self.has_open_mindedness else 0)

    def start(self) -> None:
        state = self._expect("start", "welcome")
        if self.config.shuffle_questions and not state.question_order:
            state.question_order = [q.id for q in session_shuffle(self.content.questions)]
        state.question_index = 0
        state.page_index = 0
        state.page_submitted = self._page_complete(0)
        state.stage = "quiz"

    def current_question(self) -> Optional[Question]:
        questions = self.regular_questions()
        index = self.state.question_index
        if 0 <= index < len(questions):
            return questions[index]
        return None

    def is_last_question(self) -> bool:
        return self.state.question_index >= len(self.regular_questions()) - 1

    def selected_answer(self) -> Optional[str]:
        question = self.current_question()
        return self.state.ledger.answer_for(question.id) if question else None

    def display_answers(self, question: Optional[Question] = None, now_ms: Optional[int] = None) -> Tuple[Answer, ...]:
        question = question or self.current_question()
        if question is None:
            return ()
        if not self.config.shuffle_answers:
            return question.answers
        seeds = self.state.answer_seeds
        if question.id not in seeds:
            seeds[question.id] = answer_seed(question.id, now_ms)
        return tuple(seeded_shuffle(question.answers, seeds[question.id]))

    def record_answer(self, question_id: str, answer_id: str, score: int) -> None:
        """Store an answer for the current question and advance.

        Completeness is the caller's concern; any entry is accepted.
        """
        state = self._expect("answer", "quiz")
        state.ledger.record(LedgerEntry(question_id, answer_id, score))
        if self.is_last_question():
            self._finish_questions()
        else:
            state.question_index += 1

    def select_answer(self, answer_id: str) -> None:
        self._expect("answer", "quiz")
        question = self.current_question()
        if question is None or self.is_hypothesis:
            raise InvalidTransition("answer", self.state.stage)
        answer = question.answer(answer_id)
        self.record_answer(question.id, answer_id, answer.score if answer else 0)

    def back(self) -> None:
        state = self.state
        if state.stage == "mindedness":
            self.mindedness_back()
            return
        self._expect("back", "quiz")
        if state.question_index > 0:
            state.question_index -= 1

    def go_to(self, index: int) -> None:
        state = self._expect("go_to", "quiz")
        last = len(self.regular_questions()) - 1
        state.question_index = max(0, min(index, last))

    # -- open-mindedness -----------------------------------------------------

    def _known_options(self, option_ids) -> List[str]:
        question = self.content.open_mindedness
        known = [option.id for option in question.options] if question else []
        wanted = set(option_ids)
        return [option_id for option_id in known if option_id in wanted]

    def set_open_mindedness(self, option_ids: Sequence[str]) -> None:
        state = self._expect("open_mindedness", "mindedness")
        state.open_mindedness = self._known_options(option_ids)

    def toggle_open_mindedness(self, option_id: str, checked: bool) -> None:
        selected = set(self._expect("open_mindedness", "mindedness").open_mindedness)
        if checked:
            selected.add(option_id)
        else:
            selected.discard(option_id)
        self.state.open_mindedness = self._known_options(selected)

    def mindedness_next(self) -> None:
        self._expect("next", "mindedness").stage = "email"

    def mindedness_back(self) -> None:
        state = self._expect("back", "mindedness")
        state.stage = "quiz"
        if self.is_hypothesis:
            state.page_index = max(0, len(self.content.pages) - 1)
            state.page_submitted = self._page_complete(state.page_index)
        else:
            state.question_index = max(0, len(self.regular_questions()) - 1)

    # -- hypothesis pages ----------------------------------------------------

    def current_page(self) -> Optional[HypothesisPage]:
        pages = self.content.pages
        index = self.state.page_index
        if 0 <= index < len(pages):
            return pages[index]
        return None

    def page_questions(self) -> Tuple[HypothesisQuestion, ...]:
        page = self.current_page()
        return page.questions if page else ()

    def _page_complete(self, page_index: int) -> bool:
        pages = self.content.pages
        if not (0 <= page_index < len(pages)):
            return False
        ledger = self.state.ledger
        return all(q.id in ledger for q in pages[page_index].questions)

    def record_hypothesis(self, question_id: str, value: bool) -> None:
        self._expect("answer", "quiz")
        question = self.content.hypothesis_question(question_id)
        if question is None:
            return
        self.state.ledger.record(
            LedgerEntry(question.id, "true" if value else "false", 1 if question.is_correct(value) else 0)
        )

    def submit_page(self, answers: Mapping[str, bool]) -> bool:
        """Record the page's answers; True once every hypothesis on it is answered."""
        state = self._expect("submit_page", "quiz")
        if not self.is_hypothesis or state.page_submitted:
            raise InvalidTransition("submit_page", state.stage)
        questions = self.page_questions()
        for question in questions:
            if question.id in answers:
                self.record_hypothesis(question.id, answers[question.id])
        answered = sum(1 for q in questions if q.id in state.ledger)
        state.question_index = max(0, min(answered, len(questions)) - 1)
        state.page_submitted = self._page_complete(state.page_index)
        return state.page_submitted

    def next_page(self) -> None:
        state = self._expect("next_page", "quiz")
        if not self.is_hypothesis or not state.page_submitted:
            raise InvalidTransition("next_page", state.stage)
        if state.page_index < len(self.content.pages) - 1:
            state.page_index += 1
            state.question_index = 0
            state.page_submitted = self._page_complete(state.page_index)
        else:
            self._finish_questions()

    def hypothesis_answer(self, question_id: str) -> Optional[bool]:
        answer_id = self.state.ledger.answer_for(question_id)
        if answer_id is None:
            return None
        return answer_id == "true"

    # -- email / results -----------------------------------------------------

    def set_email(self, email: str) -> None:
        self._expect("email", "email").email = email

    def set_feedback(self, new_learnings: str = "", action_plan: str = "") -> None:
        state = self._expect("feedback", "email")
        state.feedback_new_learnings = new_learnings.strip()
        state.feedback_action_plan = action_plan.strip()

    def complete_email(self, email: str, lead_id: Optional[str] = None) -> None:
        """Move to results; call only after the lead write has succeeded."""
        state = self._expect("email", "email")
        state.email = email
        state.lead_id = lead_id
        state.stage = "results"

    def reset(self) -> None:
        state = self.state
        state.stage = "welcome"
        state.question_index = 0
        state.page_index = 0
        state.page_submitted = False
        state.ledger.clear()
        state.open_mindedness = []
        state.email = ""
        state.feedback_new_learnings = ""
        state.feedback_action_plan = ""
        state.question_order = []
        state.answer_seeds = {}
        state.lead_id = None

    # -- derived values ------------------------------------------------------

    def summary(self) -> ScoreSummary:
        return summarize(self.content, self.state.ledger, self.state.open_mindedness)

    def progress(self) -> Tuple[int, int]:
        state = self.state
        total = self.total_question_count()
        if state.stage == "mindedness":
            return total, total
        if state.stage in ("email", "results"):
            return total, total
        if self.is_hypothesis:
            before = sum(len(page.questions) for page in self.content.pages[: state.page_index])
            answered = sum(1 for q in self.page_questions() if q.id in state.ledger)
            return min(before + answered, total), total
        return min(state.question_index + 1, total), total

    def progress_percent(self) -> int:
        current, total = self.progress()
        return round(current / total * 100) if total else 0
