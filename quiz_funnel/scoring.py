from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, NamedTuple, Optional, Sequence

from .ledger import AnswerLedger
from .models import OpenMindednessQuestion, QuizContent, ResultTier

logger = logging.getLogger(__name__)

DEFAULT_MAX_SCORE = 24
DEFAULT_OPEN_MINDEDNESS_MAX = 4
DEFAULT_EMOTIONAL_QUESTION_COUNT = 12
EMOTIONAL_SCALE = (1, 9)


class TierMatch(NamedTuple):
    tier: Optional[ResultTier]
    fallback: bool


def find_result_tier(score: float, tiers: Sequence[ResultTier]) -> TierMatch:
    """First tier whose inclusive range holds `score`, else the last tier.

    `fallback` is True when no range matched and the last tier was used.
    Tiers are scanned in the given order and never re-sorted.
    """
    if not tiers:
        return TierMatch(None, False)
    for tier in tiers:
        if tier.contains(score):
            return TierMatch(tier, False)
    logger.warning(
        "No result tier covers score %s (ranges %s); using the last tier",
        score,
        [(t.min_score, t.max_score) for t in tiers],
    )
    return TierMatch(tiers[-1], True)


def resolve_result_tier(score: float, tiers: Sequence[ResultTier]) -> Optional[ResultTier]:
    return find_result_tier(score, tiers).tier


def max_possible_score(tiers: Sequence[ResultTier], default: int = DEFAULT_MAX_SCORE) -> int:
    if not tiers:
        return default
    return max(tier.max_score for tier in tiers)


def total_score(ledger: AnswerLedger) -> int:
    return ledger.total_score()


def open_mindedness_score(question: Optional[OpenMindednessQuestion], selected: Iterable[str]) -> int:
    if question is None:
        return 0
    chosen = set(selected)
    return sum(option.points for option in question.options if option.id in chosen)


def emotional_average(total: int, answered: int) -> float:
    # an empty ledger would divide by zero
    count = answered or DEFAULT_EMOTIONAL_QUESTION_COUNT
    return total / count


def emotional_level(average: float) -> int:
    low, high = EMOTIONAL_SCALE
    # round half up, as the results page always has
    level = int(average + 0.5)
    return max(low, min(high, level))


@dataclass(frozen=True)
class ScoreSummary:
    quiz_type: str
    score: int
    max_score: int
    tier: Optional[ResultTier]
    tier_fallback: bool = False
    show_score: bool = True
    average: Optional[float] = None
    level: Optional[int] = None
    correct: Optional[int] = None
    total_questions: Optional[int] = None
    percentage: Optional[int] = None
    openness_score: int = 0
    openness_max: int = DEFAULT_OPEN_MINDEDNESS_MAX
    openness_tier: Optional[ResultTier] = None


class ScoringStrategy:
    quiz_type = "standard"

    def summarize(self, content: QuizContent, ledger: AnswerLedger, selected_options: Iterable[str]) -> ScoreSummary:
        score = ledger.total_score()
        match = find_result_tier(score, content.tiers)
        return ScoreSummary(
            quiz_type=self.quiz_type,
            score=score,
            max_score=max_possible_score(content.tiers),
            tier=match.tier,
            tier_fallback=match.fallback,
            show_score=content.config.enable_scoring,
            **self._openness(content, selected_options),
        )

    @staticmethod
    def _openness(content: QuizContent, selected_options: Iterable[str]) -> dict:
        om_score = open_mindedness_score(content.open_mindedness, selected_options)
        return {
            "openness_score": om_score,
            "openness_max": max_possible_score(content.open_mindedness_tiers, DEFAULT_OPEN_MINDEDNESS_MAX),
            "openness_tier": find_result_tier(om_score, content.open_mindedness_tiers).tier
            if content.open_mindedness is not None
            else None,
        }


class EmotionalScoring(ScoringStrategy):
    """Average of 1-9 answers; the tier is still looked up on the total."""

    quiz_type = "emotional"

    def summarize(self, content: QuizContent, ledger: AnswerLedger, selected_options: Iterable[str]) -> ScoreSummary:
        score = ledger.total_score()
        average = emotional_average(score, len(ledger))
        match = find_result_tier(score, content.tiers)
        return ScoreSummary(
            quiz_type=self.quiz_type,
            score=score,
            max_score=max_possible_score(content.tiers),
            tier=match.tier,
            tier_fallback=match.fallback,
            show_score=content.config.enable_scoring,
            average=average,
            level=emotional_level(average),
            **self._openness(content, selected_options),
        )


class HypothesisScoring(ScoringStrategy):
    """Ledger scores are 1 per correct hypothesis; tiers are percentages."""

    quiz_type = "hypothesis"

    def summarize(self, content: QuizContent, ledger: AnswerLedger, selected_options: Iterable[str]) -> ScoreSummary:
        correct = ledger.total_score()
        total = len(content.hypothesis_questions)
        percentage = round(correct / total * 100) if total else 0
        match = find_result_tier(percentage, content.tiers)
        return ScoreSummary(
            quiz_type=self.quiz_type,
            score=correct,
            max_score=total,
            tier=match.tier,
            tier_fallback=match.fallback,
            show_score=content.config.enable_scoring,
            correct=correct,
            total_questions=total,
            percentage=percentage,
            **self._openness(content, selected_options),
        )


STRATEGIES = {
    "standard": ScoringStrategy(),
    "emotional": EmotionalScoring(),
    "hypothesis": HypothesisScoring(),
}


def scoring_strategy(quiz_type: str) -> ScoringStrategy:
    return STRATEGIES.get(quiz_type, STRATEGIES["standard"])


def summarize(content: QuizContent, ledger: AnswerLedger, selected_options: Iterable[str] = ()) -> ScoreSummary:
    return scoring_strategy(content.config.quiz_type).summarize(content, ledger, selected_options)
