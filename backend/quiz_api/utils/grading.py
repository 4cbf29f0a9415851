"""Answer matching and score aggregation for quiz submissions.

These helpers are pure: they work on an in-memory question set that the
caller loaded once, and never touch the database.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from ..errors import NoQuestions, QuestionNotFound
from ..models import Question

logger = logging.getLogger("quiz_api.grading")


@dataclass
class SubmittedAnswer:
    question_id: int
    selected_answer: int


@dataclass
class LedgerEntry:
    question_id: int
    selected_answer: int
    is_correct: bool


@dataclass
class ScoreSummary:
    score: int
    total: int
    ledger: List[LedgerEntry] = field(default_factory=list)

    @property
    def percentage(self) -> str:
        return percentage(self.score, self.total)


def match_answer(question: Optional[Question], selected: int) -> bool:
    """Return whether `selected` is the question's correct option.

    Raises `QuestionNotFound` when the question did not resolve. An
    out-of-range `selected` is simply never equal to the stored index.
    """
    if question is None:
        raise QuestionNotFound()
    return selected == question.correct_answer_index


def score_answers(questions: Sequence[Question], answers: Iterable[SubmittedAnswer]) -> ScoreSummary:
    """Fold submitted answers against the quiz's full question set.

    Answers referencing unknown questions are dropped from both the score
    and the ledger. `total` is always the size of the question set.
    """
    if not questions:
        raise NoQuestions()
    by_id: Dict[int, Question] = {q.id: q for q in questions}
    summary = ScoreSummary(score=0, total=len(questions))
    for a in answers:
        try:
            is_correct = match_answer(by_id.get(a.question_id), a.selected_answer)
        except QuestionNotFound:
            logger.debug("dropping answer for unknown question %s", a.question_id)
            continue
        if is_correct:
            summary.score += 1
        summary.ledger.append(LedgerEntry(a.question_id, a.selected_answer, is_correct))
    return summary


def percentage(score: int, total: int) -> str:
    """Format `score/total` as a percentage with two decimals, e.g. "66.67"."""
    if total <= 0:
        return "0.00"
    return f"{score / total * 100:.2f}"
