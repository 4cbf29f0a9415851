import pytest

from quiz_api import models
from quiz_api.errors import NoQuestions, QuestionNotFound
from quiz_api.utils.grading import SubmittedAnswer, match_answer, percentage, score_answers


def _questions(correct_indices):
    return [
        models.Question(
            id=i + 1, quiz_id=1, question_text=f'Question {i + 1}?',
            options=['a', 'b', 'c'], correct_answer_index=idx,
        )
        for i, idx in enumerate(correct_indices)
    ]


def test_example_scenario_drops_unknown_question():
    qs = _questions([1, 0, 2])
    answers = [SubmittedAnswer(1, 1), SubmittedAnswer(2, 0), SubmittedAnswer(3, 1), SubmittedAnswer(4, 0)]
    summary = score_answers(qs, answers)
    assert summary.score == 2
    assert summary.total == 3
    assert summary.percentage == '66.67'
    assert [e.question_id for e in summary.ledger] == [1, 2, 3]
    assert [e.is_correct for e in summary.ledger] == [True, True, False]


def test_total_is_question_count_not_answer_count():
    qs = _questions([0, 0, 0, 0])
    assert score_answers(qs, []).total == 4
    assert score_answers(qs, [SubmittedAnswer(1, 0)]).total == 4
    summary = score_answers(qs, [SubmittedAnswer(1, 0)] * 6)
    assert summary.total == 4
    assert summary.score == 6


def test_ledger_keeps_submission_order():
    qs = _questions([0, 1, 2])
    summary = score_answers(qs, [SubmittedAnswer(3, 2), SubmittedAnswer(1, 1), SubmittedAnswer(2, 1)])
    assert [(e.question_id, e.selected_answer, e.is_correct) for e in summary.ledger] == [
        (3, 2, True), (1, 1, False), (2, 1, True),
    ]


def test_empty_question_set_is_rejected():
    with pytest.raises(NoQuestions):
        score_answers([], [SubmittedAnswer(1, 0)])


def test_match_answer_requires_a_question():
    with pytest.raises(QuestionNotFound):
        match_answer(None, 0)


def test_out_of_range_selection_is_simply_wrong():
    q = _questions([2])[0]
    assert match_answer(q, 2) is True
    assert match_answer(q, 7) is False
    assert match_answer(q, -1) is False


@pytest.mark.parametrize('score,total,expected', [
    (0, 3, '0.00'), (1, 3, '33.33'), (2, 3, '66.67'), (3, 3, '100.00'), (0, 0, '0.00'),
])
def test_percentage_format(score, total, expected):
    assert percentage(score, total) == expected
