from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import select

from quiz_api import models, repositories
from quiz_api.errors import DuplicateSubmission


def _setup(session, n_users=1):
    users = []
    for i in range(n_users):
        users.append(repositories.UserRepository(session).create(
            models.User(username=f'user{i}', password_hash='x')
        ))
    quiz = repositories.QuizRepository(session).create(models.Quiz(title='Q', created_by=users[0].id))
    return users, quiz


def _items(*pairs):
    return [models.QuizResultItem(question_id=q, selected_answer=s, is_correct=c) for q, s, c in pairs]


def test_unique_constraint_maps_to_duplicate_submission(session):
    (user,), quiz = _setup(session)
    repo = repositories.ResultRepository(session)
    repo.create(models.QuizResult(user_id=user.id, quiz_id=quiz.id, score=1, total_questions=2), _items((1, 0, True)))
    with pytest.raises(DuplicateSubmission):
        repo.create(models.QuizResult(user_id=user.id, quiz_id=quiz.id, score=2, total_questions=2), _items((1, 1, False)))
    rows = session.exec(select(models.QuizResult)).all()
    assert len(rows) == 1
    assert rows[0].score == 1
    # the rejected ledger must not have been written either
    assert len(session.exec(select(models.QuizResultItem)).all()) == 1


def test_items_keep_submission_order(session):
    (user,), quiz = _setup(session)
    repo = repositories.ResultRepository(session)
    created = repo.create(
        models.QuizResult(user_id=user.id, quiz_id=quiz.id, score=1, total_questions=3),
        _items((3, 0, False), (1, 2, True), (2, 1, False)),
    )
    items = repo.list_items(created.id)
    assert [it.question_id for it in items] == [3, 1, 2]
    assert [it.position for it in items] == [0, 1, 2]


def test_list_by_quiz_ranks_by_score(session):
    users, quiz = _setup(session, n_users=3)
    repo = repositories.ResultRepository(session)
    for user, score in zip(users, (1, 3, 2)):
        repo.create(models.QuizResult(user_id=user.id, quiz_id=quiz.id, score=score, total_questions=3), [])
    assert [r.score for r in repo.list_by_quiz(quiz.id)] == [3, 2, 1]


def test_list_by_user_newest_first(session):
    (user,), first = _setup(session)
    qrepo = repositories.QuizRepository(session)
    second = qrepo.create(models.Quiz(title='Second', created_by=user.id))
    repo = repositories.ResultRepository(session)
    now = datetime.now(timezone.utc)
    repo.create(models.QuizResult(user_id=user.id, quiz_id=first.id, score=0, total_questions=1,
                                  submitted_at=now - timedelta(hours=1)), [])
    repo.create(models.QuizResult(user_id=user.id, quiz_id=second.id, score=1, total_questions=1,
                                  submitted_at=now), [])
    assert [r.quiz_id for r in repo.list_by_user(user.id)] == [second.id, first.id]
    assert repo.find_by_user_and_quiz(user.id, first.id) is not None
    assert repo.find_by_user_and_quiz(user.id, 999) is None


def test_delete_quiz_removes_questions_but_not_results(session):
    (user,), quiz = _setup(session)
    qrepo = repositories.QuestionRepository(session)
    question = qrepo.create(models.Question(quiz_id=quiz.id, question_text='Which one?', options=['a', 'b'],
                                            correct_answer_index=0))
    rrepo = repositories.ResultRepository(session)
    rrepo.create(models.QuizResult(user_id=user.id, quiz_id=quiz.id, score=1, total_questions=1),
                 _items((question.id, 0, True)))
    quiz_id = quiz.id
    assert repositories.QuizRepository(session).delete_with_questions(quiz) == 1
    assert qrepo.list_for_quiz(quiz_id) == []
    assert len(rrepo.list_by_user(user.id)) == 1
