"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories,
validators and the grading helpers. Services perform authorization
checks, execute domain logic, persist aggregates via repositories and
return plain dict payloads ready to be serialized. Failures are raised as
`quiz_api.errors` exceptions.
"""

import logging
from typing import Dict, Iterable, List, Optional
from sqlmodel import Session
from . import models, repositories
from .auth import create_token, hash_password, is_owner_or_admin, verify_password
from .errors import ConflictError, DuplicateSubmission, ForbiddenError, NotFoundError
from .utils.grading import SubmittedAnswer, percentage, score_answers
from . import validators

logger = logging.getLogger("quiz_api.services")


def user_summary(user: Optional[models.User]) -> Optional[dict]:
    if user is None:
        return None
    return {'id': user.id, 'username': user.username, 'email': user.email}


def quiz_summary(quiz: Optional[models.Quiz]) -> Optional[dict]:
    if quiz is None:
        return None
    return {'id': quiz.id, 'title': quiz.title, 'description': quiz.description}


def question_payload(q: models.Question, reveal_answer: bool) -> dict:
    """Serialize a question, withholding the correct index unless `reveal_answer`."""
    out = {
        'id': q.id,
        'quiz_id': q.quiz_id,
        'question_text': q.question_text,
        'options': list(q.options),
    }
    if reveal_answer:
        out['correct_answer_index'] = q.correct_answer_index
    return out


def can_see_answers(quiz: Optional[models.Quiz], user: models.User) -> bool:
    """Correct answers are visible to the quiz creator and to admins."""
    if user.is_admin:
        return True
    return quiz is not None and quiz.created_by == user.id


class AuthService:
    """Authentication related operations (register + authenticate)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def register(self, username: str, password: str, email: Optional[str] = None,
                 role: str = models.ROLE_USER) -> models.User:
        """Create a new user with a hashed password.

        Returns the persisted `User` instance.
        """
        if self.user_repo.get_by_username(username):
            raise ConflictError('Username already taken')
        if email and self.user_repo.get_by_email(email):
            raise ConflictError('Email already registered')
        u = models.User(username=username, email=email, password_hash=hash_password(password), role=role)
        return self.user_repo.create(u)

    def authenticate(self, username: str, password: str) -> Optional[str]:
        """Verify credentials and return a signed JWT token on success.

        Returns `None` if authentication fails.
        """
        user = self.user_repo.get_by_username(username)
        if not user or not verify_password(password, user.password_hash):
            return None
        return create_token(user)

    def promote_to_admin(self, username: str) -> models.User:
        user = self.user_repo.get_by_username(username)
        if not user:
            raise NotFoundError('User not found')
        user.role = models.ROLE_ADMIN
        return self.user_repo.save(user)


class QuizService:
    """Quiz authoring: create, list, read, update and delete."""
    def __init__(self, session: Session):
        self.session = session
        self.quiz_repo = repositories.QuizRepository(session)
        self.q_repo = repositories.QuestionRepository(session)
        self.user_repo = repositories.UserRepository(session)

    def _payload(self, quiz: models.Quiz, **extra) -> dict:
        return {
            'id': quiz.id,
            'title': quiz.title,
            'description': quiz.description,
            'is_public': quiz.is_public,
            'created_by': user_summary(self.user_repo.get(quiz.created_by)),
            'created_at': quiz.created_at,
            **extra,
        }

    def get_quiz_or_404(self, quiz_id: int) -> models.Quiz:
        quiz = self.quiz_repo.get(quiz_id)
        if not quiz:
            raise NotFoundError('Quiz not found')
        return quiz

    def require_owner(self, quiz: models.Quiz, user: models.User, action: str) -> None:
        if not is_owner_or_admin(quiz.created_by, user):
            raise ForbiddenError(f'Not authorized to {action}')

    def create(self, user: models.User, title, description=None, is_public: bool = True) -> dict:
        validators.validate_quiz(title, description)
        quiz = models.Quiz(
            title=title.strip(),
            description=validators.clean_text(description),
            created_by=user.id,
            is_public=is_public,
        )
        quiz = self.quiz_repo.create(quiz)
        logger.info("quiz created id=%s by user=%s", quiz.id, user.id)
        return self._payload(quiz)

    def list_public(self) -> List[dict]:
        return [self._payload(q) for q in self.quiz_repo.list_public()]

    def get(self, quiz_id: int) -> dict:
        """Quiz details with its question count; no question content."""
        quiz = self.get_quiz_or_404(quiz_id)
        return self._payload(quiz, questions_count=self.q_repo.count_for_quiz(quiz.id))

    def update(self, quiz_id: int, user: models.User, patch: Dict) -> dict:
        quiz = self.get_quiz_or_404(quiz_id)
        self.require_owner(quiz, user, 'update this quiz')
        data = validators.merged(
            {'title': quiz.title, 'description': quiz.description, 'is_public': quiz.is_public}, patch
        )
        validators.validate_quiz(data['title'], data['description'])
        quiz.title = data['title'].strip()
        quiz.description = validators.clean_text(data['description'])
        quiz.is_public = bool(data['is_public'])
        return self._payload(self.quiz_repo.save(quiz))

    def delete(self, quiz_id: int, user: models.User) -> None:
        """Delete a quiz and its questions. Existing results are kept."""
        quiz = self.get_quiz_or_404(quiz_id)
        self.require_owner(quiz, user, 'delete this quiz')
        removed = self.quiz_repo.delete_with_questions(quiz)
        logger.info("quiz deleted id=%s by user=%s questions_removed=%s", quiz_id, user.id, removed)


class QuestionService:
    """Question authoring scoped to the parent quiz's owner (or an admin)."""
    def __init__(self, session: Session):
        self.session = session
        self.quizzes = QuizService(session)
        self.q_repo = repositories.QuestionRepository(session)

    def _get_question_and_quiz(self, question_id: int):
        question = self.q_repo.get(question_id)
        if not question:
            raise NotFoundError('Question not found')
        return question, self.quizzes.get_quiz_or_404(question.quiz_id)

    def add(self, quiz_id: int, user: models.User, question_text, options, correct_answer_index) -> dict:
        quiz = self.quizzes.get_quiz_or_404(quiz_id)
        self.quizzes.require_owner(quiz, user, 'add questions to this quiz')
        validators.validate_question(question_text, options, correct_answer_index)
        q = models.Question(
            quiz_id=quiz.id,
            question_text=question_text.strip(),
            options=[o.strip() for o in options],
            correct_answer_index=correct_answer_index,
        )
        return question_payload(self.q_repo.create(q), reveal_answer=True)

    def list_for_quiz(self, quiz_id: int, user: models.User) -> List[dict]:
        """All questions of a quiz; correct answers only for creator/admin."""
        quiz = self.quizzes.get_quiz_or_404(quiz_id)
        reveal = can_see_answers(quiz, user)
        return [question_payload(q, reveal) for q in self.q_repo.list_for_quiz(quiz.id)]

    def update(self, question_id: int, user: models.User, patch: Dict) -> dict:
        question, quiz = self._get_question_and_quiz(question_id)
        self.quizzes.require_owner(quiz, user, 'update this question')
        data = validators.merged({
            'question_text': question.question_text,
            'options': list(question.options),
            'correct_answer_index': question.correct_answer_index,
        }, patch)
        validators.validate_question(data['question_text'], data['options'], data['correct_answer_index'])
        question.question_text = data['question_text'].strip()
        question.options = [o.strip() for o in data['options']]
        question.correct_answer_index = data['correct_answer_index']
        return question_payload(self.q_repo.save(question), reveal_answer=True)

    def delete(self, question_id: int, user: models.User) -> None:
        question, quiz = self._get_question_and_quiz(question_id)
        self.quizzes.require_owner(quiz, user, 'delete this question')
        self.q_repo.delete(question)


class SubmissionGuard:
    """Fast-path check that a user has not already submitted a quiz.

    The database unique constraint remains the binding rule; this check
    only avoids scoring work for the common, non-racing case.
    """
    def __init__(self, session: Session):
        self.result_repo = repositories.ResultRepository(session)

    def check_not_submitted(self, user_id: int, quiz_id: int) -> None:
        if self.result_repo.find_by_user_and_quiz(user_id, quiz_id) is not None:
            logger.info("duplicate submission rejected user=%s quiz=%s", user_id, quiz_id)
            raise DuplicateSubmission()


def result_payload(result: models.QuizResult, items: List[models.QuizResultItem],
                   quiz: Optional[models.Quiz] = None, user: Optional[models.User] = None,
                   questions: Optional[Dict[int, Optional[dict]]] = None) -> dict:
    """Serialize a result with its ledger.

    When `questions` is given each ledger entry carries the resolved
    question payload (or `None` for a question deleted since submission).
    """
    answers = []
    for it in items:
        entry = {
            'question_id': it.question_id,
            'selected_answer': it.selected_answer,
            'is_correct': it.is_correct,
        }
        if questions is not None:
            entry['question'] = questions.get(it.question_id)
        answers.append(entry)
    out = {
        'id': result.id,
        'user_id': result.user_id,
        'quiz_id': result.quiz_id,
        'score': result.score,
        'total_questions': result.total_questions,
        'percentage': percentage(result.score, result.total_questions),
        'submitted_at': result.submitted_at,
        'answers': answers,
    }
    if quiz is not None or user is not None:
        out['quiz'] = quiz_summary(quiz)
        out['user'] = user_summary(user)
    return out


class SubmissionService:
    """Score a quiz submission once per user and persist the result."""
    def __init__(self, session: Session):
        self.session = session
        self.guard = SubmissionGuard(session)
        self.quizzes = QuizService(session)
        self.q_repo = repositories.QuestionRepository(session)
        self.result_repo = repositories.ResultRepository(session)

    def submit(self, user: models.User, quiz_id: int, answers: Iterable[SubmittedAnswer]) -> dict:
        """Grade `answers` against the quiz's full question set.

        Raises `NotFoundError` for an unknown quiz, `DuplicateSubmission`
        when a result already exists (checked up front and again by the
        database on insert) and `NoQuestions` for an empty quiz.
        """
        quiz = self.quizzes.get_quiz_or_404(quiz_id)
        self.guard.check_not_submitted(user.id, quiz.id)
        questions = self.q_repo.list_for_quiz(quiz.id)
        summary = score_answers(questions, answers)
        result = models.QuizResult(
            user_id=user.id,
            quiz_id=quiz.id,
            score=summary.score,
            total_questions=summary.total,
        )
        items = [
            models.QuizResultItem(question_id=e.question_id, selected_answer=e.selected_answer, is_correct=e.is_correct)
            for e in summary.ledger
        ]
        created = self.result_repo.create(result, items)
        logger.info(
            "quiz submitted result=%s user=%s quiz=%s score=%s/%s",
            created.id, user.id, quiz.id, summary.score, summary.total,
        )
        return {
            'score': summary.score,
            'total_questions': summary.total,
            'percentage': summary.percentage,
            'result': result_payload(created, self.result_repo.list_items(created.id), quiz=quiz, user=user),
        }


class ResultQueryService:
    """Read side for results with owner/admin gating."""
    def __init__(self, session: Session):
        self.session = session
        self.result_repo = repositories.ResultRepository(session)
        self.quiz_repo = repositories.QuizRepository(session)
        self.q_repo = repositories.QuestionRepository(session)
        self.user_repo = repositories.UserRepository(session)

    def get_my_results(self, user: models.User) -> List[dict]:
        """The caller's own results, newest submission first."""
        return [
            result_payload(r, self.result_repo.list_items(r.id), quiz=self.quiz_repo.get(r.quiz_id), user=user)
            for r in self.result_repo.list_by_user(user.id)
        ]

    def get_result(self, result_id: int, user: models.User) -> dict:
        """A single result with resolved questions, for its owner or an admin."""
        result = self.result_repo.get(result_id)
        if not result:
            raise NotFoundError('Result not found')
        if not is_owner_or_admin(result.user_id, user):
            logger.warning("forbidden result read result=%s user=%s", result_id, user.id)
            raise ForbiddenError('Not authorized to view this result')
        quiz = self.quiz_repo.get(result.quiz_id)
        reveal = can_see_answers(quiz, user)
        items = self.result_repo.list_items(result.id)
        questions = {}
        for it in items:
            q = self.q_repo.get(it.question_id)
            # an id now owned by another quiz's question does not resolve
            resolved = q is not None and q.quiz_id == result.quiz_id
            questions[it.question_id] = question_payload(q, reveal) if resolved else None
        owner = self.user_repo.get(result.user_id)
        return result_payload(result, items, quiz=quiz, user=owner, questions=questions)

    def get_quiz_results(self, quiz_id: int, user: models.User) -> List[dict]:
        """All results for a quiz ranked by score, for its creator or an admin."""
        quiz = self.quiz_repo.get(quiz_id)
        if not quiz:
            raise NotFoundError('Quiz not found')
        if not is_owner_or_admin(quiz.created_by, user):
            logger.warning("forbidden quiz results read quiz=%s user=%s", quiz_id, user.id)
            raise ForbiddenError('Not authorized to view these results')
        return [
            result_payload(r, self.result_repo.list_items(r.id), quiz=quiz, user=self.user_repo.get(r.user_id))
            for r in self.result_repo.list_by_quiz(quiz.id)
        ]
