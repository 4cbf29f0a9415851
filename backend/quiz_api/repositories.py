"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
quizzes, questions, results). Repositories return SQLModel objects and
perform commits/refreshes where appropriate.
"""

import logging
from typing import List, Optional
from sqlmodel import Session, select
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from . import models
from .errors import DuplicateSubmission

logger = logging.getLogger("quiz_api.repositories")


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def get_by_email(self, email: str) -> Optional[models.User]:
        stmt = select(models.User).where(models.User.email == email)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)

    def save(self, user: models.User) -> models.User:
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user


class QuizRepository:
    """CRUD operations for `Quiz` records."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, quiz: models.Quiz) -> models.Quiz:
        self.session.add(quiz)
        self.session.commit()
        self.session.refresh(quiz)
        return quiz

    def get(self, quiz_id: int) -> Optional[models.Quiz]:
        """Fetch a quiz by id."""
        return self.session.get(models.Quiz, quiz_id)

    def list_public(self) -> List[models.Quiz]:
        """Return public quizzes, newest first."""
        stmt = (
            select(models.Quiz)
            .where(models.Quiz.is_public == True)  # noqa: E712
            .order_by(models.Quiz.created_at.desc(), models.Quiz.id.desc())
        )
        return self.session.exec(stmt).all()

    def save(self, quiz: models.Quiz) -> models.Quiz:
        self.session.add(quiz)
        self.session.commit()
        self.session.refresh(quiz)
        return quiz

    def delete_with_questions(self, quiz: models.Quiz) -> int:
        """Delete a quiz and every question attached to it in one commit.

        Results for the quiz are left in place. Returns the number of
        questions removed.
        """
        questions = self.session.exec(
            select(models.Question).where(models.Question.quiz_id == quiz.id)
        ).all()
        for q in questions:
            self.session.delete(q)
        self.session.delete(quiz)
        self.session.commit()
        return len(questions)


class QuestionRepository:
    """CRUD operations for `Question` records."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, question: models.Question) -> models.Question:
        self.session.add(question)
        self.session.commit()
        self.session.refresh(question)
        return question

    def get(self, question_id: int) -> Optional[models.Question]:
        """Fetch a question by id."""
        return self.session.get(models.Question, question_id)

    def list_for_quiz(self, quiz_id: int) -> List[models.Question]:
        """Return all questions of a quiz in creation order."""
        stmt = select(models.Question).where(models.Question.quiz_id == quiz_id).order_by(models.Question.id)
        return self.session.exec(stmt).all()

    def count_for_quiz(self, quiz_id: int) -> int:
        stmt = select(func.count()).select_from(models.Question).where(models.Question.quiz_id == quiz_id)
        return self.session.exec(stmt).one()

    def save(self, question: models.Question) -> models.Question:
        self.session.add(question)
        self.session.commit()
        self.session.refresh(question)
        return question

    def delete(self, question: models.Question) -> None:
        self.session.delete(question)
        self.session.commit()


class ResultRepository:
    """Persist quiz results with their ledger items and query them back.

    Results are immutable: there is no update or delete here.
    """
    def __init__(self, session: Session):
        self.session = session

    def create(self, result: models.QuizResult, items: List[models.QuizResultItem]) -> models.QuizResult:
        """Store a `QuizResult` and its items in a single transaction.

        A violation of the (user, quiz) unique constraint is reported as
        `DuplicateSubmission`; any other integrity error propagates.
        """
        user_id, quiz_id = result.user_id, result.quiz_id
        try:
            self.session.add(result)
            self.session.flush()
            for position, it in enumerate(items):
                it.quiz_result_id = result.id
                it.position = position
                self.session.add(it)
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            if self.find_by_user_and_quiz(user_id, quiz_id) is not None:
                logger.info("duplicate result rejected by constraint user=%s quiz=%s", user_id, quiz_id)
                raise DuplicateSubmission()
            raise
        self.session.refresh(result)
        return result

    def find_by_user_and_quiz(self, user_id: int, quiz_id: int) -> Optional[models.QuizResult]:
        stmt = select(models.QuizResult).where(
            models.QuizResult.user_id == user_id,
            models.QuizResult.quiz_id == quiz_id
        )
        return self.session.exec(stmt).first()

    def get(self, result_id: int) -> Optional[models.QuizResult]:
        """Fetch a result by id."""
        return self.session.get(models.QuizResult, result_id)

    def list_by_quiz(self, quiz_id: int) -> List[models.QuizResult]:
        """Results for a quiz, highest score first."""
        stmt = (
            select(models.QuizResult)
            .where(models.QuizResult.quiz_id == quiz_id)
            .order_by(models.QuizResult.score.desc(), models.QuizResult.submitted_at)
        )
        return self.session.exec(stmt).all()

    def list_by_user(self, user_id: int) -> List[models.QuizResult]:
        """Results of a user, newest submission first."""
        stmt = (
            select(models.QuizResult)
            .where(models.QuizResult.user_id == user_id)
            .order_by(models.QuizResult.submitted_at.desc(), models.QuizResult.id.desc())
        )
        return self.session.exec(stmt).all()

    def list_items(self, result_id: int) -> List[models.QuizResultItem]:
        """Ledger items of a result in submission order."""
        stmt = (
            select(models.QuizResultItem)
            .where(models.QuizResultItem.quiz_result_id == result_id)
            .order_by(models.QuizResultItem.position)
        )
        return self.session.exec(stmt).all()
