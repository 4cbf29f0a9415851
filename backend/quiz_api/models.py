"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table and uses relationships where appropriate.
"""

from typing import Optional
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, JSON, UniqueConstraint
from datetime import datetime, timezone
from typing import List

ROLE_USER = "user"
ROLE_ADMIN = "admin"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `username`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    - `role`: either `user` or `admin`
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    email: Optional[str] = Field(default=None, unique=True)
    password_hash: str
    role: str = Field(default=ROLE_USER)
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class Quiz(SQLModel, table=True):
    """A named collection of questions owned by its creator."""
    # ids are never reused, so results of a deleted quiz cannot attach to a new one
    __table_args__ = {'sqlite_autoincrement': True}

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: Optional[str] = None
    created_by: int = Field(foreign_key='user.id', index=True)
    is_public: bool = True
    created_at: datetime = Field(default_factory=_utcnow)
    questions: List['Question'] = Relationship(back_populates='quiz')


class Question(SQLModel, table=True):
    """A multiple-choice question belonging to a quiz.

    `options` is stored as a JSON list; `correct_answer_index` points into it.
    """
    __table_args__ = {'sqlite_autoincrement': True}

    id: Optional[int] = Field(default=None, primary_key=True)
    quiz_id: int = Field(foreign_key='quiz.id', index=True)
    question_text: str
    options: List[str] = Field(sa_column=Column(JSON, nullable=False))
    correct_answer_index: int
    created_at: datetime = Field(default_factory=_utcnow)
    quiz: Optional[Quiz] = Relationship(back_populates='questions')


class QuizResult(SQLModel, table=True):
    """A user's single scored submission for a quiz.

    At most one row exists per (user, quiz); the database enforces it.
    """
    __table_args__ = (UniqueConstraint('user_id', 'quiz_id', name='uq_result_user_quiz'),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key='user.id', index=True)
    # no foreign key: results outlive a deleted quiz
    quiz_id: int = Field(index=True)
    score: int = Field(ge=0)
    total_questions: int
    submitted_at: datetime = Field(default_factory=_utcnow)
    items: List['QuizResultItem'] = Relationship(back_populates='quiz_result')


class QuizResultItem(SQLModel, table=True):
    """A single matched answer inside a `QuizResult`, kept in submission order."""
    id: Optional[int] = Field(default=None, primary_key=True)
    quiz_result_id: int = Field(foreign_key='quizresult.id', index=True)
    position: int = 0
    # no foreign key: ledger entries outlive deleted questions
    question_id: int = Field(index=True)
    selected_answer: int
    is_correct: bool = False
    quiz_result: Optional[QuizResult] = Relationship(back_populates='items')
