"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable. Authoring payloads are
deliberately loose (`Any`) so that `quiz_api.validators` can report
per-field messages instead of a generic type error.
"""

from pydantic import BaseModel, Field
from typing import Any, List, Optional


class RegisterIn(BaseModel):
    """Payload for user registration."""
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=6)
    email: Optional[str] = None


class LoginIn(BaseModel):
    username: str
    password: str


class TokenOut(BaseModel):
    """Authentication payload containing an access token."""
    access_token: str
    token_type: str = "bearer"


class QuizIn(BaseModel):
    """Request format for creating a quiz."""
    title: Any = None
    description: Any = None
    is_public: bool = True


class QuizUpdate(BaseModel):
    title: Any = None
    description: Any = None
    is_public: Optional[bool] = None


class QuestionIn(BaseModel):
    """Request format for adding a question to a quiz."""
    question_text: Any = None
    options: Any = None
    correct_answer_index: Any = None


class QuestionUpdate(BaseModel):
    question_text: Any = None
    options: Any = None
    correct_answer_index: Any = None


class SubmittedAnswerIn(BaseModel):
    """Single submitted answer: the chosen option index for a question."""
    question_id: int
    selected_answer: int


class QuizSubmission(BaseModel):
    """Request model for submitting a quiz; `answers` may be partial."""
    answers: List[SubmittedAnswerIn]
