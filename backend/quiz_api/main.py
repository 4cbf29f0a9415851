"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the quiz backend. Controllers
are intentionally thin: they accept requests, delegate to services, and
wrap the outcome in the `{success, message, data}` envelope. Domain
errors raised by services are translated by the exception handlers
registered below.

Endpoints implemented:
- POST /api/auth/register
- POST /api/auth/login
- GET /api/auth/me
- POST /api/quizzes, GET /api/quizzes
- GET/PUT/DELETE /api/quizzes/{quiz_id}
- POST/GET /api/quizzes/{quiz_id}/questions
- PUT/DELETE /api/questions/{question_id}
- POST /api/quizzes/{quiz_id}/submit
- GET /api/quizzes/{quiz_id}/results
- GET /api/results/my
- GET /api/results/{result_id}
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Body, Depends, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import ValidationError
from sqlmodel import Session
import json
import logging
import time
import uuid
from .database import create_db_and_tables, dispose_engine, get_session
from . import services, models
from .auth import get_current_user
from .errors import QuizAppError, ValidationFailed
from .schemas import (
    LoginIn, QuestionIn, QuestionUpdate, QuizIn, QuizSubmission, QuizUpdate, RegisterIn, TokenOut,
)
from .utils.grading import SubmittedAnswer
from .config import settings

logger = logging.getLogger("quiz_api.api")
if not logging.getLogger().handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    create_db_and_tables()
    logger.info("database ready")
    yield
    dispose_engine()


app = FastAPI(title="Quiz API", version="1.0.0", lifespan=lifespan)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
            },
            ensure_ascii=True,
        ),
    )
    return response


def _fail(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'success': False, 'message': message, **extra})


def _ok(data=None, message: str = None, count: int = None) -> dict:
    out = {'success': True}
    if message is not None:
        out['message'] = message
    if count is not None:
        out['count'] = count
    out['data'] = data
    return out


@app.exception_handler(QuizAppError)
async def quiz_app_error_handler(_request: Request, exc: QuizAppError):
    if isinstance(exc, ValidationFailed):
        return _fail(exc.status_code, exc.message, errors=exc.errors)
    return _fail(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={'success': False, 'message': str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_request: Request, exc: RequestValidationError):
    errors = {
        ".".join(str(p) for p in err.get("loc", ()) if p != "body"): err.get("msg", "invalid")
        for err in exc.errors()
    }
    return _fail(400, 'Please provide the request data in the correct format', errors=errors)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _fail(500, 'Server Error')


@app.get("/")
def root():
    """API index for quick manual testing."""
    return {
        'success': True,
        'message': 'Quiz Application API',
        'version': app.version,
        'endpoints': {
            'auth': '/api/auth',
            'quizzes': '/api/quizzes',
            'questions': '/api/questions',
            'results': '/api/results',
        },
    }


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return _ok({"status": "ok"}, message='Service is healthy')


@app.post('/api/auth/register', status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Register a new user with the default `user` role."""
    user = services.AuthService(db).register(payload.username, payload.password, email=payload.email)
    return _ok(services.user_summary(user), message='User registered successfully')


@app.post('/api/auth/login')
def login(payload: LoginIn, db: Session = Depends(get_session)):
    """Authenticate a user and return a short-lived JWT token.

    The returned token contains `user_id`, `username` and `role` and is
    signed using the configured JWT secret.
    """
    token = services.AuthService(db).authenticate(payload.username, payload.password)
    if not token:
        raise HTTPException(status_code=401, detail='invalid credentials')
    return _ok(TokenOut(access_token=token).model_dump(), message='Login successful')


@app.get('/api/auth/me')
def me(user: models.User = Depends(get_current_user)):
    return _ok({**services.user_summary(user), 'role': user.role})


@app.post('/api/quizzes', status_code=201)
def create_quiz(payload: QuizIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Create a quiz owned by the authenticated user."""
    quiz = services.QuizService(db).create(user, payload.title, payload.description, payload.is_public)
    return _ok(quiz, message='Quiz created successfully')


@app.get('/api/quizzes')
def list_quizzes(db: Session = Depends(get_session)):
    """List public quizzes, newest first."""
    quizzes = services.QuizService(db).list_public()
    return _ok(quizzes, count=len(quizzes))


@app.get('/api/quizzes/{quiz_id}')
def get_quiz(quiz_id: int, db: Session = Depends(get_session)):
    """Return a quiz with its question count (correct answers are never included)."""
    return _ok(services.QuizService(db).get(quiz_id))


@app.put('/api/quizzes/{quiz_id}')
def update_quiz(quiz_id: int, payload: QuizUpdate, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    quiz = services.QuizService(db).update(quiz_id, user, payload.model_dump())
    return _ok(quiz, message='Quiz updated successfully')


@app.delete('/api/quizzes/{quiz_id}')
def delete_quiz(quiz_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Delete a quiz and its questions; submitted results are kept."""
    services.QuizService(db).delete(quiz_id, user)
    return _ok({}, message='Quiz and associated questions deleted successfully')


@app.post('/api/quizzes/{quiz_id}/questions', status_code=201)
def add_question(quiz_id: int, payload: QuestionIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    question = services.QuestionService(db).add(
        quiz_id, user, payload.question_text, payload.options, payload.correct_answer_index
    )
    return _ok(question, message='Question added successfully')


@app.get('/api/quizzes/{quiz_id}/questions')
def list_questions(quiz_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """List a quiz's questions; correct answers are hidden unless the caller is its creator or an admin."""
    questions = services.QuestionService(db).list_for_quiz(quiz_id, user)
    return _ok(questions, count=len(questions))


@app.put('/api/questions/{question_id}')
def update_question(question_id: int, payload: QuestionUpdate, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    question = services.QuestionService(db).update(question_id, user, payload.model_dump())
    return _ok(question, message='Question updated successfully')


@app.delete('/api/questions/{question_id}')
def delete_question(question_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    services.QuestionService(db).delete(question_id, user)
    return _ok({}, message='Question deleted successfully')


@app.post('/api/quizzes/{quiz_id}/submit', status_code=201)
def submit_quiz(quiz_id: int, payload: Any = Body(default=None), db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Submit answers for a quiz and return the computed score.

    Each user may submit a quiz once. Answers for unknown questions are
    ignored; the percentage is relative to every question in the quiz.
    The quiz is looked up before the body is validated, so an unknown quiz
    is reported as not found whatever the payload.
    """
    services.QuizService(db).get_quiz_or_404(quiz_id)
    try:
        submission = QuizSubmission.model_validate(payload)
    except ValidationError as e:
        raise RequestValidationError(e.errors())
    answers = [SubmittedAnswer(a.question_id, a.selected_answer) for a in submission.answers]
    data = services.SubmissionService(db).submit(user, quiz_id, answers)
    return _ok(data, message='Quiz submitted successfully')


@app.get('/api/quizzes/{quiz_id}/results')
def quiz_results(quiz_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """All results for a quiz, highest score first (quiz creator or admin)."""
    results = services.ResultQueryService(db).get_quiz_results(quiz_id, user)
    return _ok(results, count=len(results))


@app.get('/api/results/my')
def my_results(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """The authenticated user's results, newest first."""
    results = services.ResultQueryService(db).get_my_results(user)
    return _ok(results, count=len(results))


@app.get('/api/results/{result_id}')
def get_result(result_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """A single result with resolved questions (owner or admin)."""
    return _ok(services.ResultQueryService(db).get_result(result_id, user))
