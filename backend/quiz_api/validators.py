"""Explicit validation for authored entities.

Each function inspects raw field values before any model is built and
raises `ValidationFailed` with one message per offending field. Nothing
here touches the database.
"""

from typing import Any, Dict, Optional

from .errors import ValidationFailed

MIN_QUESTION_LENGTH = 5
MIN_OPTIONS = 2
MAX_OPTIONS = 6
MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 1000


def validate_quiz(title: Any, description: Any = None) -> None:
    errors: Dict[str, str] = {}
    if not isinstance(title, str) or not title.strip():
        errors['title'] = 'Quiz title is required'
    elif len(title.strip()) > MAX_TITLE_LENGTH:
        errors['title'] = f'Quiz title must be at most {MAX_TITLE_LENGTH} characters'
    if description is not None:
        if not isinstance(description, str):
            errors['description'] = 'Description must be text'
        elif len(description) > MAX_DESCRIPTION_LENGTH:
            errors['description'] = f'Description must be at most {MAX_DESCRIPTION_LENGTH} characters'
    if errors:
        raise ValidationFailed(errors)


def validate_question(question_text: Any, options: Any, correct_answer_index: Any) -> None:
    """Validate a question's fields as a whole.

    The correct-answer bound is only checked once the options themselves
    are valid, since it depends on their count.
    """
    errors: Dict[str, str] = {}
    if not isinstance(question_text, str) or not question_text.strip():
        errors['question_text'] = 'Question text is required'
    elif len(question_text.strip()) < MIN_QUESTION_LENGTH:
        errors['question_text'] = f'Question must be at least {MIN_QUESTION_LENGTH} characters'

    options_ok = False
    if not isinstance(options, list):
        errors['options'] = 'Options are required'
    elif not MIN_OPTIONS <= len(options) <= MAX_OPTIONS:
        errors['options'] = f'Must have between {MIN_OPTIONS} and {MAX_OPTIONS} options'
    elif not all(isinstance(o, str) and o.strip() for o in options):
        errors['options'] = 'Every option must be non-empty text'
    else:
        options_ok = True

    # bool is an int subclass but never a valid index
    if correct_answer_index is None:
        errors['correct_answer_index'] = 'Correct answer index is required'
    elif isinstance(correct_answer_index, bool) or not isinstance(correct_answer_index, int):
        errors['correct_answer_index'] = 'Correct answer index must be an integer'
    elif options_ok and not 0 <= correct_answer_index < len(options):
        errors['correct_answer_index'] = 'Correct answer must be a valid option index'

    if errors:
        raise ValidationFailed(errors)


def merged(current: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay the non-None values of `patch` onto `current`."""
    out = dict(current)
    out.update({k: v for k, v in patch.items() if v is not None})
    return out


def clean_text(value: Optional[str]) -> Optional[str]:
    return value.strip() if isinstance(value, str) else value
