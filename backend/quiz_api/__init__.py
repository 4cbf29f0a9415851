"""Application package for the quiz backend.

This package exposes the service, repository and model modules used by
the FastAPI application. Scoring helpers live in `quiz_api.utils.grading`;
individual modules contain the concrete implementations and documentation.
"""
