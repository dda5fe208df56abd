"""Middleware registration."""

from fastapi import FastAPI

from studyxp.config import Settings
from studyxp.middleware.cors import setup_cors
from studyxp.middleware.error_handler import setup_error_handlers
from studyxp.middleware.logging import setup_logging
from studyxp.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register middleware. Last added runs outermost, so CORS goes last."""
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
