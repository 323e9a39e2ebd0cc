"""Request-scoped access to the components wired by the app lifespan."""

from __future__ import annotations

from fastapi import Request

from remaimber.core.practice_service import PracticeService
from remaimber.db.store import SQLiteStore


def get_store(request: Request) -> SQLiteStore:
    return request.app.state.store


def get_practice_service(request: Request) -> PracticeService:
    return request.app.state.practice
