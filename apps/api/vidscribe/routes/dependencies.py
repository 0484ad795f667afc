"""Dependency wiring for routes."""

from __future__ import annotations

from fastapi import Request

from vidscribe.services.orchestrator import TranscriptionOrchestrator


def get_orchestrator(request: Request) -> TranscriptionOrchestrator:
    return request.app.state.orchestrator
