"""FastAPI application entrypoint."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse

from vidscribe.adapters.artifacts import ArtifactStore, S3ArtifactStore
from vidscribe.adapters.recognition import RecognitionClient, TranscribeRecognitionClient
from vidscribe.core.config import Settings, get_settings
from vidscribe.errors import ApiError
from vidscribe.repositories.base import RecordStore
from vidscribe.repositories.memory import InMemoryStore
from vidscribe.routes import transcriptions_router, videos_router
from vidscribe.services.orchestrator import TranscriptionOrchestrator

logger = logging.getLogger(__name__)

_TRANSCRIPTION_PREFIX = "/api/v1/videos/{videoId}/transcription"

_OPENAPI_RESPONSE_CODES: dict[str, dict[str, set[str]]] = {
    "/api/v1/videos": {"post": {"201"}},
    "/api/v1/videos/{videoId}": {"get": {"200", "404"}},
    "/api/v1/videos/{videoId}/transcript": {"get": {"200", "404", "409"}},
    "/api/v1/videos/{videoId}/transcription/jobs": {"get": {"200", "404"}},
    _TRANSCRIPTION_PREFIX: {"post": {"202", "404", "409", "502"}},
    f"{_TRANSCRIPTION_PREFIX}/progress": {"get": {"200", "404", "503"}},
    f"{_TRANSCRIPTION_PREFIX}/cancel": {"post": {"200", "404", "409"}},
    f"{_TRANSCRIPTION_PREFIX}/retry": {"post": {"202", "404", "409", "502"}},
    f"{_TRANSCRIPTION_PREFIX}/watch": {"post": {"202", "404"}, "get": {"200", "404"}},
}


def _apply_contract_response_codes(schema: dict) -> None:
    """Limit documented response codes to the ones each operation can return."""
    for path, methods in _OPENAPI_RESPONSE_CODES.items():
        path_item = schema.get("paths", {}).get(path)
        if not path_item:
            continue

        for method, allowed_codes in methods.items():
            operation = path_item.get(method)
            if not operation:
                continue

            responses = operation.setdefault("responses", {})
            for status_code in list(responses.keys()):
                if status_code not in allowed_codes and status_code != "422":
                    responses.pop(status_code, None)

            for status_code in sorted(allowed_codes):
                responses.setdefault(status_code, {"description": "See API contract"})


def create_app(
    *,
    settings: Settings | None = None,
    store: RecordStore | None = None,
    recognition: RecognitionClient | None = None,
    artifacts: ArtifactStore | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    orchestrator = TranscriptionOrchestrator(
        store or InMemoryStore(),
        recognition
        or TranscribeRecognitionClient(
            region=settings.aws_region,
            timeout_seconds=settings.remote_call_timeout_seconds,
        ),
        artifacts
        or S3ArtifactStore(
            region=settings.aws_region,
            timeout_seconds=settings.remote_call_timeout_seconds,
        ),
        settings=settings,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        await orchestrator.supervisor.shutdown()

    app = FastAPI(title="vidscribe API", version="0.1.0", lifespan=lifespan)
    app.state.orchestrator = orchestrator
    app.state.settings = settings

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning("request.failed code=%s status=%s", exc.payload.code, exc.status_code)
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload.model_dump(mode="json", exclude_none=True),
        )

    api_prefix = "/api/v1"
    app.include_router(videos_router, prefix=api_prefix)
    app.include_router(transcriptions_router, prefix=api_prefix)

    def custom_openapi() -> dict:
        if app.openapi_schema:
            return app.openapi_schema
        schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
        )
        _apply_contract_response_codes(schema)
        app.openapi_schema = schema
        return app.openapi_schema

    app.openapi = custom_openapi

    return app


app = create_app()
