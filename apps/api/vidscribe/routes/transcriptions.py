"""Transcription lifecycle routes."""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Path, Query, status
from starlette.concurrency import run_in_threadpool

from vidscribe.routes.dependencies import get_orchestrator
from vidscribe.schemas.error import (
    NoLeakNotFoundError,
    TranscriptionConflictError,
    UpstreamSubmissionError,
    UpstreamTransportError,
)
from vidscribe.schemas.video import (
    ProgressSnapshot,
    StartTranscriptionRequest,
    TranscriptionAccepted,
    TranscriptionStatus,
    Video,
    WatchState,
)
from vidscribe.services.orchestrator import TranscriptionOrchestrator

router = APIRouter(prefix="/videos/{videoId}/transcription", tags=["Transcription"])


@router.post(
    "",
    response_model=TranscriptionAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        404: {"model": NoLeakNotFoundError},
        409: {"model": TranscriptionConflictError},
        502: {"model": UpstreamSubmissionError},
    },
)
async def start_transcription(
    video_id: Annotated[str, Path(alias="videoId")],
    orchestrator: Annotated[TranscriptionOrchestrator, Depends(get_orchestrator)],
    payload: Annotated[StartTranscriptionRequest | None, Body()] = None,
) -> TranscriptionAccepted:
    request = payload or StartTranscriptionRequest()
    job_name = await run_in_threadpool(
        orchestrator.start,
        video_id,
        media_location=request.media_location,
        language_code=request.language,
        options=request.options,
    )
    if request.watch:
        orchestrator.watch(video_id)
    return TranscriptionAccepted(
        video_id=video_id,
        job_name=job_name,
        status=TranscriptionStatus.IN_PROGRESS,
        watching=request.watch,
    )


@router.get(
    "/progress",
    response_model=ProgressSnapshot,
    responses={404: {"model": NoLeakNotFoundError}, 503: {"model": UpstreamTransportError}},
)
async def check_progress(
    video_id: Annotated[str, Path(alias="videoId")],
    orchestrator: Annotated[TranscriptionOrchestrator, Depends(get_orchestrator)],
) -> ProgressSnapshot:
    return await run_in_threadpool(orchestrator.check_progress, video_id)


@router.post(
    "/cancel",
    response_model=Video,
    responses={404: {"model": NoLeakNotFoundError}, 409: {"model": TranscriptionConflictError}},
)
async def cancel_transcription(
    video_id: Annotated[str, Path(alias="videoId")],
    orchestrator: Annotated[TranscriptionOrchestrator, Depends(get_orchestrator)],
) -> Video:
    record = await run_in_threadpool(orchestrator.cancel, video_id)
    return Video.model_validate(record, from_attributes=True)


@router.post(
    "/retry",
    response_model=TranscriptionAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        404: {"model": NoLeakNotFoundError},
        409: {"model": TranscriptionConflictError},
        502: {"model": UpstreamSubmissionError},
    },
)
async def retry_transcription(
    video_id: Annotated[str, Path(alias="videoId")],
    orchestrator: Annotated[TranscriptionOrchestrator, Depends(get_orchestrator)],
    watch: Annotated[bool, Query()] = False,
) -> TranscriptionAccepted:
    job_name = await run_in_threadpool(orchestrator.retry, video_id)
    if watch:
        orchestrator.watch(video_id)
    return TranscriptionAccepted(
        video_id=video_id,
        job_name=job_name,
        status=TranscriptionStatus.IN_PROGRESS,
        watching=watch,
    )


@router.post(
    "/watch",
    response_model=WatchState,
    status_code=status.HTTP_202_ACCEPTED,
    responses={404: {"model": NoLeakNotFoundError}},
)
async def watch_transcription(
    video_id: Annotated[str, Path(alias="videoId")],
    orchestrator: Annotated[TranscriptionOrchestrator, Depends(get_orchestrator)],
) -> WatchState:
    orchestrator.watch(video_id)
    return orchestrator.watch_state(video_id)


@router.get("/watch", response_model=WatchState, responses={404: {"model": NoLeakNotFoundError}})
async def get_watch_state(
    video_id: Annotated[str, Path(alias="videoId")],
    orchestrator: Annotated[TranscriptionOrchestrator, Depends(get_orchestrator)],
) -> WatchState:
    return orchestrator.watch_state(video_id)
