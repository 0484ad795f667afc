"""Video routes."""

import re
from typing import Annotated

from fastapi import APIRouter, Depends, Path, status
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from vidscribe.core.languages import LANGUAGE_CODES, supported_languages
from vidscribe.routes.dependencies import get_orchestrator
from vidscribe.schemas.error import NoLeakNotFoundError, TranscriptionConflictError
from vidscribe.schemas.video import CreateVideoRequest, LanguageOption, TranscriptionJob, Video
from vidscribe.services.orchestrator import TranscriptionOrchestrator

router = APIRouter(tags=["Videos"])

_FILENAME_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def transcript_filename(title: str) -> str:
    stem = _FILENAME_UNSAFE.sub("_", title).strip("._") or "transcript"
    return f"{stem}.txt"


@router.post("/videos", response_model=Video, status_code=status.HTTP_201_CREATED)
async def register_video(
    payload: CreateVideoRequest,
    orchestrator: Annotated[TranscriptionOrchestrator, Depends(get_orchestrator)],
) -> Video:
    record = await run_in_threadpool(
        orchestrator.register_video,
        title=payload.title,
        media_location=payload.media_location,
        language=payload.language,
    )
    return Video.model_validate(record, from_attributes=True)


@router.get("/videos/{videoId}", response_model=Video, responses={404: {"model": NoLeakNotFoundError}})
async def get_video(
    video_id: Annotated[str, Path(alias="videoId")],
    orchestrator: Annotated[TranscriptionOrchestrator, Depends(get_orchestrator)],
) -> Video:
    record = await run_in_threadpool(orchestrator.get_video, video_id)
    return Video.model_validate(record, from_attributes=True)


@router.get(
    "/videos/{videoId}/transcription/jobs",
    response_model=list[TranscriptionJob],
    responses={404: {"model": NoLeakNotFoundError}},
)
async def list_transcription_jobs(
    video_id: Annotated[str, Path(alias="videoId")],
    orchestrator: Annotated[TranscriptionOrchestrator, Depends(get_orchestrator)],
) -> list[TranscriptionJob]:
    records = await run_in_threadpool(orchestrator.list_jobs, video_id)
    return [TranscriptionJob.model_validate(record, from_attributes=True) for record in records]


@router.get(
    "/videos/{videoId}/transcript",
    response_class=PlainTextResponse,
    responses={404: {"model": NoLeakNotFoundError}, 409: {"model": TranscriptionConflictError}},
)
async def export_transcript(
    video_id: Annotated[str, Path(alias="videoId")],
    orchestrator: Annotated[TranscriptionOrchestrator, Depends(get_orchestrator)],
) -> PlainTextResponse:
    video = await run_in_threadpool(orchestrator.get_transcript, video_id)
    return PlainTextResponse(
        video.transcription_text or "",
        headers={"Content-Disposition": f'attachment; filename="{transcript_filename(video.title)}"'},
    )


@router.get("/languages", response_model=list[LanguageOption])
async def list_languages() -> list[LanguageOption]:
    return [LanguageOption(language=name, language_code=LANGUAGE_CODES[name]) for name in supported_languages()]
