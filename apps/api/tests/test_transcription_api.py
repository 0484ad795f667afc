"""HTTP contract tests for the video and transcription routes."""

from __future__ import annotations

import asyncio
import time
import unittest

from fastapi.testclient import TestClient

from fakes import (
    MEDIA_URI,
    FakeArtifactStore,
    FakeRecognitionClient,
    build_orchestrator,
    make_settings,
    transcribe_document,
)
from vidscribe.errors import SubmissionError, TransportError
from vidscribe.main import create_app
from vidscribe.repositories.memory import InMemoryStore
from vidscribe.routes.transcriptions import start_transcription
from vidscribe.routes.videos import transcript_filename
from vidscribe.schemas.video import TranscriptionStatus

_NOT_FOUND = {"code": "RESOURCE_NOT_FOUND", "message": "Resource not found"}


class _ApiCase(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryStore()
        self.recognition = FakeRecognitionClient()
        self.artifacts = FakeArtifactStore()
        app = create_app(
            settings=make_settings(),
            store=self.store,
            recognition=self.recognition,
            artifacts=self.artifacts,
        )
        self.client = self.enterContext(TestClient(app))

    def _create_video(self, **overrides: str) -> dict:
        payload = {"title": "Quarterly Review", "media_location": MEDIA_URI, **overrides}
        response = self.client.post("/api/v1/videos", json=payload)
        self.assertEqual(response.status_code, 201)
        return response.json()

    def _complete(self, job_name: str, transcript: str = "hello world") -> None:
        artifact_uri = f"s3://test-transcripts/transcriptions/{job_name}.json"
        self.artifacts.documents[artifact_uri] = transcribe_document(transcript, ["0.90", "0.80"])
        self.recognition.complete(job_name, artifact_uri)


class VideoApiTests(_ApiCase):
    def test_register_and_get_video(self) -> None:
        video = self._create_video(language="Spanish")

        self.assertEqual(video["transcription_status"], "not_started")
        self.assertEqual(video["language_code"], "es-ES")

        fetched = self.client.get(f"/api/v1/videos/{video['id']}")
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(fetched.json()["title"], "Quarterly Review")

    def test_missing_video_returns_no_leak_404(self) -> None:
        paths = [
            ("get", "/api/v1/videos/video-missing"),
            ("get", "/api/v1/videos/video-missing/transcript"),
            ("get", "/api/v1/videos/video-missing/transcription/jobs"),
            ("get", "/api/v1/videos/video-missing/transcription/progress"),
            ("post", "/api/v1/videos/video-missing/transcription"),
            ("post", "/api/v1/videos/video-missing/transcription/cancel"),
            ("post", "/api/v1/videos/video-missing/transcription/retry"),
            ("post", "/api/v1/videos/video-missing/transcription/watch"),
        ]
        for method, path in paths:
            with self.subTest(method=method, path=path):
                response = getattr(self.client, method)(path)
                self.assertEqual(response.status_code, 404)
                self.assertEqual(response.json(), _NOT_FOUND)

    def test_languages_lists_supported_mappings(self) -> None:
        response = self.client.get("/api/v1/languages")

        self.assertEqual(response.status_code, 200)
        languages = {item["language"]: item["language_code"] for item in response.json()}
        self.assertEqual(languages["english"], "en-US")
        self.assertEqual(languages["japanese"], "ja-JP")

    def test_transcript_filename_is_sanitized(self) -> None:
        self.assertEqual(transcript_filename("My Talk: Part 1/2"), "My_Talk_Part_1_2.txt")
        self.assertEqual(transcript_filename("..."), "transcript.txt")


class TranscriptionApiTests(_ApiCase):
    def test_start_poll_complete_and_export(self) -> None:
        video = self._create_video()

        started = self.client.post(f"/api/v1/videos/{video['id']}/transcription")
        self.assertEqual(started.status_code, 202)
        job_name = started.json()["job_name"]
        self.assertEqual(started.json()["status"], "in_progress")
        self.assertFalse(started.json()["watching"])

        progress = self.client.get(f"/api/v1/videos/{video['id']}/transcription/progress")
        self.assertEqual(progress.status_code, 200)
        self.assertEqual(progress.json()["progress_percent"], 25)

        self._complete(job_name)
        progress = self.client.get(f"/api/v1/videos/{video['id']}/transcription/progress")
        self.assertEqual(progress.json()["status"], "completed")
        self.assertEqual(progress.json()["progress_percent"], 100)
        self.assertEqual(progress.json()["word_count"], 2)

        exported = self.client.get(f"/api/v1/videos/{video['id']}/transcript")
        self.assertEqual(exported.status_code, 200)
        self.assertEqual(exported.text, "hello world")
        self.assertTrue(exported.headers["content-type"].startswith("text/plain"))
        self.assertEqual(
            exported.headers["content-disposition"],
            'attachment; filename="Quarterly_Review.txt"',
        )

        jobs = self.client.get(f"/api/v1/videos/{video['id']}/transcription/jobs").json()
        self.assertEqual([job["job_name"] for job in jobs], [job_name])
        self.assertEqual(jobs[0]["status"], "COMPLETED")

    def test_start_with_options_and_overrides(self) -> None:
        video = self._create_video()

        response = self.client.post(
            f"/api/v1/videos/{video['id']}/transcription",
            json={
                "language": "german",
                "options": {"speaker_labels": True, "max_speaker_labels": 5},
            },
        )

        self.assertEqual(response.status_code, 202)
        submission = self.recognition.submissions[0]
        self.assertEqual(submission["language_code"], "de-DE")
        self.assertEqual(submission["settings"]["max_speaker_labels"], 5)

    def test_invalid_options_are_rejected(self) -> None:
        video = self._create_video()

        response = self.client.post(
            f"/api/v1/videos/{video['id']}/transcription",
            json={"options": {"speaker_labels": True, "max_speaker_labels": 1}},
        )

        self.assertEqual(response.status_code, 422)
        self.assertEqual(self.recognition.submissions, [])

    def test_second_start_returns_conflict(self) -> None:
        video = self._create_video()
        first = self.client.post(f"/api/v1/videos/{video['id']}/transcription").json()

        response = self.client.post(f"/api/v1/videos/{video['id']}/transcription")

        self.assertEqual(response.status_code, 409)
        payload = response.json()
        self.assertEqual(payload["code"], "TRANSCRIPTION_CONFLICT")
        self.assertEqual(payload["details"]["current_status"], "in_progress")
        self.assertEqual(payload["details"]["job_name"], first["job_name"])

    def test_transcript_before_completion_conflicts(self) -> None:
        video = self._create_video()

        response = self.client.get(f"/api/v1/videos/{video['id']}/transcript")

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["details"], {"current_status": "not_started"})

    def test_submission_failure_returns_502_and_fails_video(self) -> None:
        video = self._create_video()
        self.recognition.submit_error = SubmissionError("Speech recognition service unreachable")

        response = self.client.post(f"/api/v1/videos/{video['id']}/transcription")

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()["code"], "TRANSCRIPTION_SUBMISSION_FAILED")
        fetched = self.client.get(f"/api/v1/videos/{video['id']}").json()
        self.assertEqual(fetched["transcription_status"], "failed")

    def test_progress_transport_error_returns_503(self) -> None:
        video = self._create_video()
        self.client.post(f"/api/v1/videos/{video['id']}/transcription")
        self.recognition.status_errors.append(TransportError("Speech recognition service unreachable"))

        response = self.client.get(f"/api/v1/videos/{video['id']}/transcription/progress")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["code"], "TRANSCRIPTION_TRANSPORT_ERROR")

    def test_cancel_then_retry(self) -> None:
        video = self._create_video()
        first = self.client.post(f"/api/v1/videos/{video['id']}/transcription").json()["job_name"]

        canceled = self.client.post(f"/api/v1/videos/{video['id']}/transcription/cancel")
        self.assertEqual(canceled.status_code, 200)
        self.assertEqual(canceled.json()["transcription_status"], "failed")
        self.assertEqual(canceled.json()["transcription_error"], "canceled by user")

        replayed = self.client.post(f"/api/v1/videos/{video['id']}/transcription/cancel")
        self.assertEqual(replayed.status_code, 200)

        retried = self.client.post(f"/api/v1/videos/{video['id']}/transcription/retry")
        self.assertEqual(retried.status_code, 202)
        second = retried.json()["job_name"]
        self.assertNotEqual(first, second)

        jobs = self.client.get(f"/api/v1/videos/{video['id']}/transcription/jobs").json()
        self.assertEqual({job["job_name"]: job["status"] for job in jobs}, {first: "FAILED", second: "QUEUED"})

    def test_cancel_and_retry_reject_wrong_states(self) -> None:
        video = self._create_video()

        self.assertEqual(self.client.post(f"/api/v1/videos/{video['id']}/transcription/cancel").status_code, 409)
        self.assertEqual(self.client.post(f"/api/v1/videos/{video['id']}/transcription/retry").status_code, 409)

    def test_watch_polls_until_completion(self) -> None:
        video = self._create_video()
        started = self.client.post(f"/api/v1/videos/{video['id']}/transcription", json={"watch": True})
        self.assertEqual(started.status_code, 202)
        self.assertTrue(started.json()["watching"])

        self._complete(started.json()["job_name"], transcript="watched to the end")

        deadline = time.monotonic() + 5
        state = self.client.get(f"/api/v1/videos/{video['id']}/transcription/watch").json()
        while state["polling"] and time.monotonic() < deadline:
            time.sleep(0.02)
            state = self.client.get(f"/api/v1/videos/{video['id']}/transcription/watch").json()

        self.assertFalse(state["polling"])
        self.assertEqual(state["outcome"]["status"], "completed")
        fetched = self.client.get(f"/api/v1/videos/{video['id']}").json()
        self.assertEqual(fetched["transcription_text"], "watched to the end")

    def test_openapi_lists_contract_response_codes(self) -> None:
        schema = self.client.get("/openapi.json").json()

        start = schema["paths"]["/api/v1/videos/{videoId}/transcription"]["post"]["responses"]
        self.assertTrue({"202", "404", "409", "502"}.issubset(start))
        progress = schema["paths"]["/api/v1/videos/{videoId}/transcription/progress"]["get"]["responses"]
        self.assertIn("503", progress)


class RouteEventLoopTests(unittest.IsolatedAsyncioTestCase):
    async def test_slow_submission_does_not_stall_the_event_loop(self) -> None:
        orchestrator, store, recognition, _ = build_orchestrator()
        recognition.submit_delay_seconds = 0.3
        video = orchestrator.register_video(title="Lecture", media_location=MEDIA_URI)
        loop = asyncio.get_running_loop()
        gaps: list[float] = []
        done = asyncio.Event()

        async def tick() -> None:
            last = loop.time()
            while not done.is_set():
                await asyncio.sleep(0.01)
                now = loop.time()
                gaps.append(now - last)
                last = now

        ticker = asyncio.create_task(tick())
        accepted = await start_transcription(video.id, orchestrator, None)
        done.set()
        await ticker

        self.assertEqual(accepted.status, TranscriptionStatus.IN_PROGRESS)
        self.assertEqual(store.require_video(video.id).transcription_job_name, accepted.job_name)
        self.assertGreater(len(gaps), 5)
        self.assertLess(max(gaps), 0.2)


if __name__ == "__main__":
    unittest.main()
