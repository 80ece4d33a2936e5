from __future__ import annotations

import json
import logging
import os
import ssl
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from urllib import error, request

from ..config import Settings

logger = logging.getLogger("teamsync.transcription")

_USER_AGENT = "teamsync-worker/1.0 python-urllib"


class TranscriptionError(RuntimeError):
    """The speech-to-text service rejected, failed or timed out a job."""


class JobStatus(str, Enum):
    SUBMITTED = "Submitted"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FAILED = "Failed"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


# Remote status -> local state
_REMOTE_STATUS = {
    "queued": JobStatus.SUBMITTED,
    "processing": JobStatus.PROCESSING,
    "completed": JobStatus.COMPLETED,
    "error": JobStatus.FAILED,
}


@dataclass
class TranscriptionConfig:
    api_key: Optional[str]
    base_url: str = "https://api.assemblyai.com/v2"
    poll_interval_s: float = 3.0
    poll_timeout_s: float = 600.0
    http_timeout_s: int = 40

    @classmethod
    def from_settings(cls, settings: Settings) -> "TranscriptionConfig":
        return cls(
            api_key=settings.transcription_api_key,
            base_url=settings.transcription_base_url.rstrip("/"),
            poll_interval_s=settings.poll_interval_s,
            poll_timeout_s=settings.poll_timeout_s,
            http_timeout_s=settings.http_timeout_s,
        )


@dataclass
class TranscriptionJob:
    service_id: str
    status: JobStatus = JobStatus.SUBMITTED
    error: Optional[str] = None
    result: Dict[str, Any] = field(default_factory=dict)


def _ssl_context() -> ssl.SSLContext:
    # Allow opt-out verify for environments with intercepting proxies
    if os.getenv("TEAMSYNC_SSL_NO_VERIFY"):
        return ssl._create_unverified_context()  # type: ignore[attr-defined]
    return ssl.create_default_context()


def _send(req: request.Request, timeout: int) -> Dict[str, Any]:
    try:
        with request.urlopen(req, context=_ssl_context(), timeout=timeout) as resp:
            raw = resp.read()
            return json.loads(raw.decode("utf-8"))
    except error.HTTPError as e:
        try:
            payload = e.read().decode("utf-8")
        except Exception:
            payload = str(e)
        raise TranscriptionError(f"HTTP {e.code}: {payload}")
    except error.URLError as e:
        raise TranscriptionError(f"request to {req.full_url} failed: {e.reason}")


def _http_post(url: str, headers: Dict[str, str], body: bytes, timeout: int = 40) -> Dict[str, Any]:
    hdrs = {"User-Agent": _USER_AGENT, **headers}
    return _send(request.Request(url, data=body, headers=hdrs, method="POST"), timeout)


def _http_get(url: str, headers: Dict[str, str], timeout: int = 40) -> Dict[str, Any]:
    hdrs = {"User-Agent": _USER_AGENT, **headers}
    return _send(request.Request(url, headers=hdrs, method="GET"), timeout)


class TranscriptionClient:
    """Client for an AssemblyAI-style transcription API.

    upload -> submit -> poll until a terminal status. Polling uses a fixed
    interval and gives up after `poll_timeout_s`.
    """

    def __init__(self, config: TranscriptionConfig, sleep: Callable[[float], None] = time.sleep):
        if not config.api_key:
            raise TranscriptionError("no transcription API key configured")
        self._config = config
        self._sleep = sleep

    def _headers(self, content_type: str = "application/json") -> Dict[str, str]:
        return {"authorization": self._config.api_key or "", "Content-Type": content_type}

    def upload(self, audio: bytes) -> str:
        """Upload raw audio bytes; returns the service-side URL."""
        data = _http_post(
            f"{self._config.base_url}/upload",
            self._headers("application/octet-stream"),
            audio,
            timeout=self._config.http_timeout_s,
        )
        url = data.get("upload_url")
        if not url:
            raise TranscriptionError("upload response has no upload_url")
        return url

    def submit(self, audio_url: str) -> TranscriptionJob:
        body = json.dumps({"audio_url": audio_url, "speaker_labels": True}).encode("utf-8")
        data = _http_post(
            f"{self._config.base_url}/transcript",
            self._headers(),
            body,
            timeout=self._config.http_timeout_s,
        )
        service_id = data.get("id")
        if not service_id:
            raise TranscriptionError("submit response has no transcript id")
        job = TranscriptionJob(service_id=str(service_id))
        self._apply(job, data)
        logger.info(f"transcription {job.service_id} submitted ({job.status.value})")
        return job

    def refresh(self, job: TranscriptionJob) -> TranscriptionJob:
        data = _http_get(
            f"{self._config.base_url}/transcript/{job.service_id}",
            self._headers(),
            timeout=self._config.http_timeout_s,
        )
        self._apply(job, data)
        return job

    @staticmethod
    def _apply(job: TranscriptionJob, data: Dict[str, Any]) -> None:
        remote = str(data.get("status") or "queued").lower()
        status = _REMOTE_STATUS.get(remote)
        if status is None:
            raise TranscriptionError(f"unexpected transcription status '{remote}'")
        job.status = status
        if status is JobStatus.COMPLETED:
            job.result = data
        elif status is JobStatus.FAILED:
            job.error = str(data.get("error") or "transcription failed")

    def wait(
        self,
        job: TranscriptionJob,
        on_status: Optional[Callable[[TranscriptionJob], None]] = None,
    ) -> TranscriptionJob:
        """Poll until the job completes. Raises on failure or timeout."""
        waited = 0.0
        while not job.status.terminal:
            if waited >= self._config.poll_timeout_s:
                raise TranscriptionError(
                    f"transcription {job.service_id} not finished after {self._config.poll_timeout_s:.0f}s"
                )
            self._sleep(self._config.poll_interval_s)
            waited += self._config.poll_interval_s
            before = job.status
            self.refresh(job)
            if job.status is not before:
                logger.info(f"transcription {job.service_id}: {before.value} -> {job.status.value}")
                if on_status is not None:
                    on_status(job)
        if job.status is JobStatus.FAILED:
            raise TranscriptionError(job.error or "transcription failed")
        return job

    def transcribe(
        self,
        audio: bytes,
        on_status: Optional[Callable[[TranscriptionJob], None]] = None,
    ) -> TranscriptionJob:
        job = self.submit(self.upload(audio))
        if on_status is not None:
            on_status(job)
        return self.wait(job, on_status=on_status)


def to_transcript(raw: Dict[str, Any], filename: str) -> Dict[str, Any]:
    """Map a completed service payload to the stored transcript document."""
    utterances: List[Dict[str, Any]] = []
    for u in raw.get("utterances") or []:
        utterances.append({
            "speaker": u.get("speaker"),
            "text": u.get("text") or "",
            "start": u.get("start"),
            "end": u.get("end"),
        })
    return {
        "id": str(raw.get("id")),
        "filename": filename,
        "uploadTime": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "displayName": filename,
        "utterances": utterances,
    }
