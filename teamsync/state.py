from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Request

from .services.transcription import JobStatus, TranscriptionConfig
from .store import TranscriptStore


@dataclass
class UploadJob:
    job_id: str
    filename: str
    status: JobStatus = JobStatus.SUBMITTED
    service_id: Optional[str] = None
    transcript_id: Optional[str] = None
    error: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "filename": self.filename,
            "status": self.status.value,
            "transcript_id": self.transcript_id,
            "error": self.error,
        }


@dataclass
class JobsState:
    items: Dict[str, UploadJob] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def create(self, filename: str) -> UploadJob:
        job = UploadJob(job_id=uuid.uuid4().hex[:12], filename=filename)
        with self.lock:
            self.items[job.job_id] = job
        return job

    def get(self, job_id: str) -> Optional[UploadJob]:
        with self.lock:
            return self.items.get(job_id)

    def discard(self, job_id: str) -> None:
        with self.lock:
            self.items.pop(job_id, None)

    def update(self, job_id: str, **changes: Any) -> None:
        with self.lock:
            job = self.items[job_id]
            for key, value in changes.items():
                setattr(job, key, value)


@dataclass
class State:
    """Mutable application state shared across routes.

    Attached to FastAPI's app.state instead of module-level globals.
    """

    uploads_dir: Path
    store: TranscriptStore
    transcription: TranscriptionConfig
    jobs: JobsState = field(default_factory=JobsState)


def get_state(request: Request) -> State:  # FastAPI dependency helper
    return request.app.state.state
