from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, Optional, Tuple

from fastapi import HTTPException, UploadFile

from ..state import State, UploadJob
from .transcription import (
    JobStatus,
    TranscriptionClient,
    TranscriptionError,
    TranscriptionJob,
    to_transcript,
)

logger = logging.getLogger("teamsync.transcriber")

_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9._-]+")

ClientFactory = Callable[..., TranscriptionClient]


def _safe_filename(name: Optional[str]) -> str:
    base = Path(name or "upload").name
    cleaned = _UNSAFE_NAME.sub("_", base).strip("._")
    return cleaned or "upload"


def _save_upload(state: State, upload: UploadFile, job_id: str) -> Path:
    state.uploads_dir.mkdir(parents=True, exist_ok=True)
    out_path = state.uploads_dir / f"{job_id}_{_safe_filename(upload.filename)}"
    data = upload.file.read()
    if not data:
        raise HTTPException(status_code=400, detail="No file uploaded.")
    out_path.write_bytes(data)
    return out_path


def start_upload(state: State, upload: UploadFile) -> Tuple[UploadJob, Path]:
    """Persist the upload and register a job; transcription runs later."""
    if not state.transcription.api_key:
        raise HTTPException(status_code=503, detail="Transcription service is not configured")
    filename = upload.filename or "upload"
    job = state.jobs.create(filename)
    try:
        path = _save_upload(state, upload, job.job_id)
    except HTTPException:
        state.jobs.discard(job.job_id)
        raise
    logger.info(f"upload {job.job_id}: saved {filename} ({path.stat().st_size} bytes)")
    return job, path


def run_upload_job(
    state: State,
    job_id: str,
    audio_path: Path,
    client_factory: ClientFactory = TranscriptionClient,
) -> None:
    """Transcribe a saved upload and store the result. Never raises."""
    job = state.jobs.get(job_id)
    if job is None:
        logger.warning(f"upload job {job_id} vanished before it ran")
        return

    def _on_status(remote: TranscriptionJob) -> None:
        state.jobs.update(job_id, status=remote.status, service_id=remote.service_id)

    try:
        client = client_factory(state.transcription)
        remote = client.transcribe(audio_path.read_bytes(), on_status=_on_status)
        doc = to_transcript(remote.result, job.filename)
        transcript_id = state.store.save(doc)
    except (TranscriptionError, OSError, ValueError) as e:
        logger.warning(f"upload job {job_id} failed: {e}")
        state.jobs.update(job_id, status=JobStatus.FAILED, error=str(e))
    else:
        logger.info(f"upload job {job_id}: stored transcript {transcript_id}")
        state.jobs.update(job_id, status=JobStatus.COMPLETED, transcript_id=transcript_id)
    finally:
        try:
            audio_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"could not remove upload {audio_path}: {e}")
