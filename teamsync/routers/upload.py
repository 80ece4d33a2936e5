from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, UploadFile

from ..models.transcript import JobStatusResponse, UploadResponse
from ..services import transcriber as svc
from ..state import State, get_state

router = APIRouter(tags=["upload"])


@router.post("/upload", response_model=UploadResponse)
def v1_upload(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    state: State = Depends(get_state),
) -> UploadResponse:
    job, path = svc.start_upload(state, file)
    background_tasks.add_task(svc.run_upload_job, state, job.job_id, path)
    return UploadResponse(ok=True, job_id=job.job_id, filename=job.filename, status=job.status.value)


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
def v1_job_status(job_id: str, state: State = Depends(get_state)) -> JobStatusResponse:
    job = state.jobs.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    return JobStatusResponse(**job.as_dict())
