from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class Utterance(BaseModel):
    speaker: Optional[str] = Field(None, description="Label assigned by the STT service, e.g. 'A'")
    text: str
    start: int = Field(..., ge=0, description="Offset into the recording (ms)")
    end: int = Field(..., ge=0, description="Offset into the recording (ms)")

    @model_validator(mode="after")
    def _end_after_start(self) -> "Utterance":
        if self.end < self.start:
            raise ValueError("end must be >= start")
        return self


class Transcript(BaseModel):
    id: Optional[str] = None
    filename: Optional[str] = None
    uploadTime: Optional[str] = Field(None, description="ISO timestamp (UTC)")
    displayName: Optional[str] = None
    utterances: List[Utterance]


class TranscriptSummary(BaseModel):
    id: str
    filename: Optional[str] = None
    displayName: str
    uploadTime: Optional[str] = None
    utteranceCount: int = 0


class RenameRequest(BaseModel):
    displayName: str = Field(..., min_length=1, max_length=200)


class UploadResponse(BaseModel):
    ok: bool
    job_id: str
    filename: str
    status: str


class JobStatusResponse(BaseModel):
    job_id: str
    filename: str
    status: str
    transcript_id: Optional[str] = None
    error: Optional[str] = None
