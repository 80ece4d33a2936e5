from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from ..models.transcript import RenameRequest, Transcript, TranscriptSummary
from ..services.analysis import analyze, parse_categories
from ..state import State, get_state
from ..store import TranscriptStore

router = APIRouter(tags=["transcripts"])

_CATEGORIES_HELP = "Comma-separated subset of keyTopics,speakerMetrics,sentiment,clarity (default: all)"


def _checked_path(store: TranscriptStore, transcript_id: str) -> None:
    try:
        store.path_for(transcript_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/transcripts", response_model=List[TranscriptSummary])
def v1_list_transcripts(state: State = Depends(get_state)) -> List[Dict[str, Any]]:
    return state.store.list_summaries()


@router.get("/transcripts/{transcript_id}")
def v1_get_transcript(transcript_id: str, state: State = Depends(get_state)) -> Dict[str, Any]:
    _checked_path(state.store, transcript_id)
    return state.store.load(transcript_id)


@router.put("/transcripts/{transcript_id}")
def v1_save_transcript(
    transcript_id: str,
    payload: Transcript,
    state: State = Depends(get_state),
) -> Dict[str, Any]:
    _checked_path(state.store, transcript_id)
    doc = payload.model_dump()
    doc["id"] = transcript_id
    if not doc.get("displayName"):
        doc["displayName"] = doc.get("filename") or transcript_id
    state.store.save(doc)
    return {"ok": True, "id": transcript_id}


@router.patch("/transcripts/{transcript_id}")
def v1_rename_transcript(
    transcript_id: str,
    payload: RenameRequest,
    state: State = Depends(get_state),
) -> Dict[str, Any]:
    _checked_path(state.store, transcript_id)
    doc = state.store.rename(transcript_id, payload.displayName.strip())
    return {"ok": True, "id": transcript_id, "displayName": doc["displayName"]}


@router.delete("/transcripts/{transcript_id}")
def v1_delete_transcript(transcript_id: str, state: State = Depends(get_state)) -> Dict[str, Any]:
    _checked_path(state.store, transcript_id)
    state.store.delete(transcript_id)
    return {"ok": True, "id": transcript_id}


@router.get("/transcripts/{transcript_id}/analysis")
def v1_analyze_transcript(
    transcript_id: str,
    categories: Optional[str] = Query(None, description=_CATEGORIES_HELP),
    state: State = Depends(get_state),
) -> Dict[str, Any]:
    _checked_path(state.store, transcript_id)
    selected = parse_categories(categories)
    # Fresh load per request; normalization rewrites text in place
    doc = state.store.load(transcript_id)
    return analyze(doc, selected)


@router.post("/analyze")
def v1_analyze(
    transcript: Any = Body(...),
    categories: Optional[str] = Query(None, description=_CATEGORIES_HELP),
) -> Dict[str, Any]:
    return analyze(transcript, parse_categories(categories))
