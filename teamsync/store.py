"""
store.py — JSON file store for transcripts

This module provides:
  - One JSON document per transcript, keyed by transcript id
  - Listing of lightweight summaries for the dashboard
  - Rename (displayName) and delete
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, List

logger = logging.getLogger("teamsync.store")

_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class TranscriptNotFound(KeyError):
    """No stored document for the requested transcript id."""

    def __str__(self) -> str:
        return f"Transcript {self.args[0]} not found"


class TranscriptStore:
    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, transcript_id: str) -> Path:
        if not isinstance(transcript_id, str) or not _ID_PATTERN.match(transcript_id):
            raise ValueError(f"Invalid transcript id: {transcript_id!r}")
        return self.root / f"{transcript_id}.json"

    def exists(self, transcript_id: str) -> bool:
        return self.path_for(transcript_id).exists()

    def save(self, doc: Dict[str, Any]) -> str:
        """Write (or overwrite) a transcript document and return its id."""
        transcript_id = doc.get("id")
        path = self.path_for(transcript_id)  # type: ignore[arg-type]
        # Temp file in the same dir, then os.replace
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=".", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(doc, f, ensure_ascii=False, indent=2)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        return transcript_id  # type: ignore[return-value]

    def load(self, transcript_id: str) -> Dict[str, Any]:
        path = self.path_for(transcript_id)
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise TranscriptNotFound(transcript_id)

    def list_summaries(self) -> List[Dict[str, Any]]:
        """Return id/name/upload time for every stored transcript, newest first."""
        items: List[Dict[str, Any]] = []
        for path in self.root.glob("*.json"):
            try:
                doc = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"skipping unreadable transcript {path.name}: {e}")
                continue
            utterances = doc.get("utterances")
            items.append({
                "id": doc.get("id") or path.stem,
                "filename": doc.get("filename"),
                "displayName": doc.get("displayName") or doc.get("filename") or path.stem,
                "uploadTime": doc.get("uploadTime"),
                "utteranceCount": len(utterances) if isinstance(utterances, list) else 0,
            })
        items.sort(key=lambda it: it["uploadTime"] or "", reverse=True)
        return items

    def rename(self, transcript_id: str, display_name: str) -> Dict[str, Any]:
        doc = self.load(transcript_id)
        doc["displayName"] = display_name
        self.save(doc)
        return doc

    def delete(self, transcript_id: str) -> None:
        path = self.path_for(transcript_id)
        try:
            path.unlink()
        except FileNotFoundError:
            raise TranscriptNotFound(transcript_id)
