from __future__ import annotations

import logging
import os
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import load_settings
from .errors import install_error_handlers
from .logging import install_app_logging, setup_logging
from .routers.transcripts import router as transcripts_router
from .routers.upload import router as upload_router
from .services.transcription import TranscriptionConfig
from .state import State
from .store import TranscriptStore

logger = logging.getLogger("teamsync")

_REPO_ROOT = Path(__file__).resolve().parent.parent


def _load_env_file(env_path: Path) -> None:
    """Minimal .env loader: KEY=VALUE lines into os.environ if not set.
    - Ignores comments and blank lines
    - Strips surrounding quotes
    - Supports optional 'export ' prefix
    """
    if not env_path.exists():
        return
    for raw in env_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.lower().startswith("export "):
            line = line[7:].lstrip()
        if "=" not in line:
            continue
        k, v = line.split("=", 1)
        os.environ.setdefault(k.strip(), v.strip().strip('"').strip("'"))


def _resolve_dir(value: str) -> Path:
    p = Path(value).expanduser()
    return p if p.is_absolute() else (_REPO_ROOT / p).resolve()


def create_app() -> FastAPI:
    try:
        _load_env_file(_REPO_ROOT / ".env")
    except OSError as e:
        logger.warning(f".env not loaded: {e}")

    settings = load_settings()
    setup_logging()

    app = FastAPI(title="TeamSync Worker", version="1.0.0")

    # Attach config/state
    app.state.settings = settings
    data_dir = _resolve_dir(settings.data_dir)
    app.state.state = State(
        uploads_dir=data_dir / "uploads",
        store=TranscriptStore(data_dir / "transcripts"),
        transcription=TranscriptionConfig.from_settings(settings),
    )
    if not settings.transcription_api_key:
        logger.warning("TEAMSYNC_TRANSCRIPTION_API_KEY not set; uploads are disabled")

    # CORS
    allow = [o.strip() for o in settings.cors_allow_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_app_logging(app)
    install_error_handlers(app)

    # Versioned API
    app.include_router(transcripts_router, prefix="/v1")
    app.include_router(upload_router, prefix="/v1")

    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return {"status": "ok"}

    return app


# Convenience for `uvicorn teamsync.app:app`
app = create_app()
