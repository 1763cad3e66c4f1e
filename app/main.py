import logging
import os
from datetime import datetime
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import OperationalError

from app import db as app_db
from app.config import get_settings
from app.dependencies import error_response
from app.routers import analytics, reports
from survey_insights.errors import GENERIC_FAILURE_MESSAGE, PERSISTENCE_FAILURE, PersistenceError

try:
    from survey_insights import get_runtime_version
except ModuleNotFoundError:  # pragma: no cover - compatibility for non-editable local runs
    from src.survey_insights import get_runtime_version

logger = logging.getLogger(__name__)


def _sqlite_path_from_url(database_url: str) -> Path | None:
    url = (database_url or "").strip()
    if not url.startswith("sqlite:///") or url.endswith(":memory:"):
        return None
    return Path(url[len("sqlite:///") :])


def _init_db_with_recovery(settings) -> None:
    """Create tables; a SQLite file that fails with a disk I/O error is moved aside and replaced."""
    try:
        app_db.configure_database(settings.database_url)
        app_db.init_schema()
        return
    except OperationalError as e:
        db_path = _sqlite_path_from_url(settings.database_url)
        if "disk i/o error" not in str(e).lower() or db_path is None:
            raise

    ts = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
    backup_dir = settings.runtime_dir / "db_recovery"
    backup_dir.mkdir(parents=True, exist_ok=True)
    logger.warning("SQLite disk I/O error detected. Backing up %s and creating a fresh database", db_path)
    for p in (db_path, Path(str(db_path) + "-journal"), Path(str(db_path) + "-wal")):
        if p.exists():
            try:
                os.replace(str(p), str(backup_dir / f"{p.name}.recovery.{ts}"))
            except OSError:
                logger.exception("Failed to backup sqlite file: %s", p)
    app_db.configure_database(settings.database_url)
    app_db.init_schema()


def create_app() -> FastAPI:
    # Respect runtime env overrides (tests, temporary runs).
    get_settings.cache_clear()
    settings = get_settings()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins or ["http://127.0.0.1", "http://localhost"],
        allow_origin_regex=settings.cors_allow_origin_regex,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _init_db_with_recovery(settings)

    app.include_router(analytics.router)
    app.include_router(reports.router)

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(request, exc):
        # Raised from dependencies before a route can map it.
        logger.error("Persistence failure on %s %s", request.method, request.url.path)
        return error_response(PERSISTENCE_FAILURE, GENERIC_FAILURE_MESSAGE)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/api/health")
    def api_health():
        return {"status": "ok", "version": get_runtime_version()}

    return app


app = create_app()
