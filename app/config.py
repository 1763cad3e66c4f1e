import os
import sys
import tempfile
from functools import lru_cache
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _load_env_file_if_present() -> None:
    env_file = BASE_DIR / ".env"
    if not env_file.exists():
        return
    try:
        lines = env_file.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return

    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not key or key in os.environ:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        os.environ[key] = value


_load_env_file_if_present()


def _default_runtime_dir() -> Path:
    if getattr(sys, "frozen", False) or getattr(sys, "_MEIPASS", ""):
        candidates: list[Path] = []
        local_appdata = os.getenv("LOCALAPPDATA", "").strip()
        if local_appdata:
            candidates.append(Path(local_appdata) / "SurveyInsights" / "data")
        candidates.append(Path.home() / ".survey_insights" / "data")
        candidates.append(Path.cwd() / "data")
        candidates.append(Path(tempfile.gettempdir()) / "SurveyInsights" / "data")

        for path in candidates:
            try:
                path.mkdir(parents=True, exist_ok=True)
                return path
            except OSError:
                continue
    return BASE_DIR / "data"


def _split_csv(raw: str) -> list[str]:
    return [item.strip() for item in (raw or "").split(",") if item.strip()]


def _env_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(name, "").strip()
    try:
        value = int(raw) if raw else default
    except ValueError:
        value = default
    return max(minimum, value)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        self.app_name: str = os.getenv("APP_NAME", "Survey Insights")
        self.app_env: str = os.getenv("APP_ENV", "dev")
        self.runtime_dir: Path = Path(os.getenv("RUNTIME_DIR", str(_default_runtime_dir()))).expanduser()
        self.runtime_dir.mkdir(parents=True, exist_ok=True)
        default_db_path: Path = self.runtime_dir / "survey_insights.db"
        self.database_url: str = os.getenv("DATABASE_URL", f"sqlite:///{default_db_path.as_posix()}")

        # Narrative providers are tried in this order; a provider without a key is skipped.
        self.narrative_provider_order: list[str] = [
            p.lower() for p in _split_csv(os.getenv("NARRATIVE_PROVIDER_ORDER", "anthropic,openai"))
        ]
        self.anthropic_api_key: str = os.getenv("ANTHROPIC_API_KEY", "")
        self.anthropic_model: str = os.getenv("ANTHROPIC_MODEL", "claude-3-haiku-20240307")
        self.openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
        self.openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4.1-mini")
        self.provider_timeout_seconds: int = _env_int("PROVIDER_TIMEOUT_SECONDS", 30, minimum=1)
        self.narrative_max_tokens: int = _env_int("NARRATIVE_MAX_TOKENS", 4096, minimum=256)
        self.narrative_temperature: float = _env_float("NARRATIVE_TEMPERATURE", 0.7)

        self.min_report_participants: int = _env_int("MIN_REPORT_PARTICIPANTS", 3, minimum=1)
        self.detail_anonymity_floor: int = _env_int("DETAIL_ANONYMITY_FLOOR", 10, minimum=1)
        self.aggregate_export_floor: int = _env_int("AGGREGATE_EXPORT_FLOOR", 5, minimum=1)
        self.category_label_set: str = os.getenv("CATEGORY_LABEL_SET", "en")

        self.cors_allowed_origins: list[str] = _split_csv(
            os.getenv("CORS_ALLOWED_ORIGINS", "http://127.0.0.1,http://localhost")
        )
        self.cors_allow_origin_regex: str = os.getenv(
            "CORS_ALLOW_ORIGIN_REGEX",
            r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
