# ─────────────────────────────────────────────────────────────────────────────
# File: settings.py
# Directory: services
# Purpose: Manage application configuration and environment variable loading.
#
# Upstream:
#   - ENV: TOGETHER_API_KEY, COMPLETION_BASE_URL, COMPLETION_MODEL,
#          COMPLETION_TEMPERATURE, COMPLETION_MAX_ATTEMPTS, COMPLETION_TIMEOUT_S,
#          MAX_FILE_CHARS, ENV / APP_ENV
#   - Imports: dataclasses, dotenv, pathlib, utils.env
#
# Downstream:
#   - services.completion_client
#   - services.context_generator
#   - routes.health
#
# Contents:
#   - Settings
#   - get_settings()
# ─────────────────────────────────────────────────────────────────────────────
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from utils.env import app_env, get_float, get_int, get_str

# === Load .env file automatically at app startup ===
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env")

DEFAULT_BASE_URL = "https://api.together.xyz/v1"
DEFAULT_MODEL = "meta-llama/Meta-Llama-3.1-8B-Instruct-Turbo"
DEFAULT_TEMPERATURE = 0.2
DEFAULT_MAX_FILE_CHARS = 2000


@dataclass(frozen=True)
class Settings:
    api_key: Optional[str]
    base_url: str
    model: str
    temperature: float
    max_attempts: int
    timeout_s: float
    max_file_chars: int
    env: str

    @property
    def api_key_present(self) -> bool:
        return bool(self.api_key)


def get_settings() -> Settings:
    """Snapshot of the current environment. Cheap; read per request."""
    return Settings(
        api_key=get_str("TOGETHER_API_KEY", "COMPLETION_API_KEY") or None,
        base_url=get_str("COMPLETION_BASE_URL", default=DEFAULT_BASE_URL),
        model=get_str("COMPLETION_MODEL", default=DEFAULT_MODEL),
        temperature=get_float("COMPLETION_TEMPERATURE", DEFAULT_TEMPERATURE),
        max_attempts=max(1, get_int("COMPLETION_MAX_ATTEMPTS", 3)),
        timeout_s=get_float("COMPLETION_TIMEOUT_S", 45.0),
        max_file_chars=max(1, get_int("MAX_FILE_CHARS", DEFAULT_MAX_FILE_CHARS)),
        env=app_env(),
    )

