"""Application configuration loaded from config.yaml and the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

DEFAULT_BASE_URL = "https://api.moonshot.cn/v1"
DEFAULT_MODEL = "moonshot-v1-8k"


@dataclass(frozen=True)
class LLMConfig:
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    temperature: float = 0.3
    timeout: int = 60
    max_attempts: int = 1

    def __post_init__(self) -> None:
        if not 1 <= self.timeout <= 600:
            raise ValueError(f"timeout must be between 1 and 600, got {self.timeout}")
        if not 1 <= self.max_attempts <= 5:
            raise ValueError(f"max_attempts must be between 1 and 5, got {self.max_attempts}")
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"temperature must be between 0 and 2, got {self.temperature}")
        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {self.base_url!r}")


@dataclass(frozen=True)
class StorageConfig:
    db_path: str = "~/.job-worth/history.db"
    history_key: str = "job_calculator_history"
    usage_db_path: str = "~/.job-worth/usage.db"

    def __post_init__(self) -> None:
        if not self.history_key.strip():
            raise ValueError("history_key must not be empty")

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()

    @property
    def resolved_usage_db_path(self) -> Path:
        return Path(self.usage_db_path).expanduser()


@dataclass(frozen=True)
class AppConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)


def resolve_api_key() -> str | None:
    """Return the upstream credential from the environment, if any."""
    key = os.environ.get("API_KEY", "").strip()
    return key or None


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from YAML file, falling back to defaults.

    ``API_BASE_URL`` and ``API_MODEL`` in the environment take precedence
    over the file.
    """
    if path is None:
        # Look for config.yaml relative to the project root
        candidates = [
            Path.cwd() / "config.yaml",
            Path(__file__).resolve().parent.parent.parent / "config.yaml",
        ]
        for c in candidates:
            if c.exists():
                path = c
                break

    raw: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}

    llm_raw = dict(raw.get("llm", {}))
    if os.environ.get("API_BASE_URL"):
        llm_raw["base_url"] = os.environ["API_BASE_URL"]
    if os.environ.get("API_MODEL"):
        llm_raw["model"] = os.environ["API_MODEL"]

    return AppConfig(
        llm=LLMConfig(**llm_raw),
        storage=StorageConfig(**raw.get("storage", {})),
    )
