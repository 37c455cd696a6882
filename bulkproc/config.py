from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv


@dataclass
class EngineConfig:
    api_key: Optional[str] = None
    base_url: str = "https://api.deepseek.com/v1"
    model: str = "deepseek-chat"
    request_timeout: float = 60.0
    max_retries: int = 3
    backoff_base: float = 1.0
    backoff_jitter: float = 0.25
    rate_limit_enabled: bool = True
    requests_per_minute: int = 60
    requests_per_day: int = 10_000
    max_concurrency: int = 10
    max_documents: int = 100
    log_level: str = "INFO"
    extra: Dict[str, Any] = field(default_factory=dict)


# env var -> (field, parser)
_ENV_OVERRIDES = {
    "DEEPSEEK_API_KEY": ("api_key", str),
    "DEEPSEEK_BASE_URL": ("base_url", str),
    "BULKPROC_MODEL": ("model", str),
    "BULKPROC_REQUEST_TIMEOUT": ("request_timeout", float),
    "BULKPROC_MAX_RETRIES": ("max_retries", int),
    "BULKPROC_RATE_LIMIT_ENABLED": ("rate_limit_enabled", "bool"),
    "BULKPROC_REQUESTS_PER_MINUTE": ("requests_per_minute", int),
    "BULKPROC_REQUESTS_PER_DAY": ("requests_per_day", int),
    "BULKPROC_LOG_LEVEL": ("log_level", str),
}


def _parse_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def load_engine_config(path: str | Path | None = None, load_env: bool = True) -> EngineConfig:
    """
    Build an EngineConfig from defaults, an optional YAML file and the environment.

    Environment variables (including a ``.env`` file) take precedence over
    the YAML file; keys the config does not know are kept in ``extra``.
    """
    if load_env:
        load_dotenv()

    data: Dict[str, Any] = {}
    if path is not None:
        data = yaml.safe_load(Path(path).read_text()) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")

    known = {f.name for f in fields(EngineConfig)} - {"extra"}
    values = {k: v for k, v in data.items() if k in known}
    extra = {k: v for k, v in data.items() if k not in known}

    for env_name, (field_name, parser) in _ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is None or raw == "":
            continue
        values[field_name] = _parse_bool(raw) if parser == "bool" else parser(raw)

    if "rate_limit_enabled" in values:
        values["rate_limit_enabled"] = _parse_bool(values["rate_limit_enabled"])

    return EngineConfig(extra=extra, **values)
