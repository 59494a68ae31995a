"""Runtime configuration loader (publication runner switches)."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import BaseModel, Field, field_validator

from mysteryfactory.core.config import get_settings
from mysteryfactory.domain.platforms import ensure_supported_platform


class RuntimeConfig(BaseModel):
    runner_enabled: bool = True
    paused_platforms: list[str] = Field(default_factory=list)

    @field_validator("paused_platforms")
    @classmethod
    def _validate_paused_platforms(cls, value: list[str]) -> list[str]:
        for platform in value:
            ensure_supported_platform(platform)
        return list(dict.fromkeys(value))

    def is_platform_paused(self, platform: str) -> bool:
        return platform in self.paused_platforms


def _resolve_runtime_path() -> Path:
    settings = get_settings()
    configured = Path(settings.runtime_file_path)
    if configured.is_absolute():
        return configured
    return Path.cwd() / configured


@lru_cache(maxsize=1)
def load_runtime_config() -> RuntimeConfig:
    path = _resolve_runtime_path()
    if not path.exists():
        return RuntimeConfig()

    content = path.read_text(encoding="utf-8")
    parsed = yaml.safe_load(content) or {}
    if not isinstance(parsed, dict):
        raise ValueError("Runtime config must be a YAML object")

    data: Dict[str, Any] = dict(parsed)
    return RuntimeConfig.model_validate(data)


def reset_runtime_config_cache() -> None:
    load_runtime_config.cache_clear()
