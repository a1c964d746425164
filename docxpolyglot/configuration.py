"""Layered configuration loader for Polyglot."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal, Mapping, Optional, Sequence

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, Field, ValidationError, model_validator

from .errors import TranslationProviderConfigurationError
from .providers import (
    DEFAULT_GEMINI_MODEL,
    DEFAULT_OPENAI_COMPATIBLE_BASE_URL,
    DEFAULT_OPENAI_COMPATIBLE_MODEL,
    ECHO,
    GEMINI,
    OPENAI_COMPATIBLE,
    BackendSettings,
)

APP_NAME = "polyglot"

PROVIDER_SYNONYMS = {
    "google": GEMINI,
    "google_genai": GEMINI,
    "openai": OPENAI_COMPATIBLE,
    "third_party": OPENAI_COMPATIBLE,
    "thirdparty": OPENAI_COMPATIBLE,
    "openai_compat": OPENAI_COMPATIBLE,
    "noop": ECHO,
    "mock": ECHO,
}


class PolyglotConfig(BaseModel):
    """Schema describing all supported configuration options."""

    LLM_PROVIDER: Literal["gemini", "openai_compatible", "echo"] = Field(
        default=GEMINI,
        description="Translation backend selection.",
    )
    POLYGLOT_MODEL: Optional[str] = Field(default=None)
    GEMINI_API_KEY: Optional[str] = Field(default=None, repr=False)
    GOOGLE_API_KEY: Optional[str] = Field(default=None, repr=False)
    OPENAI_API_KEY: Optional[str] = Field(default=None, repr=False)
    OPENAI_BASE_URL: Optional[str] = Field(default=None)
    POLYGLOT_API_KEY: Optional[str] = Field(
        default=None,
        repr=False,
        description="Key for whichever provider is selected; wins over provider keys.",
    )
    POLYGLOT_BATCH_SIZE: int = Field(default=40, gt=0)
    POLYGLOT_BATCH_DELAY: float = Field(default=0.1, ge=0)
    POLYGLOT_FONT_NAME: str = Field(default="Times New Roman")
    POLYGLOT_FORCE_FONT: bool = Field(default=True)
    POLYGLOT_PROVIDER_DEBUG: bool = Field(default=False)

    @model_validator(mode="before")
    @classmethod
    def _normalise_provider(cls, data: Any) -> Any:
        if isinstance(data, dict):
            raw_value = data.get("LLM_PROVIDER")
            if isinstance(raw_value, str):
                normalized = raw_value.strip().lower().replace("-", "_")
                data["LLM_PROVIDER"] = PROVIDER_SYNONYMS.get(normalized, normalized)
        return data

    @property
    def gemini_api_key(self) -> Optional[str]:
        return self.POLYGLOT_API_KEY or self.GEMINI_API_KEY or self.GOOGLE_API_KEY

    @property
    def openai_api_key(self) -> Optional[str]:
        return self.POLYGLOT_API_KEY or self.OPENAI_API_KEY

    def backend_settings(self) -> BackendSettings:
        """Provider selection and credentials for :func:`build_backend`."""

        if self.LLM_PROVIDER == GEMINI:
            return BackendSettings(
                provider=GEMINI,
                model_id=self.POLYGLOT_MODEL or DEFAULT_GEMINI_MODEL,
                api_key=self.gemini_api_key,
            )
        if self.LLM_PROVIDER == OPENAI_COMPATIBLE:
            return BackendSettings(
                provider=OPENAI_COMPATIBLE,
                model_id=self.POLYGLOT_MODEL or DEFAULT_OPENAI_COMPATIBLE_MODEL,
                base_url=self.OPENAI_BASE_URL or DEFAULT_OPENAI_COMPATIBLE_BASE_URL,
                api_key=self.openai_api_key,
            )
        return BackendSettings(provider=ECHO, model_id=self.POLYGLOT_MODEL or ECHO)


def discover_config_files(app_dir: Path) -> list[Path]:
    """YAML files in ascending precedence: user config, then local config."""

    candidates = [
        Path.home() / ".config" / APP_NAME / "config.yaml",
        app_dir / "config.yaml",
    ]
    return [path for path in candidates if path.is_file()]


def load_settings(
    app_dir: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> PolyglotConfig:
    """Merge YAML, .env, environment, and explicit overrides, then validate."""

    base_dir = app_dir or Path.cwd()
    allowed = set(PolyglotConfig.model_fields.keys())

    combined: dict[str, Any] = {}
    for path in discover_config_files(base_dir):
        _merge(combined, _load_yaml(path), allowed)

    dotenv_path = base_dir / ".env"
    if dotenv_path.exists():
        _merge(
            combined,
            {k: v for k, v in dotenv_values(dotenv_path).items() if v is not None},
            allowed,
        )

    _merge(combined, os.environ, allowed)
    if overrides:
        _merge(
            combined,
            {k: v for k, v in overrides.items() if v is not None},
            allowed,
        )

    try:
        settings = PolyglotConfig.model_validate(combined)
    except ValidationError as exc:
        raise TranslationProviderConfigurationError(
            _format_validation_errors(exc.errors())
        ) from exc

    _validate_provider_settings(settings)
    return settings


def _load_yaml(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            parsed = yaml.safe_load(handle)
    except OSError as exc:
        raise TranslationProviderConfigurationError(
            f"Configuration file {path} could not be read: {exc}"
        ) from exc
    except yaml.YAMLError as exc:
        raise TranslationProviderConfigurationError(
            f"Configuration file {path} is not valid YAML: {exc}"
        ) from exc

    if parsed is None:
        return {}
    if not isinstance(parsed, Mapping):
        raise TranslationProviderConfigurationError(
            f"Invalid configuration file {path}: expected a mapping at the root."
        )
    return parsed


def _merge(target: dict[str, Any], values: Mapping[str, Any], allowed: set[str]) -> None:
    for key, value in values.items():
        if key in allowed:
            target[key] = value


def _validate_provider_settings(settings: PolyglotConfig) -> None:
    provider = settings.LLM_PROVIDER
    errors: list[str] = []

    if provider == GEMINI and not settings.gemini_api_key:
        errors.append(
            "GEMINI_API_KEY (or GOOGLE_API_KEY) is required when LLM_PROVIDER is 'gemini'."
        )
    elif provider == OPENAI_COMPATIBLE and not settings.openai_api_key:
        errors.append(
            "OPENAI_API_KEY is required when LLM_PROVIDER is 'openai_compatible'."
        )

    if errors:
        bullet_list = "\n".join(f"- {message}" for message in errors)
        raise TranslationProviderConfigurationError(
            "Configuration validation errors detected:\n" + bullet_list
        )


def _format_validation_errors(entries: Sequence[Mapping[str, Any]]) -> str:
    details: list[str] = []
    for entry in entries:
        location = ".".join(str(part) for part in entry.get("loc") or () if part != "")
        message = str(entry.get("msg") or "Invalid value")
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}")
    return "Configuration validation errors detected:\n" + "\n".join(details)

