"""Configuration loading for Respimg."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_CONFIG_PATH = Path("config/default.yaml")
LOCAL_CONFIG_PATH = Path("config/local.yaml")


LOG_LEVELS = ("debug", "info", "warn", "warning", "error", "critical")


def _normalize_level_name(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError("Logging level must be a string.")
    normalized = value.strip().lower()
    if normalized not in LOG_LEVELS:
        raise ValueError(f"Unsupported logging level: {value!r}")
    return normalized


class LoggingSettings(BaseModel):
    """Logging configuration.

    ``modules`` overrides the level of individual loggers, e.g.
    ``{"cache": "debug", "publishers": "warn"}``; names are relative to the
    ``respimg`` package unless already qualified.
    """

    model_config = ConfigDict(extra="forbid")

    path: Path | None = None
    level: str = Field(default="info")
    console: bool = False
    modules: dict[str, str] = Field(default_factory=dict)

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, value: Any) -> str:
        return _normalize_level_name(value)

    @field_validator("modules", mode="before")
    @classmethod
    def _normalize_modules(cls, value: Any) -> dict[str, str]:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise TypeError("Logging modules must map logger names to levels.")
        return {str(name).strip(): _normalize_level_name(level) for name, level in value.items()}


class OutputSettings(BaseModel):
    """Where emitted files land and how they are addressed."""

    model_config = ConfigDict(extra="forbid")

    directory: Path = Path("dist")


class TransformOptions(BaseModel):
    """Resolved options for one transformation.

    Field names are snake_case; the camelCase spellings used by build-tool
    configurations (``placeholderSize``, ``cacheDirectory``...) are accepted too.
    """

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    quality: int = Field(default=85, ge=1, le=100)
    sizes: list[int] | None = None
    min_width: int | None = Field(default=None, ge=1, alias="min")
    max_width: int | None = Field(default=None, ge=1, alias="max")
    steps: int = Field(default=4, ge=1)
    placeholder: bool = False
    placeholder_size: int = Field(default=40, ge=1)
    format: str | None = None
    name: str = "[hash]-[width].[ext]"
    output_path: str | None = None
    public_path: str | None = None
    emit_file: bool = True
    es_module: bool = False
    rotate: int = 0
    background: str | None = None
    progressive: bool = False
    adapter: str = "pillow"
    adapter_options: dict[str, Any] = Field(default_factory=dict)
    adapter_config: dict[str, Any] = Field(default_factory=dict)
    cache_directory: bool | Path = False
    cache_compression: bool = True
    cache_identifier: str = ""
    cloudinary_credentials: dict[str, str | None] | None = None
    disable: bool = False

    @field_validator("sizes", mode="before")
    @classmethod
    def _normalize_sizes(cls, value: Any) -> list[int] | None:
        if value is None or value == "":
            return None
        if isinstance(value, str):
            value = [item for item in value.split(",") if item.strip()]
        if isinstance(value, (int, float)):
            value = [value]
        if not isinstance(value, list):
            raise TypeError("sizes must be a list of widths.")
        widths = [int(item) for item in value]
        if any(width <= 0 for width in widths):
            raise ValueError("sizes must be positive integers.")
        return widths

    @field_validator("format", mode="before")
    @classmethod
    def _normalize_format(cls, value: Any) -> str | None:
        if value is None:
            return None
        if not isinstance(value, str):
            raise TypeError("format must be a string.")
        return value.strip().lstrip(".").lower() or None

    def adapter_payload(self) -> dict[str, Any]:
        """Options forwarded to the adapter on every resize; explicit adapter options win."""

        payload: dict[str, Any] = {
            "quality": self.quality,
            "rotate": self.rotate,
            "background": self.background,
            "progressive": self.progressive,
        }
        payload.update(self.adapter_options)
        return payload


class ConfigModel(BaseModel):
    """Root configuration model."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)
    transform: TransformOptions = Field(default_factory=TransformOptions)


@dataclass(slots=True)
class Config:
    """Validated configuration with convenience helpers."""

    model: ConfigModel
    raw: Mapping[str, Any] = field(repr=False)
    loaded_from: tuple[str, ...] = field(default_factory=tuple, repr=False)

    @property
    def logging(self) -> LoggingSettings:
        """Return logging settings."""

        return self.model.logging

    @property
    def output(self) -> OutputSettings:
        return self.model.output

    @property
    def transform(self) -> TransformOptions:
        """Return default transform options."""

        return self.model.transform

    def model_dump(self) -> Mapping[str, Any]:
        """Expose the parsed configuration as a mapping."""

        return self.model.model_dump(mode="json")


def load_config(path: Path | None = None) -> Config:
    """Load configuration from defaults/local overrides, or from an explicit config document."""

    merged: dict[str, Any] = {}
    loaded_from: list[str] = []

    if path is not None:
        override_path = _resolve_path(path)
        if not override_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        merged = _merge_dicts(merged, _read_yaml(override_path))
        loaded_from.append(str(override_path))
    else:
        default_candidate = _resolve_path(DEFAULT_CONFIG_PATH)
        if default_candidate.exists():
            merged = _merge_dicts(merged, _read_yaml(default_candidate))
            loaded_from.append(str(default_candidate))
        else:
            packaged_payload = _read_packaged_yaml("respimg.config", "default.yaml")
            if packaged_payload is not None:
                merged = _merge_dicts(merged, packaged_payload)
                loaded_from.append("respimg.config:default.yaml")

        local_candidate = _resolve_path(LOCAL_CONFIG_PATH)
        if local_candidate.exists():
            merged = _merge_dicts(merged, _read_yaml(local_candidate))
            loaded_from.append(str(local_candidate))

    try:
        model = ConfigModel.model_validate(merged)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc

    return Config(model=model, raw=merged, loaded_from=tuple(loaded_from))


def resolve_options(base: TransformOptions, overrides: Mapping[str, Any]) -> TransformOptions:
    """Layer per-invocation overrides on top of configured options; later values win."""

    merged = base.model_dump(exclude_unset=True)
    for key, value in overrides.items():
        if value is not None:
            merged[key] = value
    try:
        return TransformOptions.model_validate(merged)
    except ValidationError as exc:
        raise ValueError(f"Invalid transform options: {exc}") from exc


def _resolve_path(path: Path) -> Path:
    """Resolve configuration paths relative to the current working directory."""

    return path if path.is_absolute() else Path.cwd() / path


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML file into a dictionary."""

    content = path.read_text(encoding="utf-8")
    data = yaml.safe_load(content) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must define a mapping at the top level.")
    return data


def _read_packaged_yaml(package: str, name: str) -> dict[str, Any] | None:
    """Read YAML embedded in a Python package via importlib.resources."""

    try:
        content = resources.files(package).joinpath(name).read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    data = yaml.safe_load(content) or {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Packaged configuration {package}:{name} must define a mapping at the top level."
        )
    return data


def _merge_dicts(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge two dictionaries, with override values taking precedence."""

    result: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dicts(result[key], value)
        else:
            result[key] = value
    return result
