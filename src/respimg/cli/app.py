"""Command line interface for Respimg."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import pathlib
from typing import Any, Dict, List, Optional

import typer
import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from respimg import get_version
from respimg.adapters import SourceImage, load_default_adapters, registry as adapter_registry
from respimg.cli.cache import cache_app
from respimg.config import Config, LoggingSettings, load_config, resolve_options
from respimg.core.pipeline import ResponsivePipeline, resolve_mime
from respimg.emission import FileEmitter
from respimg.errors import RespimgError
from respimg.logging import configure_logging

CLOUDINARY_ENVIRONMENT = {
    "cloud_name": "CLOUDINARY_CLOUD_NAME",
    "api_key": "CLOUDINARY_API_KEY",
    "api_secret": "CLOUDINARY_API_SECRET",
}

app = typer.Typer(
    name="respimg",
    help="Generate responsive image variants and srcset metadata.",
    no_args_is_help=True,
    add_completion=False,
)

config_app = typer.Typer(help="Configuration utilities.", no_args_is_help=True)
app.add_typer(config_app, name="config")
app.add_typer(cache_app, name="cache")


def _load_environment(env_file: Optional[pathlib.Path]) -> None:
    """Load environment variables from .env files."""

    if env_file is not None:
        load_dotenv(dotenv_path=env_file, override=True)
    else:
        load_dotenv(override=False)


def _logging_settings(
    config: Config,
    override_path: Optional[pathlib.Path],
    override_level: Optional[str],
) -> LoggingSettings:
    """Layer --log-path/--log-level over the configured logging section."""

    overrides = {"path": override_path, "level": override_level}
    merged = {**config.logging.model_dump(), **{key: value for key, value in overrides.items() if value is not None}}
    try:
        return LoggingSettings.model_validate(merged)
    except ValidationError as exc:
        raise typer.BadParameter(str(exc), param_hint="--log-level") from exc


def _parse_sizes(value: Optional[str]) -> Optional[List[int]]:
    if value is None:
        return None
    try:
        sizes = [int(part) for part in value.split(",") if part.strip()]
    except ValueError as exc:
        raise typer.BadParameter("Sizes must be comma-separated integers.", param_hint="--sizes") from exc
    if not sizes or any(size <= 0 for size in sizes):
        raise typer.BadParameter("Sizes must be positive integers.", param_hint="--sizes")
    return sizes


def _cloudinary_from_environment() -> Dict[str, Optional[str]]:
    return {field: os.environ.get(variable) for field, variable in CLOUDINARY_ENVIRONMENT.items()}


def _version_callback(value: bool) -> None:
    """Print the package version and exit when requested."""

    if value:
        typer.echo(get_version())
        raise typer.Exit()


@app.callback()
def main(  # pragma: no cover - exercised via CLI invocation
    ctx: typer.Context,
    config: Optional[pathlib.Path] = typer.Option(
        None,
        "--config",
        metavar="PATH",
        help="Path to YAML configuration file (used exclusively).",
    ),
    env_file: Optional[pathlib.Path] = typer.Option(
        None,
        "--env-file",
        metavar="PATH",
        help="Load environment variables from .env-style file before execution.",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        metavar="LEVEL",
        help="Override the configured log level (debug, info, warn, error).",
    ),
    log_path: Optional[pathlib.Path] = typer.Option(
        None,
        "--log-path",
        metavar="PATH",
        help="Override the base directory or file for log output.",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show Respimg version and exit.",
    ),
) -> None:
    """CLI root; loads configuration, logging, and shared context."""

    ctx.ensure_object(dict)
    _load_environment(env_file)

    try:
        config_obj = load_config(config)
    except (FileNotFoundError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--config") from exc

    load_default_adapters()
    adapter_registry.load_entrypoints()

    logger = configure_logging(_logging_settings(config_obj, log_path, log_level))
    ctx.obj.update({"config": config_obj, "config_path": config, "logger": logger})


@app.command()
def render(
    ctx: typer.Context,
    source: pathlib.Path = typer.Argument(..., exists=True, dir_okay=False, help="Source image."),
    sizes: Optional[str] = typer.Option(None, "--sizes", help="Comma-separated target widths."),
    min_width: Optional[int] = typer.Option(None, "--min", min=1, help="Smallest derived width."),
    max_width: Optional[int] = typer.Option(None, "--max", min=1, help="Largest derived width."),
    steps: Optional[int] = typer.Option(None, "--steps", min=1, help="Widths to derive between --min and --max."),
    quality: Optional[int] = typer.Option(None, "--quality", min=1, max=100),
    output_format: Optional[str] = typer.Option(None, "--format", help="Output format: jpg, png or webp."),
    placeholder: Optional[bool] = typer.Option(
        None, "--placeholder/--no-placeholder", help="Inline a low-resolution placeholder."
    ),
    placeholder_size: Optional[int] = typer.Option(None, "--placeholder-size", min=1),
    adapter: Optional[str] = typer.Option(None, "--adapter", help="Registered adapter name."),
    out_dir: Optional[pathlib.Path] = typer.Option(None, "--out", metavar="DIR", help="Output directory."),
    public_path: Optional[str] = typer.Option(None, "--public-path", help="Prefix for emitted file URLs."),
    cache_dir: Optional[pathlib.Path] = typer.Option(None, "--cache-dir", metavar="PATH"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Ignore any configured cache directory."),
    cloudinary: bool = typer.Option(
        False, "--cloudinary", help="Upload the source using CLOUDINARY_* environment credentials."
    ),
    disable: bool = typer.Option(False, "--disable", help="Emit the source verbatim without resizing."),
) -> None:
    """Render responsive variants of SOURCE and print the artifact as JSON."""

    config: Config = ctx.obj["config"]
    logger: logging.Logger = ctx.obj["logger"]

    overrides: Dict[str, Any] = {
        "sizes": _parse_sizes(sizes),
        "min_width": min_width,
        "max_width": max_width,
        "steps": steps,
        "quality": quality,
        "format": output_format,
        "placeholder": placeholder,
        "placeholder_size": placeholder_size,
        "adapter": adapter,
        "public_path": public_path,
        "cache_directory": cache_dir,
        "disable": disable or None,
    }
    if no_cache:
        overrides["cache_directory"] = False
    if cloudinary:
        overrides["cloudinary_credentials"] = _cloudinary_from_environment()

    try:
        options = resolve_options(config.transform, overrides)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    image = SourceImage.from_path(source)
    directory = out_dir or config.output.directory
    try:
        _, ext = resolve_mime(image, options.format)
    except RespimgError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    emitter = FileEmitter(
        directory=directory,
        stem=image.stem,
        ext=ext,
        name=options.name,
        output_path=options.output_path,
        public_path=options.public_path,
        emit_file=options.emit_file,
        logger=logger,
    )
    pipeline = ResponsivePipeline(logger=logger)

    try:
        artifact = asyncio.run(pipeline.transform(image, options, emitter))
    except RespimgError as exc:
        logger.error("Rendering %s failed: %s", source, exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(json.dumps(artifact.to_dict(), indent=2))


@app.command("adapters")
def list_adapters() -> None:
    """List registered adapters."""

    for name in adapter_registry.names():
        typer.echo(name)


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    format: str = typer.Option(
        "yaml",
        "--format",
        help="Output format: yaml or json.",
    ),
    paths: bool = typer.Option(
        False,
        "--paths",
        help="Also print which configuration files were loaded.",
    ),
) -> None:
    """Print the effective configuration."""

    config: Config = ctx.obj["config"]
    if format not in {"yaml", "json"}:
        raise typer.BadParameter("Format must be 'yaml' or 'json'.", param_hint="--format")

    if paths:
        typer.echo("Loaded configuration from:", err=True)
        for entry in config.loaded_from or ("<built-in defaults>",):
            typer.echo(f"- {entry}", err=True)

    data = config.model_dump()
    if format == "json":
        typer.echo(json.dumps(data, indent=2))
    else:
        typer.echo(yaml.safe_dump(data, sort_keys=False))
