"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from respimg.config import TransformOptions, load_config, resolve_options


def _write_yaml(path: Path, payload: dict) -> None:
    path.write_text(yaml.safe_dump(payload), encoding="utf-8")


def test_load_config_merges_default_and_local(tmp_path, monkeypatch):
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_payload = {
        "version": 1,
        "logging": {"level": "info"},
        "output": {"directory": "public"},
        "transform": {"quality": 80, "sizes": [320, 640], "placeholder": True},
    }
    local_payload = {
        "logging": {"level": "warn"},
        "transform": {"quality": 60, "cacheDirectory": ".cache/images"},
    }

    _write_yaml(config_dir / "default.yaml", default_payload)
    _write_yaml(config_dir / "local.yaml", local_payload)

    monkeypatch.chdir(tmp_path)

    config = load_config()

    assert config.logging.level == "warn"
    assert config.output.directory == Path("public")
    assert config.transform.quality == 60
    assert config.transform.sizes == [320, 640]
    assert config.transform.placeholder is True
    assert config.transform.cache_directory == Path(".cache/images")
    assert len(config.loaded_from) == 2


def test_load_config_with_explicit_override(tmp_path, monkeypatch):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    _write_yaml(config_dir / "default.yaml", {"logging": {"level": "warn"}})
    _write_yaml(config_dir / "local.yaml", {"logging": {"level": "error"}})
    override_path = tmp_path / "extra.yaml"
    _write_yaml(override_path, {"transform": {"format": ".WEBP", "steps": 3}})

    monkeypatch.chdir(tmp_path)

    config = load_config(override_path)

    assert config.logging.level == "info"
    assert config.transform.format == "webp"
    assert config.transform.steps == 3
    assert config.loaded_from == (str(override_path),)


def test_load_config_falls_back_to_packaged_default(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    config = load_config()

    assert config.loaded_from == ("respimg.config:default.yaml",)
    assert config.transform.quality == 85
    assert config.transform.placeholder_size == 40
    assert config.transform.cache_directory is False


def test_missing_explicit_config_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")


def test_invalid_config_is_reported(tmp_path, monkeypatch):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    _write_yaml(config_dir / "default.yaml", {"transform": {"quality": 0}})
    monkeypatch.chdir(tmp_path)

    with pytest.raises(ValueError, match="Invalid configuration"):
        load_config()


def test_transform_options_accept_camel_case_aliases():
    options = TransformOptions.model_validate(
        {
            "placeholderSize": 24,
            "cacheDirectory": True,
            "cacheCompression": False,
            "emitFile": False,
            "min": 100,
            "max": 400,
            "sizes": "300, 600",
        }
    )

    assert options.placeholder_size == 24
    assert options.cache_directory is True
    assert options.cache_compression is False
    assert options.emit_file is False
    assert (options.min_width, options.max_width) == (100, 400)
    assert options.sizes == [300, 600]


def test_transform_options_reject_unknown_fields():
    with pytest.raises(ValueError):
        TransformOptions.model_validate({"qualty": 50})


def test_adapter_payload_prefers_explicit_adapter_options():
    options = TransformOptions(quality=70, rotate=90, adapter_options={"quality": 50, "effort": 4})

    payload = options.adapter_payload()

    assert payload["quality"] == 50
    assert payload["rotate"] == 90
    assert payload["effort"] == 4


def test_resolve_options_layers_overrides():
    base = TransformOptions.model_validate({"quality": 70, "sizes": [100]})

    resolved = resolve_options(base, {"sizes": [200, 400], "quality": None, "placeholder": True})

    assert resolved.quality == 70
    assert resolved.sizes == [200, 400]
    assert resolved.placeholder is True


def test_resolve_options_reports_invalid_overrides():
    with pytest.raises(ValueError, match="Invalid transform options"):
        resolve_options(TransformOptions(), {"quality": 500})
