"""End-to-end CLI smoke tests.

These tests run `python -m respimg` in a subprocess against a generated image:
- render with explicit sizes (dedup, emitted files, JSON artifact)
- render twice through the cache, then inspect and purge it
- the disable short-circuit
- failure paths (unsupported extension, missing cloudinary credential)
"""

from __future__ import annotations

import json
import os
import shlex
import subprocess
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

pytestmark = pytest.mark.e2e

SRC_DIR = Path(__file__).resolve().parents[2] / "src"


@dataclass(frozen=True)
class CommandResult:
    args: Sequence[str]
    returncode: int
    stdout: str
    stderr: str


def _format_cmd(args: Sequence[str]) -> str:
    return " ".join(shlex.quote(part) for part in args)


def _combined_output(result: CommandResult) -> str:
    parts: list[str] = []
    if result.stdout:
        parts.append("stdout:\n" + result.stdout.rstrip())
    if result.stderr:
        parts.append("stderr:\n" + result.stderr.rstrip())
    return "\n\n".join(parts).strip()


def run_cli(
    args: Sequence[str],
    *,
    cwd: Path,
    env: Mapping[str, str] | None = None,
    input_text: str = "",
    timeout_seconds: float = 60.0,
) -> CommandResult:
    command = (sys.executable, "-m", "respimg", *args)
    merged_env = dict(os.environ)
    merged_env["PYTHONPATH"] = os.pathsep.join(
        filter(None, [str(SRC_DIR), merged_env.get("PYTHONPATH")])
    )
    for name in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET"):
        merged_env.pop(name, None)
    merged_env.update(env or {})

    print(f"+ {_format_cmd(command)}", flush=True)
    completed = subprocess.run(
        list(command),
        check=False,
        cwd=str(cwd),
        env=merged_env,
        input=input_text,
        text=True,
        capture_output=True,
        timeout=timeout_seconds,
    )
    return CommandResult(
        args=tuple(command),
        returncode=completed.returncode,
        stdout=completed.stdout,
        stderr=completed.stderr,
    )


def expect_ok(result: CommandResult) -> None:
    if result.returncode != 0:
        raise AssertionError(
            f"Command failed (rc={result.returncode}): {_format_cmd(result.args)}\n\n"
            f"{_combined_output(result)}"
        )


def expect_fail(result: CommandResult) -> None:
    if result.returncode == 0:
        raise AssertionError(
            f"Command unexpectedly succeeded: {_format_cmd(result.args)}\n\n"
            f"{_combined_output(result)}"
        )


def write_image(path: Path, size: tuple[int, int] = (120, 80)) -> Path:
    buffer = BytesIO()
    Image.new("RGB", size, (10, 120, 200)).save(buffer, "PNG")
    path.write_bytes(buffer.getvalue())
    return path


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    write_image(tmp_path / "hero.png")
    return tmp_path


def test_version(workdir):
    result = run_cli(["--version"], cwd=workdir)
    expect_ok(result)
    assert result.stdout.strip()


def test_render_emits_deduplicated_variants(workdir):
    result = run_cli(
        ["render", "hero.png", "--sizes", "30,60,120,500", "--out", "dist", "--public-path", "/img/"],
        cwd=workdir,
    )
    expect_ok(result)

    artifact = json.loads(result.stdout)
    widths = [image["width"] for image in artifact["images"]]
    assert widths == [30, 60, 120, 120]
    assert artifact["images"][2] == artifact["images"][3]
    assert (artifact["width"], artifact["height"]) == (30, 20)
    assert artifact["src"].startswith("/img/")
    assert len(list((workdir / "dist").glob("*.png"))) == 3
    assert (workdir / "respimg.log").exists()


def test_render_with_placeholder_and_format(workdir):
    result = run_cli(
        ["render", "hero.png", "--sizes", "60", "--format", "webp", "--placeholder", "--out", "dist"],
        cwd=workdir,
    )
    expect_ok(result)

    artifact = json.loads(result.stdout)
    assert artifact["placeholder"].startswith("data:image/webp;base64,")
    assert [path.suffix for path in (workdir / "dist").iterdir()] == [".webp"]


def test_render_uses_cache_then_purges(workdir):
    args = ["render", "hero.png", "--sizes", "40,80", "--out", "dist", "--cache-dir", "cache"]
    first = run_cli(args, cwd=workdir)
    expect_ok(first)
    second = run_cli(args, cwd=workdir)
    expect_ok(second)
    assert json.loads(first.stdout) == json.loads(second.stdout)

    info = run_cli(["cache", "info", "--cache-dir", "cache"], cwd=workdir)
    expect_ok(info)
    assert "1 entry" in info.stdout

    purge = run_cli(["cache", "purge", "--cache-dir", "cache", "--yes"], cwd=workdir)
    expect_ok(purge)
    assert "Removed 1 cache entries." in purge.stdout
    assert list((workdir / "cache").glob("*.json*")) == []


def test_render_disabled_emits_source(workdir):
    result = run_cli(["render", "hero.png", "--disable", "--out", "dist"], cwd=workdir)
    expect_ok(result)

    artifact = json.loads(result.stdout)
    assert (artifact["width"], artifact["height"]) == (100, 100)
    assert len(artifact["images"]) == 1
    emitted = list((workdir / "dist").iterdir())
    assert len(emitted) == 1
    assert emitted[0].read_bytes() == (workdir / "hero.png").read_bytes()


def test_render_rejects_unsupported_extension(workdir):
    (workdir / "scan.tiff").write_bytes((workdir / "hero.png").read_bytes())

    result = run_cli(["render", "scan.tiff"], cwd=workdir)
    expect_fail(result)
    assert "No mime type" in result.stderr


def test_render_reports_missing_cloudinary_credential(workdir):
    result = run_cli(
        ["render", "hero.png", "--sizes", "60", "--cloudinary", "--out", "dist"],
        cwd=workdir,
        env={"CLOUDINARY_CLOUD_NAME": "demo", "CLOUDINARY_API_KEY": "1234"},
    )
    expect_fail(result)
    assert "api_secret" in result.stderr
    assert not (workdir / "dist").exists()


def test_config_show_and_adapters(workdir):
    shown = run_cli(["config", "show", "--format", "json"], cwd=workdir)
    expect_ok(shown)
    assert json.loads(shown.stdout)["transform"]["quality"] == 85

    adapters = run_cli(["adapters"], cwd=workdir)
    expect_ok(adapters)
    assert adapters.stdout.split() == ["pillow", "remote"]
