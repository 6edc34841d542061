"""Run configuration model and TOML loading."""

from __future__ import annotations

import os
import platform
import shlex
import sys
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

from batterybench.errors import ConfigurationError
from batterybench.presets import DEFAULT_PRESET, resolve_preset

APP_NAME = "batterybench"
DEFAULT_CONFIG_PATH = Path("~/.config/batterybench/config.toml").expanduser()
SOURCE_DIR_NAME = "repo-dir"
BUILD_DIR_NAME = "build-dir"
GatePolicy = Literal["once", "every-iteration"]

_VALID_REPO_PREFIXES = ("http://", "https://", "git@")
_VALID_GATE_POLICIES = {"once", "every-iteration"}


def is_valid_repository(value: str) -> bool:
    return value.strip().startswith(_VALID_REPO_PREFIXES)


def default_root_dir(*, system_name: str | None = None, environ: dict[str, str] | None = None) -> Path:
    system = system_name or platform.system()
    env = os.environ if environ is None else environ
    if system == "Windows":
        app_data = env.get("APPDATA", "").strip()
        if app_data:
            return Path(app_data) / APP_NAME
    return Path("~/.local/share").expanduser() / APP_NAME


def split_build_command(tokens: list[str] | str, *, posix: bool | None = None) -> list[str]:
    """Turn a command string or argv tokens into an argv list.

    A string, or a list holding exactly one token, is split shell-style. Several
    tokens are already an argv and are returned unchanged.
    """
    shell_posix = os.name != "nt" if posix is None else posix
    if isinstance(tokens, str):
        return shlex.split(tokens, posix=shell_posix)
    if len(tokens) == 1:
        return shlex.split(tokens[0], posix=shell_posix)
    return list(tokens)


class RunConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    repository: str
    build_command: list[str] = Field(min_length=1)
    root_dir: Path
    source_dir: Path
    build_dir: Path
    gate_policy: GatePolicy = "once"
    poll_interval_seconds: float = Field(default=1.0, gt=0)
    iteration_pause_seconds: float = Field(default=1.0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _default_workspace_dirs(cls, data: object) -> object:
        if isinstance(data, dict) and data.get("root_dir") is not None:
            root = Path(data["root_dir"])
            data = dict(data)
            if data.get("source_dir") is None:
                data["source_dir"] = root / SOURCE_DIR_NAME
            if data.get("build_dir") is None:
                data["build_dir"] = root / BUILD_DIR_NAME
        return data

    @field_validator("repository")
    @classmethod
    def _validate_repository(cls, value: str) -> str:
        cleaned = value.strip()
        if not is_valid_repository(cleaned):
            raise ValueError(f"Invalid repository URL: {value}")
        return cleaned

    @field_validator("build_command")
    @classmethod
    def _validate_build_command(cls, value: list[str]) -> list[str]:
        if not value or not value[0].strip():
            raise ValueError("Build command must not be empty")
        return value


class FileSettings(BaseModel):
    repository: str | None = None
    build_command: list[str] | None = None
    root_dir: str | None = None
    gate_policy: GatePolicy | None = None
    poll_interval_seconds: float | None = None
    iteration_pause_seconds: float | None = None


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _sanitize(raw: dict[str, object]) -> FileSettings:
    settings = FileSettings()

    repository = raw.get("repository")
    if isinstance(repository, str) and repository.strip():
        settings.repository = repository.strip()

    build_command = raw.get("build_command")
    if isinstance(build_command, str) and build_command.strip():
        settings.build_command = split_build_command(build_command)
    elif isinstance(build_command, list) and all(isinstance(item, str) for item in build_command):
        argv = [item for item in build_command if item.strip()]
        if argv:
            settings.build_command = argv

    root_dir = raw.get("root_dir")
    if isinstance(root_dir, str) and root_dir.strip():
        settings.root_dir = root_dir.strip()

    gate_policy = raw.get("gate_policy")
    if isinstance(gate_policy, str) and gate_policy in _VALID_GATE_POLICIES:
        settings.gate_policy = gate_policy  # type: ignore[assignment]

    for key in ("poll_interval_seconds", "iteration_pause_seconds"):
        value = raw.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0:
            setattr(settings, key, float(value))

    return settings


def load_settings(path: str | Path | None = None) -> FileSettings:
    resolved = get_config_path(path)
    if not resolved.exists():
        return FileSettings()
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError):
        return FileSettings()
    if not isinstance(raw, dict):
        return FileSettings()
    return _sanitize(raw)


def build_run_configuration(
    *,
    preset: str = DEFAULT_PRESET,
    settings: FileSettings | None = None,
    repository: str | None = None,
    build_command: list[str] | None = None,
    root_dir: str | Path | None = None,
    gate_policy: GatePolicy | None = None,
) -> RunConfiguration:
    """Layer preset, file settings and explicit overrides, then validate once."""
    base = resolve_preset(preset)
    file_settings = settings or FileSettings()

    payload: dict[str, object] = {
        "repository": repository or file_settings.repository or base["repository"],
        "build_command": build_command or file_settings.build_command or base["build_command"],
        "root_dir": Path(root_dir).expanduser() if root_dir else None,
        "gate_policy": gate_policy or file_settings.gate_policy or "once",
    }
    if payload["root_dir"] is None:
        payload["root_dir"] = (
            Path(file_settings.root_dir).expanduser() if file_settings.root_dir else default_root_dir()
        )
    if file_settings.poll_interval_seconds:
        payload["poll_interval_seconds"] = file_settings.poll_interval_seconds
    if file_settings.iteration_pause_seconds is not None:
        payload["iteration_pause_seconds"] = file_settings.iteration_pause_seconds

    try:
        return RunConfiguration(**payload)
    except ValidationError as exc:
        fields = {str(error["loc"][0]) for error in exc.errors() if error["loc"]}
        if "repository" in fields:
            raise ConfigurationError(
                f"Invalid repository URL: {payload['repository']}",
                hint="Use an http://, https:// or git@ remote.",
            ) from exc
        raise ConfigurationError(
            "Invalid run configuration.",
            hint="; ".join(error["msg"] for error in exc.errors()),
        ) from exc
