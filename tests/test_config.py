from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from batterybench.config import (
    FileSettings,
    RunConfiguration,
    build_run_configuration,
    default_root_dir,
    load_settings,
    split_build_command,
)
from batterybench.errors import ConfigurationError


def test_defaults_use_rustlings_preset(tmp_path: Path) -> None:
    config = build_run_configuration(root_dir=tmp_path)

    assert config.repository == "https://github.com/rust-lang/rustlings.git"
    assert config.build_command == ["cargo", "build"]
    assert config.source_dir == tmp_path / "repo-dir"
    assert config.build_dir == tmp_path / "build-dir"
    assert config.gate_policy == "once"
    assert config.poll_interval_seconds == 1.0


def test_hyprland_preset_uses_make(tmp_path: Path) -> None:
    config = build_run_configuration(preset="hyprland", root_dir=tmp_path)

    assert config.repository == "https://github.com/hyprwm/Hyprland.git"
    assert config.build_command == ["make", "all"]


def test_explicit_overrides_win_over_file_and_preset(tmp_path: Path) -> None:
    settings = FileSettings(repository="https://example.com/file.git", build_command=["ninja"])

    config = build_run_configuration(
        settings=settings,
        repository="git@example.com:org/cli.git",
        build_command=["make", "-j4"],
        root_dir=tmp_path,
        gate_policy="every-iteration",
    )

    assert config.repository == "git@example.com:org/cli.git"
    assert config.build_command == ["make", "-j4"]
    assert config.gate_policy == "every-iteration"


def test_invalid_repository_raises_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        build_run_configuration(repository="ftp://example.com/repo.git", root_dir=tmp_path)

    assert "Invalid repository URL" in exc_info.value.message


def test_run_configuration_is_immutable(tmp_path: Path) -> None:
    config = build_run_configuration(root_dir=tmp_path)

    with pytest.raises(ValidationError):
        config.repository = "https://example.com/other.git"


def test_run_configuration_rejects_empty_build_command(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        RunConfiguration(repository="https://example.com/r.git", build_command=[], root_dir=tmp_path)


def test_split_build_command_keeps_separate_tokens_unchanged() -> None:
    assert split_build_command(["cargo", "build"]) == ["cargo", "build"]
    assert split_build_command(["python3", "tools/build.py", "out dir"]) == ["python3", "tools/build.py", "out dir"]
    assert split_build_command([r"C:\tools\make.exe", "all"]) == [r"C:\tools\make.exe", "all"]


def test_split_build_command_splits_a_single_token_shell_style() -> None:
    assert split_build_command(["make -j4 all"], posix=True) == ["make", "-j4", "all"]
    assert split_build_command("cargo build --release", posix=True) == ["cargo", "build", "--release"]
    assert split_build_command('make "out dir"', posix=True) == ["make", "out dir"]


def test_split_build_command_keeps_backslashes_in_windows_mode() -> None:
    assert split_build_command(r"C:\tools\make.exe all", posix=False) == [r"C:\tools\make.exe", "all"]


def test_load_settings_defaults_when_file_missing(tmp_path: Path) -> None:
    assert load_settings(tmp_path / "missing.toml") == FileSettings()


def test_load_settings_reads_and_sanitizes_values(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text(
        "\n".join(
            [
                'repository = "https://example.com/repo.git"',
                'build_command = "make all"',
                'root_dir = "/tmp/bench"',
                'gate_policy = "sometimes"',
                "poll_interval_seconds = 2",
                "iteration_pause_seconds = 0",
                "unknown_key = true",
            ]
        ),
        encoding="utf-8",
    )

    settings = load_settings(path)

    assert settings.repository == "https://example.com/repo.git"
    assert settings.build_command == ["make", "all"]
    assert settings.root_dir == "/tmp/bench"
    assert settings.gate_policy is None
    assert settings.poll_interval_seconds == 2.0
    assert settings.iteration_pause_seconds == 0.0


def test_load_settings_ignores_invalid_toml(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("repository = [unterminated", encoding="utf-8")

    assert load_settings(path) == FileSettings()


def test_file_settings_feed_run_configuration(tmp_path: Path) -> None:
    settings = FileSettings(root_dir=str(tmp_path), iteration_pause_seconds=0.0, gate_policy="every-iteration")

    config = build_run_configuration(settings=settings)

    assert config.root_dir == tmp_path
    assert config.iteration_pause_seconds == 0.0
    assert config.gate_policy == "every-iteration"


def test_default_root_dir_uses_appdata_on_windows() -> None:
    root = default_root_dir(system_name="Windows", environ={"APPDATA": "C:/Users/demo/AppData/Roaming"})

    assert root == Path("C:/Users/demo/AppData/Roaming") / "batterybench"


def test_default_root_dir_uses_local_share_elsewhere() -> None:
    root = default_root_dir(system_name="Linux", environ={})

    assert root.parts[-3:] == (".local", "share", "batterybench")
