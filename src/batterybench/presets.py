"""Benchmark presets: named repository/build-command pairs."""

from __future__ import annotations

from typing_extensions import TypedDict

from batterybench.errors import ConfigurationError


class BenchmarkPreset(TypedDict):
    repository: str
    build_command: list[str]


DEFAULT_PRESET = "rustlings"

PRESETS: dict[str, BenchmarkPreset] = {
    "rustlings": {
        "repository": "https://github.com/rust-lang/rustlings.git",
        "build_command": ["cargo", "build"],
    },
    "hyprland": {
        "repository": "https://github.com/hyprwm/Hyprland.git",
        "build_command": ["make", "all"],
    },
}


def preset_choices() -> tuple[str, ...]:
    return tuple(sorted(PRESETS))


def resolve_preset(name: str) -> BenchmarkPreset:
    normalized = name.strip().lower()
    if normalized not in PRESETS:
        raise ConfigurationError(
            f"Unknown preset: {name}",
            hint=f"Use one of: {', '.join(preset_choices())}.",
        )
    preset = PRESETS[normalized]
    return BenchmarkPreset(
        repository=preset["repository"],
        build_command=list(preset["build_command"]),
    )
