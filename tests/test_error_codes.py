from __future__ import annotations

from batterybench.errors import (
    BatteryBenchError,
    ConfigurationError,
    ExitCode,
    ExternalProcessError,
    ScoreLedgerError,
    UserDeclined,
    WorkspaceIOError,
    user_facing_error,
)
from batterybench.logging import LOG_LEVELS, configure_logging


def test_exit_codes_are_deterministic() -> None:
    assert int(ExitCode.SUCCESS) == 0
    assert int(ExitCode.FAILURE) == 1
    assert int(ExitCode.INVALID_ARGS) == 2
    assert int(ExitCode.INTERRUPTED) == 130


def test_error_string_contains_hint() -> None:
    err = BatteryBenchError("git not found", hint="Install git")
    assert "Install git" in str(err)


def test_every_error_category_exits_with_failure() -> None:
    for error_type in (ConfigurationError, WorkspaceIOError, ScoreLedgerError, ExternalProcessError, UserDeclined):
        err = error_type("boom")
        assert isinstance(err, BatteryBenchError)
        assert err.code == ExitCode.FAILURE


def test_user_facing_error_template() -> None:
    text = user_facing_error("Invalid repository URL", hint="Use https://")
    assert text.startswith("[ERROR]")
    assert "Next step" in text


def test_user_facing_warning_prefix() -> None:
    assert user_facing_error("Battery is not full", level="WARNING") == "[WARNING] Battery is not full."


def test_logging_levels() -> None:
    logger = configure_logging("ERROR")
    assert logger.level == LOG_LEVELS["ERROR"]
