"""Unit tests for the femtologging helpers."""

from __future__ import annotations

import pytest

from coco_deploy.logging import (
    LOG_LEVEL_ENV_VAR,
    configure_logging,
    format_log_message,
    log_debug,
    log_error,
    log_exception,
    log_info,
    log_warning,
    normalize_log_level,
)


class _RecordingLogger:
    """Collects ``log`` calls for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, object | None, bool]] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        self.calls.append((str(level), message, exc_info, stack_info))
        return message


class TestNormalizeLogLevel:
    """Tests for normalize_log_level."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("warning", ("WARNING", False)),
            ("  trace ", ("TRACE", False)),
            ("WARN", ("WARN", False)),
            (None, ("INFO", True)),
            ("", ("INFO", True)),
            ("verbose", ("INFO", True)),
        ],
    )
    def test_normalizes_or_flags(
        self, raw: str | None, expected: tuple[str, bool]
    ) -> None:
        """Known names are upper-cased; anything else falls back to INFO."""
        assert normalize_log_level(raw) == expected, (
            f"Unexpected normalization for {raw!r}"
        )


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture
    def basic_config_calls(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> list[dict[str, object]]:
        calls: list[dict[str, object]] = []

        def fake_basic_config(**kwargs: object) -> None:
            calls.append(kwargs)

        monkeypatch.setattr("coco_deploy.logging.basicConfig", fake_basic_config)
        return calls

    def test_explicit_level_wins_over_environment(
        self,
        monkeypatch: pytest.MonkeyPatch,
        basic_config_calls: list[dict[str, object]],
    ) -> None:
        """An explicit argument ignores COCO_LOG_LEVEL."""
        monkeypatch.setenv(LOG_LEVEL_ENV_VAR, "ERROR")

        assert configure_logging("debug") == "DEBUG"
        assert basic_config_calls == [{"level": "DEBUG", "force": False}]

    def test_reads_environment_when_level_omitted(
        self,
        monkeypatch: pytest.MonkeyPatch,
        basic_config_calls: list[dict[str, object]],
    ) -> None:
        """COCO_LOG_LEVEL is used when no level is passed."""
        monkeypatch.setenv(LOG_LEVEL_ENV_VAR, "warning")

        assert configure_logging(force=True) == "WARNING"
        assert basic_config_calls == [{"level": "WARNING", "force": True}]

    def test_defaults_to_info(
        self,
        monkeypatch: pytest.MonkeyPatch,
        basic_config_calls: list[dict[str, object]],
    ) -> None:
        """With neither argument nor environment the level is INFO."""
        monkeypatch.delenv(LOG_LEVEL_ENV_VAR, raising=False)

        assert configure_logging() == "INFO"
        assert basic_config_calls[0]["level"] == "INFO"

    def test_invalid_level_warns(
        self,
        monkeypatch: pytest.MonkeyPatch,
        basic_config_calls: list[dict[str, object]],
    ) -> None:
        """An unknown level falls back to INFO and logs a warning."""
        logger = _RecordingLogger()
        monkeypatch.setattr("coco_deploy.logging.get_logger", lambda name: logger)

        assert configure_logging("chatty") == "INFO"
        assert logger.calls == [
            (
                "WARNING",
                "Unknown log level 'chatty', falling back to INFO",
                None,
                False,
            )
        ], "Expected a single fallback warning"


def test_format_log_message_uses_percent_formatting() -> None:
    """Percent formatting produces the expected message."""
    assert format_log_message("installed %s (%d)", "helm", 3) == "installed helm (3)"


def test_format_log_message_without_args_keeps_percent_signs() -> None:
    """Templates without arguments are passed through untouched."""
    assert format_log_message("100% done") == "100% done"


@pytest.mark.parametrize(
    ("emit", "level"),
    [
        (log_debug, "DEBUG"),
        (log_info, "INFO"),
        (log_warning, "WARNING"),
        (log_error, "ERROR"),
    ],
)
def test_level_helpers_format_and_tag(
    emit: object, level: str
) -> None:
    """Each helper renders the template and tags the right level."""
    logger = _RecordingLogger()

    emit(logger, "kubectl %s failed", "apply")  # type: ignore[operator]

    assert logger.calls == [(level, "kubectl apply failed", None, False)]


def test_log_warning_forwards_exc_info() -> None:
    """log_warning passes exc_info through to the logger."""
    logger = _RecordingLogger()
    exc = ValueError("boom")

    log_warning(logger, "retrying %s", "get nodes", exc_info=exc)

    assert logger.calls == [("WARNING", "retrying get nodes", exc, False)]


def test_log_exception_attaches_exception() -> None:
    """log_exception logs at ERROR with the exception attached."""
    logger = _RecordingLogger()
    exc = RuntimeError("boom")

    log_exception(logger, "k3s setup failed", exc)

    assert logger.calls == [("ERROR", "k3s setup failed", exc, False)]
