"""Helpers that turn a possible error into an exception or a log line."""

from __future__ import annotations

from .logsetup import get_logger


def raise_on_error(err: BaseException | None, msg: str) -> None:
    """Raise ``RuntimeError("<msg>: <err>")`` if ``err`` is set."""
    if err is not None:
        raise RuntimeError(f"{msg}: {err}") from err


def log_on_error(err: BaseException | None, msg: str) -> bool:
    """Log ``err`` with ``msg`` at error level; return True when there was no error."""
    if err is None:
        return True
    get_logger().error("%s: %s", msg, err)
    return False