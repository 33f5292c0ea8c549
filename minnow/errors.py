"""Exceptions for failed system operations, and helpers that raise them."""

from __future__ import annotations

import os
from typing import TypeVar

T = TypeVar("T")


class TaggedError(RuntimeError):
    """An error code together with a description of the attempted operation."""

    def __init__(self, attempt: str, error_code: int, message: str) -> None:
        super().__init__(attempt, error_code, message)
        self.attempt = attempt
        self.error_code = error_code
        self.message = message

    def __str__(self) -> str:
        return f"{self.attempt}: {self.message}"


class UnixError(TaggedError):
    """A failed operating-system call, described by its errno value."""

    def __init__(self, attempt: str, errno_value: int) -> None:
        super().__init__(attempt, errno_value, os.strerror(errno_value))


def check_system_call(attempt: str, return_value: int) -> int:
    """Return a non-negative result; a negative one is taken as ``-errno`` and raised."""
    if return_value >= 0:
        return return_value
    raise UnixError(attempt, -return_value)


def notnull(context: str, value: T | None) -> T:
    """Return ``value``, raising if it is ``None``."""
    if value is None:
        raise RuntimeError(f"{context}: returned null pointer")
    return value