"""Waits for events on file descriptors and runs the matching callbacks."""

from __future__ import annotations

import errno
import os
import select
import socket
import sys
import weakref
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from minnow.errors import UnixError
from minnow.file_descriptor import FileDescriptor

Callback = Callable[[], None]
Interest = Callable[[], bool]

_MAX_CATEGORIES = 64
_MAX_ITERATIONS = 128


def _always() -> bool:
    return True


def _nothing() -> None:
    return None


class Direction(Enum):
    """Whether a rule waits for its descriptor to be readable or writable."""

    IN = "in"
    OUT = "out"


class Result(Enum):
    """The outcome of one call to ``EventLoop.wait_next_event``."""

    SUCCESS = "success"  # a rule was served
    TIMEOUT = "timeout"  # nothing happened before the timeout
    EXIT = "exit"  # no rule is left that is interested; stop calling


@dataclass(eq=False)
class _BasicRule:
    category_id: int
    interest: Interest
    callback: Callback
    cancel_requested: bool = False


@dataclass(eq=False)
class _FDRule(_BasicRule):
    fd: FileDescriptor = field(default=None)  # type: ignore[assignment]
    direction: Direction = Direction.IN
    cancel: Callback = _nothing
    error: Callback = _nothing

    def service_count(self) -> int:
        """How often the descriptor has been read or written, per the rule's direction."""
        return self.fd.read_count() if self.direction is Direction.IN else self.fd.write_count()


class RuleHandle:
    """A weak handle through which a rule can be cancelled."""

    def __init__(self, rule: _BasicRule) -> None:
        self._rule = weakref.ref(rule)

    def cancel(self) -> None:
        """Ask the loop to drop the rule; its cancel callback is not called."""
        rule = self._rule()
        if rule is not None:
            rule.cancel_requested = True


def _report_poll_error(fd_num: int, name: str) -> None:
    """Describe an error on a polled descriptor on stderr."""
    try:
        sock = socket.socket(fileno=fd_num)
    except OSError as err:
        if err.errno == errno.ENOTSOCK:
            sys.stderr.write(f'error on polled file descriptor for rule "{name}"\n')
            return
        raise UnixError("getsockopt", err.errno or 0) from err
    try:
        socket_error = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
    except OSError as err:
        raise UnixError("getsockopt", err.errno or 0) from err
    finally:
        sock.detach()
    if socket_error:
        sys.stderr.write(
            f'error on polled socket for rule "{name}": {os.strerror(socket_error)}\n'
        )


class EventLoop:
    """Runs callbacks for rules whose conditions hold or whose descriptors are ready."""

    def __init__(self) -> None:
        self._categories: list[str] = []
        self._fd_rules: list[_FDRule] = []
        self._non_fd_rules: list[_BasicRule] = []

    def add_category(self, name: str) -> int:
        """Register a category name for rules; returns its id."""
        if len(self._categories) >= _MAX_CATEGORIES:
            raise RuntimeError("maximum categories reached")
        self._categories.append(name)
        return len(self._categories) - 1

    def _category_id(self, category: int | str) -> int:
        if isinstance(category, str):
            return self.add_category(category)
        if not 0 <= category < len(self._categories):
            raise IndexError("bad category_id")
        return category

    def _name(self, rule: _BasicRule) -> str:
        return self._categories[rule.category_id]

    def add_rule(
        self,
        category: int | str,
        callback: Callback,
        interest: Interest = _always,
    ) -> RuleHandle:
        """Call ``callback`` whenever ``interest()`` is true.

        ``category`` is a category id, or a name for a new category.
        """
        rule = _BasicRule(self._category_id(category), interest, callback)
        self._non_fd_rules.append(rule)
        return RuleHandle(rule)

    def add_fd_rule(
        self,
        category: int | str,
        fd: FileDescriptor,
        direction: Direction,
        callback: Callback,
        interest: Interest = _always,
        cancel: Callback = _nothing,
        error: Callback = _nothing,
    ) -> RuleHandle:
        """Call ``callback`` when ``fd`` is ready in ``direction`` and ``interest()`` is true.

        ``cancel`` runs when the rule ends by itself (end of file, hangup, closing);
        ``error`` runs first when the descriptor reports an error.
        """
        rule = _FDRule(
            self._category_id(category),
            interest,
            callback,
            fd=fd.duplicate(),
            direction=direction,
            cancel=cancel,
            error=error,
        )
        self._fd_rules.append(rule)
        return RuleHandle(rule)

    def _serve_non_fd_rules(self) -> bool:
        for rule in list(self._non_fd_rules):
            if rule.cancel_requested:
                self._non_fd_rules.remove(rule)
                continue

            fired = False
            iterations = 0
            while rule.interest():
                iterations += 1
                if iterations > _MAX_ITERATIONS:
                    raise RuntimeError(
                        f'EventLoop: busy wait detected: rule "{self._name(rule)}" '
                        f"is still interested after {iterations} iterations"
                    )
                fired = True
                rule.callback()

            if fired:
                return True  # only serve one rule on each iteration
        return False

    def _prepare_poll(self) -> list[tuple[_FDRule, int]]:
        polled: list[tuple[_FDRule, int]] = []
        for rule in list(self._fd_rules):
            if rule.cancel_requested:
                # cancelled from outside: no cancellation callback
                self._fd_rules.remove(rule)
                continue
            if (rule.direction is Direction.IN and rule.fd.eof()) or rule.fd.closed():
                rule.cancel()
                self._fd_rules.remove(rule)
                continue
            if rule.interest():
                events = select.POLLIN if rule.direction is Direction.IN else select.POLLOUT
            else:
                events = 0  # still registered, so that errors are seen
            polled.append((rule, events))
        return polled

    def wait_next_event(self, timeout_ms: int) -> Result:
        """Serve at most one rule, waiting up to ``timeout_ms`` (negative: forever)."""
        if self._serve_non_fd_rules():
            return Result.SUCCESS

        polled = self._prepare_poll()
        if not any(events for _rule, events in polled):
            return Result.EXIT

        masks: dict[int, int] = {}
        for rule, events in polled:
            fd_num = rule.fd.fd_num()
            masks[fd_num] = masks.get(fd_num, 0) | events
        poller = select.poll()
        for fd_num, mask in masks.items():
            poller.register(fd_num, mask)
        try:
            ready = dict(poller.poll(timeout_ms))
        except OSError as err:
            raise UnixError("poll", err.errno or 0) from err
        if not ready:
            return Result.TIMEOUT

        for rule, events in polled:
            revents = ready.get(rule.fd.fd_num(), 0)

            if revents & (select.POLLERR | select.POLLNVAL):
                _report_poll_error(rule.fd.fd_num(), self._name(rule))
                rule.error()
                rule.cancel()
                self._fd_rules.remove(rule)
                continue

            poll_ready = bool(revents & events)
            poll_hup = bool(revents & select.POLLHUP)
            if poll_hup and ((events and not poll_ready) or rule.direction is Direction.OUT):
                # a hangup with nothing else to offer: this descriptor is defunct
                rule.cancel()
                self._fd_rules.remove(rule)
                continue

            if poll_ready:
                count_before = rule.service_count()
                rule.callback()
                if (
                    count_before == rule.service_count()
                    and not rule.fd.closed()
                    and rule.interest()
                ):
                    raise RuntimeError(
                        f'EventLoop: busy wait detected: rule "{self._name(rule)}" '
                        "did not read/write fd and is still interested"
                    )
                return Result.SUCCESS  # only serve one rule on each iteration

        return Result.SUCCESS