"""Exception taxonomy shared by the monitoring core and its surfaces."""

from __future__ import annotations


class NetWatchError(Exception):
    """Base class for all NetWatch errors."""


class SourceError(NetWatchError):
    """The connection source failed transiently. The scheduler backs off."""


class SourceUnavailable(NetWatchError):
    """No snapshot has been published yet."""

    def __init__(self, message: str = "No connection snapshot has been captured yet") -> None:
        super().__init__(message)


class ClassificationError(NetWatchError):
    """A risk rule raised. This is a defect in the rule, never a runtime condition."""

    def __init__(self, rule_name: str, cause: BaseException) -> None:
        super().__init__(f"Risk rule '{rule_name}' failed: {cause!r}")
        self.rule_name = rule_name
