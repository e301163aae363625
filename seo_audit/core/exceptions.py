"""Exception types raised across the audit pipeline."""


class AuditError(Exception):
    """Base class for audit pipeline errors."""


class CrawlError(AuditError):
    """The target site could not be crawled.

    The message is shown to users as the audit's failure reason,
    so it must stay short and free of internal details.
    """


class RuleExecutionError(AuditError):
    """A rule could not evaluate its input (e.g. malformed page data)."""


class InvalidTransitionError(AuditError):
    """An audit was moved to a status its current status does not allow."""

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move audit from {current} to {target}")
        self.current = current
        self.target = target


class AuditCancelledError(AuditError):
    """The audit was cancelled while its job was running."""
