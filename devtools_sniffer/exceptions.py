"""Exception hierarchy for inspector control and report capture.

All errors inherit from CDPError. Transport errors (connection, command,
timeout) are what the trigger loop treats as "not ready yet"; the remaining
classes are fatal and abort the run before any output is written.
"""

from typing import Optional


class CDPError(Exception):
    """Base exception for all CDP-related errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional error context
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class CDPConnectionError(CDPError):
    """WebSocket connection failures."""

    pass


class ConnectionFailedError(CDPConnectionError):
    """Initial connection failed.

    Common causes: wrong port, browser not running, inspector target gone.
    """

    pass


class ConnectionClosedError(CDPConnectionError):
    """Connection closed while commands were pending."""

    pass


class CDPCommandError(CDPError):
    """Command execution failures."""

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        error_code: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.method = method
        self.error_code = error_code


class CommandFailedError(CDPCommandError):
    """Browser returned an error reply for a command.

    Example: Runtime.evaluate sent before the execution context exists.
    """

    pass


class CDPTimeoutError(CDPError):
    """Command did not receive a reply within the timeout."""

    def __init__(
        self,
        message: str,
        command_method: Optional[str] = None,
        timeout: Optional[float] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.command_method = command_method
        self.timeout = timeout

    def __str__(self):
        if self.command_method and self.timeout:
            return f"Command '{self.command_method}' timed out after {self.timeout}s"
        return self.message


class CDPTargetNotFoundError(CDPError):
    """No target matched the requested locator.

    Raised before any trigger attempt when the inspector frontend cannot be
    found among the browser's targets.
    """

    def __init__(
        self,
        message: str,
        target_id: Optional[str] = None,
        url_pattern: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.target_id = target_id
        self.url_pattern = url_pattern

    def __str__(self):
        if self.target_id:
            return f"Target not found: {self.target_id}"
        if self.url_pattern:
            return f"No target matching URL pattern: {self.url_pattern}"
        return self.message


class BrowserLaunchError(CDPError):
    """Browser executable missing or never exposed its debugging endpoint."""

    pass


class SnifferError(CDPError):
    """Base class for method interception failures.

    Attributes:
        method_name: Name of the remote method being intercepted
    """

    def __init__(
        self,
        message: str,
        method_name: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.method_name = method_name


class SnifferInstallError(SnifferError):
    """Named property on the receiver is missing or not callable.

    A mismatch between the configured locator and the remote object graph.
    Never retried.
    """

    pass


class SnifferOverrideError(SnifferError):
    """The capture behaviour threw inside the installed override."""

    pass


class TriggerTimeoutError(CDPError):
    """Bounded trigger loop ran out of attempts or time.

    Attributes:
        attempts: Number of submissions made before giving up
    """

    def __init__(
        self,
        message: str,
        attempts: int = 0,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.attempts = attempts


class EmptyResultError(CDPError):
    """Captured evaluation settled without a usable value."""

    pass
