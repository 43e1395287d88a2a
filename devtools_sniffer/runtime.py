"""
Command channel over the Runtime domain.

Submits self-contained JavaScript expressions to a remote execution context
and wraps each reply in an EvaluationResponse.
"""

import logging
import re
from typing import Any, Dict, Optional

from .connection import CDPConnection, DEFAULT_TIMEOUT
from .exceptions import CDPError

logger = logging.getLogger(__name__)

_MISSING = object()

_OBJECT_PATH = re.compile(r"[A-Za-z_$][\w$]*(\.[A-Za-z_$][\w$]*)*")


def check_object_path(path: str) -> str:
    """
    Validate a dotted global path such as ``UI.panels.lighthouse.__proto__``.

    Paths are spliced into expressions as source, so anything beyond plain
    identifiers joined by dots is rejected.

    Raises:
        ValueError: If ``path`` is not a dotted identifier path
    """
    if not isinstance(path, str) or not _OBJECT_PATH.fullmatch(path):
        raise ValueError(f"Invalid remote object path: {path!r}")
    return path


class EvaluationResponse:
    """
    Outcome of one Runtime.evaluate submission.

    Either the evaluation succeeded (a by-value ``value`` or a remote
    ``object_id``) or it failed with ``exception_details``. A transport
    rejection is folded into the failed branch via ``from_error``.

    Attributes:
        result: Raw RemoteObject dict (may be empty)
        exception_details: Raw exceptionDetails dict, None on success
        error: Transport exception, when the submission itself was rejected
    """

    def __init__(self, reply: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None):
        reply = reply or {}
        self.result: Dict[str, Any] = reply.get("result") or {}
        self.exception_details: Optional[Dict[str, Any]] = reply.get("exceptionDetails")
        self.error = error
        if error is not None and self.exception_details is None:
            self.exception_details = {"text": str(error)}

    @classmethod
    def from_error(cls, error: Exception) -> "EvaluationResponse":
        """Build a failed response from a rejected submission."""
        return cls(error=error)

    @property
    def failed(self) -> bool:
        return self.exception_details is not None

    @property
    def has_value(self) -> bool:
        return self.result.get("value", _MISSING) is not _MISSING

    @property
    def value(self) -> Any:
        return self.result.get("value")

    @property
    def object_id(self) -> Optional[str]:
        return self.result.get("objectId")

    @property
    def exception_message(self) -> str:
        """Best available description of the remote exception."""
        if not self.exception_details:
            return ""
        exception = self.exception_details.get("exception") or {}
        description = exception.get("description")
        if description:
            return description.splitlines()[0]
        if isinstance(exception.get("value"), str):
            return exception["value"]
        return self.exception_details.get("text", "")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"result": self.result}
        if self.exception_details is not None:
            data["exceptionDetails"] = self.exception_details
        return data

    def __repr__(self):
        if self.failed:
            return f"EvaluationResponse(failed={self.exception_message!r})"
        return f"EvaluationResponse(result={self.result!r})"


class RemoteRuntime:
    """
    Evaluates expressions in the execution context behind a CDPConnection.

    Usage:
        runtime = RemoteRuntime(conn)
        await runtime.enable()
        response = await runtime.send_command("1 + 1", return_by_value=True)
    """

    def __init__(self, connection: CDPConnection):
        self.connection = connection
        self._enabled = False

    async def enable(self) -> None:
        """Enable the Runtime domain (once per connection)."""
        if self._enabled:
            return
        await self.connection.execute_command("Runtime.enable")
        self._enabled = True
        logger.debug("Runtime domain enabled")

    async def send_command(
        self,
        expression: str,
        *,
        await_promise: bool = False,
        return_by_value: bool = False,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ) -> EvaluationResponse:
        """
        Evaluate ``expression`` remotely.

        Args:
            expression: Self-contained JavaScript source
            await_promise: Suspend until a returned promise settles
            return_by_value: Serialize object results into plain values
            timeout: Per-command timeout override, None waits indefinitely

        Returns:
            EvaluationResponse for the settled evaluation

        Raises:
            CDPError: If the submission itself is rejected by the transport
        """
        params = {"expression": expression}
        if await_promise:
            params["awaitPromise"] = True
        if return_by_value:
            params["returnByValue"] = True

        reply = await self.connection.execute_command(
            "Runtime.evaluate", params, timeout=timeout
        )
        return EvaluationResponse(reply)

    async def try_send_command(self, expression: str, **kwargs) -> EvaluationResponse:
        """Like send_command, but a transport rejection becomes a failed response."""
        try:
            return await self.send_command(expression, **kwargs)
        except CDPError as e:
            logger.debug(f"Submission rejected: {e}")
            return EvaluationResponse.from_error(e)
