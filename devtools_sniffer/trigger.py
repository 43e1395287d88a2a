"""
Retrying trigger for the inspector panel's start action.

The remote UI may not be interactive yet (view not shown, control still
disabled, execution context not attached). The start expression throws in
every one of those states, so it is simply resubmitted until one evaluation
comes back clean. Only that clean evaluation reaches the click.
"""

import asyncio
import json
import logging
import time
from typing import Optional

from .exceptions import TriggerTimeoutError
from .runtime import EvaluationResponse, RemoteRuntime, check_object_path

logger = logging.getLogger(__name__)

START_TEMPLATE = """
(() => {
  UI.ViewManager.instance().showView(%(view_id)s);
  const control = %(panel_path)s.contentElement.querySelector(%(selector)s);
  if (!control) throw new Error('Start control not found: ' + %(selector)s);
  if (control.disabled) throw new Error('Start control disabled');
  control.click();
})()
"""


class TriggerResult:
    """The clean response that ended the loop and how many submissions it took."""

    def __init__(self, response: EvaluationResponse, attempts: int):
        self.response = response
        self.attempts = attempts

    def __repr__(self):
        return f"TriggerResult(attempts={self.attempts})"


def build_start_expression(view_id: str, panel_path: str, control_selector: str) -> str:
    """
    Build the expression that shows the panel and clicks its start control.

    Args:
        view_id: View to bring into focus (e.g. "lighthouse")
        panel_path: Dotted path to the panel object (e.g. "UI.panels.lighthouse")
        control_selector: CSS selector of the start control inside the panel

    Returns:
        Self-contained JavaScript expression
    """
    return START_TEMPLATE % {
        "view_id": json.dumps(view_id),
        "panel_path": check_object_path(panel_path),
        "selector": json.dumps(control_selector),
    }


async def trigger_until_ready(
    runtime: RemoteRuntime,
    expression: str,
    *,
    max_attempts: Optional[int] = None,
    deadline: Optional[float] = None,
) -> TriggerResult:
    """
    Submit ``expression`` until an evaluation completes without an exception.

    Rejected submissions and responses carrying exceptionDetails are both
    "not ready yet". There is no backoff between attempts, though every
    failed attempt yields to the event loop once. With neither
    bound given the loop runs until it succeeds.

    Args:
        runtime: Command channel to submit through
        expression: Start expression (see build_start_expression)
        max_attempts: Give up after this many submissions
        deadline: Give up after this many seconds

    Returns:
        TriggerResult with the first clean response

    Raises:
        TriggerTimeoutError: If a bound is set and exhausted
    """
    started = time.monotonic()
    attempts = 0

    while True:
        attempts += 1
        response = await runtime.try_send_command(expression)
        if not response.failed:
            logger.info(f"Start action triggered after {attempts} attempt(s)")
            return TriggerResult(response, attempts)

        logger.debug(f"Trigger attempt {attempts} not ready: {response.exception_message}")

        if max_attempts is not None and attempts >= max_attempts:
            raise TriggerTimeoutError(
                f"Start action not ready after {attempts} attempts",
                attempts=attempts,
                details={"last_error": response.exception_message},
            )
        if deadline is not None and time.monotonic() - started >= deadline:
            raise TriggerTimeoutError(
                f"Start action not ready after {deadline}s",
                attempts=attempts,
                details={"last_error": response.exception_message},
            )

        # No backoff, but a submission can fail without ever suspending.
        await asyncio.sleep(0)
