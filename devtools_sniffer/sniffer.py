"""
One-shot method interception inside the remote execution context.

A sniffer replaces ``receiver[method]`` with a wrapper that puts the original
back, calls it, and hands the call's arguments (plus its return value) to a
capture behaviour. The capture behaviour used here resolves a promise with
one of the arguments, and the command channel awaits that promise by value.

Usage:
    spec = SnifferSpec("UI.panels.lighthouse.__proto__", "_buildReportUI")
    response = await Sniffer(runtime, spec).capture()
"""

import json
import logging
from typing import Optional

from .exceptions import SnifferInstallError, SnifferOverrideError
from .runtime import EvaluationResponse, RemoteRuntime, check_object_path

logger = logging.getLogger(__name__)

INSTALL_ERROR_PREFIX = "Cannot find method to override"
OVERRIDE_ERROR_PREFIX = "Exception in overridden method"

# Function of (receiver, methodName, override). Throws before touching the
# receiver when the property is not callable. The original is restored before
# it runs, not in a finally after it, so a re-entrant call made by the original
# itself never reaches the override. Callers see the same result either way.
ADD_SNIFFER_SOURCE = """
(function addSniffer(receiver, methodName, override) {
  const original = receiver[methodName];
  if (typeof original !== 'function') {
    throw new Error('%(install_prefix)s: ' + methodName);
  }
  receiver[methodName] = function(...args) {
    receiver[methodName] = original;
    const result = original.apply(this, args);
    try {
      override.apply(this, args.concat([result]));
    } catch (e) {
      throw new Error('%(override_prefix)s \\'' + methodName + '\\': ' + e);
    }
    return result;
  };
})
""" % {"install_prefix": INSTALL_ERROR_PREFIX, "override_prefix": OVERRIDE_ERROR_PREFIX}

SNIFF_TEMPLATE = """
new Promise(resolve => {
  %(add_sniffer)s(
    %(receiver)s,
    %(method)s,
    (...args) => resolve(args[%(index)d])
  );
})
"""

ARM_TEMPLATE = """
(() => {
  let resolveCapture;
  const captured = new Promise(resolve => { resolveCapture = resolve; });
  %(add_sniffer)s(
    %(receiver)s,
    %(method)s,
    (...args) => resolveCapture(args[%(index)d])
  );
  globalThis[%(slot)s] = captured;
})()
"""

COLLECT_TEMPLATE = """
(() => {
  const captured = globalThis[%(slot)s];
  delete globalThis[%(slot)s];
  if (!captured) throw new Error('Sniffer not armed: ' + %(slot)s);
  return captured;
})()
"""

DEFAULT_SLOT = "__devtoolsSnifferCapture"


class SnifferSpec:
    """
    Where to install the sniffer and which argument to capture.

    Attributes:
        receiver_path: Dotted global path of the object owning the method
        method_name: Name of the method to intercept
        capture_index: Positional argument resolved as the captured value
    """

    def __init__(self, receiver_path: str, method_name: str, capture_index: int = 0):
        if not method_name or not isinstance(method_name, str):
            raise ValueError(f"Invalid method name: {method_name!r}")
        if capture_index < 0:
            raise ValueError(f"capture_index must be >= 0, got {capture_index}")

        self.receiver_path = check_object_path(receiver_path)
        self.method_name = method_name
        self.capture_index = capture_index

    def _slots(self) -> dict:
        return {
            "add_sniffer": ADD_SNIFFER_SOURCE.strip(),
            "receiver": self.receiver_path,
            "method": json.dumps(self.method_name),
            "index": self.capture_index,
        }

    def __repr__(self):
        return (
            f"SnifferSpec(receiver_path={self.receiver_path!r}, "
            f"method_name={self.method_name!r}, capture_index={self.capture_index})"
        )


def build_sniff_expression(spec: SnifferSpec) -> str:
    """Expression that installs the sniffer and evaluates to the pending capture."""
    return SNIFF_TEMPLATE % spec._slots()


def build_arm_expression(spec: SnifferSpec, slot: str = DEFAULT_SLOT) -> str:
    """Expression that installs the sniffer now and parks the capture on ``globalThis[slot]``."""
    return ARM_TEMPLATE % dict(spec._slots(), slot=json.dumps(slot))


def build_collect_expression(slot: str = DEFAULT_SLOT) -> str:
    """Expression that evaluates to the capture parked by build_arm_expression."""
    return COLLECT_TEMPLATE % {"slot": json.dumps(slot)}


class Sniffer:
    """
    Installs a sniffer through a RemoteRuntime and awaits what it captures.

    capture() installs and awaits in a single submission, so it must be
    called once the triggered operation is already running. arm() followed
    by collect() installs first and awaits later.
    """

    def __init__(self, runtime: RemoteRuntime, spec: SnifferSpec, slot: str = DEFAULT_SLOT):
        self.runtime = runtime
        self.spec = spec
        self.slot = slot

    async def capture(self, timeout: Optional[float] = None) -> EvaluationResponse:
        """
        Install the sniffer and wait for the intercepted call.

        Args:
            timeout: Seconds to wait for the call, None waits indefinitely

        Returns:
            EvaluationResponse carrying the captured value by value

        Raises:
            SnifferInstallError: If the method could not be overridden
        """
        logger.info(f"Waiting for {self.spec.receiver_path}.{self.spec.method_name}")
        response = await self.runtime.send_command(
            build_sniff_expression(self.spec),
            await_promise=True,
            return_by_value=True,
            timeout=timeout,
        )
        # The pending promise only rejects when installation throws.
        self._raise_for_install(response)
        return response

    async def arm(self) -> None:
        """
        Install the sniffer without waiting.

        Raises:
            SnifferInstallError: If the method could not be overridden
        """
        response = await self.runtime.send_command(build_arm_expression(self.spec, self.slot))
        self._raise_for_install(response)
        logger.info(f"Sniffer armed on {self.spec.receiver_path}.{self.spec.method_name}")

    async def collect(self, timeout: Optional[float] = None) -> EvaluationResponse:
        """
        Wait for the value captured by a previously armed sniffer.

        Raises:
            SnifferInstallError: If arm() was never evaluated for this slot
        """
        response = await self.runtime.send_command(
            build_collect_expression(self.slot),
            await_promise=True,
            return_by_value=True,
            timeout=timeout,
        )
        self._raise_for_install(response)
        return response

    def _raise_for_install(self, response: EvaluationResponse) -> None:
        if not response.failed:
            return

        message = response.exception_message
        method_name = self.spec.method_name
        details = {"receiver": self.spec.receiver_path, "method": method_name}
        if OVERRIDE_ERROR_PREFIX in message:
            raise SnifferOverrideError(message, method_name=method_name, details=details)
        raise SnifferInstallError(
            f"Failed to install sniffer: {message}",
            method_name=method_name,
            details=details,
        )
