"""
Validation and handoff of the captured report.

The captured value is checked before anything touches the disk, so a failed
run never leaves a partial or empty output file behind.
"""

import json
import logging
from pathlib import Path
from typing import Any, Union

from .exceptions import EmptyResultError
from .runtime import EvaluationResponse

logger = logging.getLogger(__name__)


def extract_captured_value(response: EvaluationResponse) -> Any:
    """
    Return the captured value, or fail if there is nothing usable.

    Args:
        response: Settled capture evaluation

    Returns:
        The by-value result, unmodified

    Raises:
        EmptyResultError: If the evaluation failed or produced an empty value
    """
    if response.failed:
        raise EmptyResultError(
            "Problem sniffing report",
            details={"error": response.exception_message},
        )
    if not response.has_value or not response.value:
        raise EmptyResultError(
            "Problem sniffing report: evaluation produced no value",
            details={"result_type": response.result.get("type", "missing")},
        )
    return response.value


def write_report(value: Any, path: Union[str, Path]) -> Path:
    """
    Serialize ``value`` as compact JSON to ``path``.

    Args:
        value: Captured report
        path: Output file, parent directories are created

    Returns:
        Path of the written file
    """
    output_path = Path(path).expanduser()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        json.dumps(value, separators=(",", ":"), ensure_ascii=False), encoding="utf-8"
    )
    logger.info(f"Report written to {output_path}")
    return output_path
