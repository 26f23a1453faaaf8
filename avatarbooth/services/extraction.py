"""
Result extraction: picks the result image out of a succeeded job's output.

The service returns either one URL or a list of URLs. Which element is the
result depends on the deployment, so the rule is always chosen explicitly.
"""

from enum import Enum
from typing import Any, Sequence

from avatarbooth.services.errors import ResultExtractionError


class ResultSelection(str, Enum):
    FIRST = "first"
    LAST = "last"
    PASSTHROUGH = "passthrough"  # scalar output only


def extract_result(output: Any, selection: ResultSelection) -> str:
    """
    Return the designated result reference.

    Raises:
        ResultExtractionError: no output, empty list, list under
            ``passthrough``, or a non-string reference
    """
    selection = ResultSelection(selection)

    if output is None:
        raise ResultExtractionError()

    if isinstance(output, (list, tuple)):
        result = _select(output, selection)
    else:
        result = output

    if not isinstance(result, str) or not result:
        raise ResultExtractionError(f"Unexpected result reference: {result!r}")
    return result


def _select(output: Sequence[Any], selection: ResultSelection) -> Any:
    if not output:
        raise ResultExtractionError()
    if selection == ResultSelection.FIRST:
        return output[0]
    if selection == ResultSelection.LAST:
        return output[-1]
    raise ResultExtractionError(
        f"Expected a single result but got {len(output)}; choose 'first' or 'last' selection"
    )
