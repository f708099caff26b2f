"""Operation results, error codes and strict inputs.

The catalogue itself lives in :mod:`consulthive.operations.catalogue`.
"""

from consulthive.operations.results import (
    ErrorCode,
    OperationError,
    OperationResult,
    Page,
    fail,
    ok,
)

__all__ = ["ErrorCode", "OperationError", "OperationResult", "Page", "fail", "ok"]
