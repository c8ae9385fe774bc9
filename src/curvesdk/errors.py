"""
Error taxonomy for the curve SDK.

Every failure is surfaced to the caller with its diagnostic context; nothing
here is retried or recovered locally.
"""

import json
from typing import Any, List, Optional, Sequence


class CurveSdkError(Exception):
    """Base class for all SDK errors."""
    pass


class AddressDerivationFailure(CurveSdkError):
    """Raised when no valid program-derived address exists for the seeds."""
    pass


class SchemaMismatch(CurveSdkError):
    """Raised when an instruction cannot be built against its declared schema."""
    pass


class DecodeFailure(CurveSdkError):
    """Raised when a payload does not match its declared binary layout."""
    pass


class AccountNotFound(CurveSdkError):
    """Raised when a state account is fetched but does not exist on chain."""

    def __init__(self, address: Any):
        super().__init__(f"Account not found: {address}")
        self.address = address


class RpcError(CurveSdkError):
    """Raised when the JSON-RPC endpoint answers with an error object."""

    def __init__(self, error: Any):
        super().__init__(f"RPC error: {error}")
        self.error = error


class SimulationError(CurveSdkError):
    """
    The remote program rejected a simulated instruction.

    Attributes:
        detail: Text after the ``Error Message: `` marker, or the raw error
        logs: Full simulation log for diagnostics
        error: Raw error descriptor returned by the node
        program_error: Matching named program error, when the code is known
    """

    def __init__(
        self,
        detail: str,
        logs: Optional[Sequence[str]] = None,
        error: Any = None,
        program_error: Any = None,
    ):
        super().__init__(detail)
        self.detail = detail
        self.logs: List[str] = list(logs or [])
        self.error = error
        self.program_error = program_error

    @property
    def custom_code(self) -> Optional[int]:
        """Custom program error code carried by the raw error, if any."""
        return extract_custom_code(self.error)


def extract_custom_code(error: Any) -> Optional[int]:
    """Pull the custom code out of ``{"InstructionError": [i, {"Custom": n}]}``."""
    if not isinstance(error, dict):
        return None
    ix_error = error.get("InstructionError")
    if not isinstance(ix_error, (list, tuple)) or len(ix_error) != 2:
        return None
    reason = ix_error[1]
    if isinstance(reason, dict) and isinstance(reason.get("Custom"), int):
        return reason["Custom"]
    return None


def describe_error(error: Any) -> str:
    """Stable textual form of a raw node error."""
    if isinstance(error, str):
        return error
    return json.dumps(error, sort_keys=True)
