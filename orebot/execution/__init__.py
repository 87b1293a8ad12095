from .direct import DirectChannel, build_transaction, classify_error, padded_unit_limit
from .manager import DeployResult, SubmissionPipeline
from .relay import ALREADY_PROCESSED, RELAY_ENDPOINTS, TIP_RECIPIENTS, RelayChannel, interpret_response

__all__ = [
    "DirectChannel",
    "build_transaction",
    "classify_error",
    "padded_unit_limit",
    "DeployResult",
    "SubmissionPipeline",
    "ALREADY_PROCESSED",
    "RELAY_ENDPOINTS",
    "TIP_RECIPIENTS",
    "RelayChannel",
    "interpret_response",
]
