"""
Runtime support: error model, status codes, identifiers and backoff.

Identifiers live in `hiero_client.runtime.ids`; they depend on the codec
package and are imported from there directly.
"""

from .errors import (
    ErrorCode,
    HieroError,
    ValidationError,
    FrozenError,
    TooManyChunksError,
    CannotSignLargeChunkedRequestError,
    InvalidIdentifierError,
    InvalidKeyError,
    CodecError,
    PrecheckError,
    ReceiptStatusError,
    TransportError,
    MirrorNodeError,
    FeeEstimateError,
    ExecutionTimeoutError,
    NetworkExhaustedError,
    NoHealthyNodesError,
    ExecutionCancelledError,
)
from .status import ResponseCode, ExecutionState, classify_precheck, classify_receipt
from .backoff import ExponentialBackoff
from .cancellation import CancellationToken

__all__ = [
    "ErrorCode",
    "HieroError",
    "ValidationError",
    "FrozenError",
    "TooManyChunksError",
    "CannotSignLargeChunkedRequestError",
    "InvalidIdentifierError",
    "InvalidKeyError",
    "CodecError",
    "PrecheckError",
    "ReceiptStatusError",
    "TransportError",
    "MirrorNodeError",
    "FeeEstimateError",
    "ExecutionTimeoutError",
    "NetworkExhaustedError",
    "NoHealthyNodesError",
    "ExecutionCancelledError",
    "ResponseCode",
    "ExecutionState",
    "classify_precheck",
    "classify_receipt",
    "ExponentialBackoff",
    "CancellationToken",
]
