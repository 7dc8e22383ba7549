"""
Hiero Error Model

This module provides the error handling framework for the Hiero Python SDK.
Every error carries a coarse ErrorCode so callers can branch on the kind of
failure (validation, precheck, consensus, transport, budget, cancellation)
without matching on concrete classes.
"""

from __future__ import annotations
from typing import Optional, Dict, Any, TYPE_CHECKING
from enum import IntEnum

if TYPE_CHECKING:
    from .status import ResponseCode
    from .ids import TransactionId


class ErrorCode(IntEnum):
    """Coarse error kinds surfaced by the SDK."""

    UNKNOWN = 1

    # Validation errors (100-199)
    VALIDATION = 100
    FROZEN = 101
    TOO_MANY_CHUNKS = 102
    CANNOT_SIGN_LARGE_CHUNKED = 103
    INVALID_IDENTIFIER = 104
    INVALID_KEY = 105
    CODEC = 106

    # Server errors (200-299)
    PRECHECK_FAILED = 200
    RECEIPT_STATUS_FAILED = 201

    # Transport errors (300-399)
    TRANSPORT = 300
    MIRROR_NODE = 301
    FEE_ESTIMATE = 302

    # Budget errors (400-499)
    TIMEOUT = 400
    NETWORK_EXHAUSTED = 401
    NO_HEALTHY_NODES = 402

    # Caller-initiated (500-599)
    CANCELLED = 500


class HieroError(Exception):
    """
    Base class for all Hiero SDK errors.

    Provides structured error information: a code, a message, optional
    details and the underlying cause.
    """

    def __init__(self, message: str, code: ErrorCode = ErrorCode.UNKNOWN,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[BaseException] = None):
        """
        Initialize a Hiero error.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [f"[{self.code.name}] {self.message}"]
        if self.details:
            parts.append(f"Details: {self.details}")
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result: Dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class ValidationError(HieroError):
    """Request construction and field validation errors."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.VALIDATION,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[BaseException] = None):
        super().__init__(message, code, details, cause)


class FrozenError(ValidationError):
    """A field setter was called on a frozen request."""

    def __init__(self, message: str = "Transaction is immutable; it has at least one signature or has been frozen",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.FROZEN, details)


class TooManyChunksError(ValidationError):
    """The payload needs more chunks than the request allows."""

    def __init__(self, required: int, allowed: int):
        super().__init__(
            f"Transaction requires {required} chunks but is only allotted {allowed}. Try using set_max_chunks()",
            ErrorCode.TOO_MANY_CHUNKS,
            {"required": required, "allowed": allowed},
        )
        self.required = required
        self.allowed = allowed


class CannotSignLargeChunkedRequestError(ValidationError):
    """Manual signatures cannot cover a payload split over several chunks."""

    def __init__(self, chunk_size: int):
        super().__init__(
            f"Cannot manually add a signature to a chunked transaction with data length greater than "
            f"{chunk_size} bytes",
            ErrorCode.CANNOT_SIGN_LARGE_CHUNKED,
            {"chunk_size": chunk_size},
        )


class InvalidIdentifierError(ValidationError):
    """An entity or transaction identifier could not be parsed."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, ErrorCode.INVALID_IDENTIFIER, cause=cause)


class InvalidKeyError(ValidationError):
    """Key material or a signature has the wrong type or size."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, ErrorCode.INVALID_KEY, cause=cause)


class CodecError(ValidationError):
    """Protobuf wire data could not be encoded or decoded."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, ErrorCode.CODEC, cause=cause)


class PrecheckError(HieroError):
    """The node rejected the submission before consensus."""

    def __init__(self, status: ResponseCode, transaction_id: Optional[TransactionId] = None):
        message = f"Precheck failed with status {status.name}"
        if transaction_id is not None:
            message += f" for transaction {transaction_id}"
        super().__init__(message, ErrorCode.PRECHECK_FAILED, {"status": status.name})
        self.status = status
        self.transaction_id = transaction_id


class ReceiptStatusError(HieroError):
    """The transaction reached consensus with a non-success status."""

    def __init__(self, status: ResponseCode, transaction_id: Optional[TransactionId] = None,
                 receipt: Any = None):
        message = f"Receipt for transaction {transaction_id} contained error status {status.name}"
        super().__init__(message, ErrorCode.RECEIPT_STATUS_FAILED, {"status": status.name})
        self.status = status
        self.transaction_id = transaction_id
        self.receipt = receipt


class TransportError(HieroError):
    """Connection, TLS or gRPC deadline failure talking to a node."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 cause: Optional[BaseException] = None):
        super().__init__(message, ErrorCode.TRANSPORT, details, cause)


class MirrorNodeError(HieroError):
    """Mirror node REST failure."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.MIRROR_NODE,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[BaseException] = None):
        super().__init__(message, code, details, cause)


class FeeEstimateError(MirrorNodeError):
    """The fee estimate endpoint returned an unusable answer."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 cause: Optional[BaseException] = None):
        super().__init__(message, ErrorCode.FEE_ESTIMATE, details, cause)


class ExecutionTimeoutError(HieroError):
    """The overall request deadline expired without a terminal outcome."""

    def __init__(self, message: str = "Request timed out",
                 last_status: Optional[ResponseCode] = None,
                 cause: Optional[BaseException] = None):
        details = {"last_status": last_status.name} if last_status is not None else None
        super().__init__(message, ErrorCode.TIMEOUT, details, cause)
        self.last_status = last_status


class NetworkExhaustedError(HieroError):
    """Every attempt was used up or no node could be tried."""

    def __init__(self, message: str, last_status: Optional[ResponseCode] = None,
                 cause: Optional[BaseException] = None):
        details = {"last_status": last_status.name} if last_status is not None else None
        super().__init__(message, ErrorCode.NETWORK_EXHAUSTED, details, cause)
        self.last_status = last_status


class NoHealthyNodesError(NetworkExhaustedError):
    """Every known node is currently in backoff."""

    def __init__(self, message: str = "All nodes are in backoff"):
        super().__init__(message)
        self.code = ErrorCode.NO_HEALTHY_NODES


class ExecutionCancelledError(HieroError):
    """The caller cancelled the execution."""

    def __init__(self, message: str = "Execution was cancelled"):
        super().__init__(message, ErrorCode.CANCELLED)


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
]
