"""
Response status codes and their retry classification.

ResponseCode mirrors the HAPI ResponseCodeEnum for the statuses the SDK
inspects. Values the SDK does not know still decode, as pseudo-members
named UNRECOGNIZED_<n>, so a newer server never breaks response parsing.
"""

from __future__ import annotations
from enum import Enum, IntEnum


class ResponseCode(IntEnum):
    """HAPI ResponseCodeEnum (subset)."""

    OK = 0
    INVALID_TRANSACTION = 1
    PAYER_ACCOUNT_NOT_FOUND = 2
    INVALID_NODE_ACCOUNT = 3
    TRANSACTION_EXPIRED = 4
    INVALID_TRANSACTION_START = 5
    INVALID_TRANSACTION_DURATION = 6
    INVALID_SIGNATURE = 7
    MEMO_TOO_LONG = 8
    INSUFFICIENT_TX_FEE = 9
    INSUFFICIENT_PAYER_BALANCE = 10
    DUPLICATE_TRANSACTION = 11
    BUSY = 12
    NOT_SUPPORTED = 13
    INVALID_FILE_ID = 14
    INVALID_ACCOUNT_ID = 15
    INVALID_CONTRACT_ID = 16
    INVALID_TRANSACTION_ID = 17
    RECEIPT_NOT_FOUND = 18
    RECORD_NOT_FOUND = 19
    INVALID_SOLIDITY_ID = 20
    UNKNOWN = 21
    SUCCESS = 22
    FAIL_INVALID = 23
    FAIL_FEE = 24
    FAIL_BALANCE = 25
    KEY_REQUIRED = 26
    BAD_ENCODING = 27
    INSUFFICIENT_ACCOUNT_BALANCE = 28
    INVALID_SOLIDITY_ADDRESS = 29
    INSUFFICIENT_GAS = 30
    INVALID_RECEIVING_NODE_ACCOUNT = 35
    MISSING_QUERY_HEADER = 36
    INVALID_KEY_ENCODING = 38
    INVALID_QUERY_HEADER = 41
    INVALID_FEE_SUBMITTED = 42
    INVALID_PAYER_SIGNATURE = 43
    KEY_NOT_PROVIDED = 44
    FILE_CONTENT_EMPTY = 47
    INVALID_ACCOUNT_AMOUNTS = 48
    EMPTY_TRANSACTION_BODY = 49
    INVALID_TRANSACTION_BODY = 50
    TRANSACTION_OVERSIZE = 64
    PLATFORM_NOT_ACTIVE = 67
    KEY_PREFIX_MISMATCH = 68
    PLATFORM_TRANSACTION_NOT_CREATED = 69
    INVALID_PAYER_ACCOUNT_ID = 71
    ACCOUNT_DELETED = 72
    FILE_DELETED = 73
    ACCOUNT_REPEATED_IN_ACCOUNT_AMOUNTS = 74
    INVALID_TOPIC_ID = 150
    INVALID_SUBMIT_KEY = 156
    UNAUTHORIZED = 157
    INVALID_TOPIC_MESSAGE = 158
    TOPIC_EXPIRED = 162
    INVALID_CHUNK_NUMBER = 163
    INVALID_CHUNK_TRANSACTION_ID = 164
    THROTTLED_AT_CONSENSUS = 366

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, int):
            return None
        member = int.__new__(cls, value)
        member._name_ = f"UNRECOGNIZED_{value}"
        member._value_ = value
        return member


class ExecutionState(Enum):
    """What the execution harness should do with a response."""

    OK = "ok"
    RETRY_SAME_NODE = "retry_same_node"
    RETRY_DIFFERENT_NODE = "retry_different_node"
    TERMINAL = "terminal"


RETRY_SAME_NODE_STATUSES = frozenset({
    ResponseCode.BUSY,
    ResponseCode.PLATFORM_TRANSACTION_NOT_CREATED,
    ResponseCode.PLATFORM_NOT_ACTIVE,
    ResponseCode.THROTTLED_AT_CONSENSUS,
})

RETRY_DIFFERENT_NODE_STATUSES = frozenset({
    ResponseCode.INVALID_NODE_ACCOUNT,
})

# Statuses a receipt query keeps polling through.
RECEIPT_PENDING_STATUSES = frozenset({
    ResponseCode.BUSY,
    ResponseCode.UNKNOWN,
    ResponseCode.OK,
    ResponseCode.RECEIPT_NOT_FOUND,
    ResponseCode.RECORD_NOT_FOUND,
})


def classify_precheck(status: ResponseCode) -> ExecutionState:
    """
    Classify a precheck status returned for a submission.

    Args:
        status: Precheck status from the node

    Returns:
        The ExecutionState the harness should act on
    """
    if status == ResponseCode.OK:
        return ExecutionState.OK
    if status in RETRY_SAME_NODE_STATUSES:
        return ExecutionState.RETRY_SAME_NODE
    if status in RETRY_DIFFERENT_NODE_STATUSES:
        return ExecutionState.RETRY_DIFFERENT_NODE
    return ExecutionState.TERMINAL


def classify_receipt(precheck: ResponseCode, receipt_status: ResponseCode) -> ExecutionState:
    """
    Classify a receipt query answer.

    The precheck code comes from the response header; the receipt status is
    only meaningful when the precheck code is OK.
    """
    if precheck in (ResponseCode.BUSY, ResponseCode.UNKNOWN, ResponseCode.RECEIPT_NOT_FOUND,
                    ResponseCode.RECORD_NOT_FOUND, ResponseCode.PLATFORM_NOT_ACTIVE):
        return ExecutionState.RETRY_SAME_NODE
    if precheck in RETRY_DIFFERENT_NODE_STATUSES:
        return ExecutionState.RETRY_DIFFERENT_NODE
    if precheck != ResponseCode.OK:
        return ExecutionState.TERMINAL
    if receipt_status in RECEIPT_PENDING_STATUSES:
        return ExecutionState.RETRY_SAME_NODE
    return ExecutionState.OK


__all__ = [
    "ResponseCode",
    "ExecutionState",
    "RETRY_SAME_NODE_STATUSES",
    "RETRY_DIFFERENT_NODE_STATUSES",
    "RECEIPT_PENDING_STATUSES",
    "classify_precheck",
    "classify_receipt",
]
