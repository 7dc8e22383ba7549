"""
Hiero Python SDK

Client for Hiero/Hedera ledgers: build, sign and submit transactions over
gRPC with node health tracking, retries and chunking, resolve receipts, and
estimate fees through the mirror node.
"""

# Error model and identifiers
from .runtime.errors import *
from .runtime.status import ResponseCode, ExecutionState
from .runtime.cancellation import CancellationToken
from .runtime.ids import (
    AccountId,
    FileId,
    TopicId,
    ContractId,
    TokenId,
    ScheduleId,
    Timestamp,
    TransactionId,
)

# Keys
from .crypto import KeyType, PrivateKey, PublicKey

# Client and network
from .client import Client, ClientConfig, Operator, set_default_client, get_default_client
from .network import Node, NodeRegistry, NetworkUpdater, GrpcTransport, Transport

# Mirror node
from .mirror import FeeEstimateMode, FeeEstimateQuery, FeeEstimateResponse

# Transactions
from .tx import *

__version__ = "0.1.0"
__all__ = [
    # Errors
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

    # Status
    "ResponseCode",
    "ExecutionState",
    "CancellationToken",

    # Identifiers
    "AccountId",
    "FileId",
    "TopicId",
    "ContractId",
    "TokenId",
    "ScheduleId",
    "Timestamp",
    "TransactionId",

    # Keys
    "KeyType",
    "PrivateKey",
    "PublicKey",

    # Client
    "Client",
    "ClientConfig",
    "Operator",
    "set_default_client",
    "get_default_client",
    "Node",
    "NodeRegistry",
    "NetworkUpdater",
    "GrpcTransport",
    "Transport",

    # Mirror
    "FeeEstimateMode",
    "FeeEstimateQuery",
    "FeeEstimateResponse",

    # Transactions
    "Executable",
    "Executor",
    "TransactionResponse",
    "TransactionReceipt",
    "TransactionReceiptQuery",
    "Transaction",
    "ChunkedTransaction",
    "TransferTransaction",
    "AccountAmount",
    "AccountCreateTransaction",
    "TopicCreateTransaction",
    "TopicMessageSubmitTransaction",
    "FileAppendTransaction",
]
