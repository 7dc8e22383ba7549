from .mocks import MockCall, MockTransport, RecordingToken, precheck, receipt_response
from .factories import (
    OPERATOR_ID,
    VALID_START,
    mk_ed25519_key,
    mk_ecdsa_key,
    mk_network,
    mk_client,
    mk_transaction_id,
    mk_transfer,
    decode_submitted_body,
)

__all__ = [
    "MockCall",
    "MockTransport",
    "RecordingToken",
    "precheck",
    "receipt_response",
    "OPERATOR_ID",
    "VALID_START",
    "mk_ed25519_key",
    "mk_ecdsa_key",
    "mk_network",
    "mk_client",
    "mk_transaction_id",
    "mk_transfer",
    "decode_submitted_body",
]
