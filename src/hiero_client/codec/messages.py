"""
HAPI envelope messages.

Encoders/decoders for the protobuf messages that wrap every transaction and
query: the body envelope, signature maps, signed transactions, transaction
lists and the response headers. Per-kind body payloads live with their
transaction classes.

Field numbers follow the public HAPI schema (transaction.proto,
transaction_contents.proto, basic_types.proto, query*.proto, response*.proto).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional

from ..runtime.errors import CodecError
from ..runtime.ids import AccountId, TransactionId
from ..runtime.status import ResponseCode
from .reader import ProtoReader, decode_fields, last, to_int64
from .writer import ProtoWriter, WIRE_LENGTH_DELIMITED


class SignatureType(IntEnum):
    """SignaturePair oneof field numbers."""

    CONTRACT = 2
    ED25519 = 3
    RSA_3072 = 4
    ECDSA_384 = 5
    ECDSA_SECP256K1 = 6


@dataclass(frozen=True)
class SignaturePair:
    """One (public key prefix, signature) entry of a SignatureMap."""

    pub_key_prefix: bytes
    signature: bytes
    sig_type: SignatureType = SignatureType.ED25519

    def encode(self) -> bytes:
        w = ProtoWriter()
        w.bytes_field(1, self.pub_key_prefix)
        # The oneof member is written even when empty so its type survives.
        w.tag(int(self.sig_type), WIRE_LENGTH_DELIMITED)
        w.len_prefixed_bytes(self.signature)
        return w.to_bytes()

    @classmethod
    def decode(cls, data: bytes) -> SignaturePair:
        prefix = b""
        signature = b""
        sig_type = SignatureType.ED25519
        for field_number, _, value in ProtoReader(data).fields():
            if field_number == 1:
                prefix = value
            elif field_number in SignatureType._value2member_map_:
                sig_type = SignatureType(field_number)
                signature = value
        return cls(prefix, signature, sig_type)


@dataclass
class SignatureMap:
    """Ordered list of signature pairs attached to one body."""

    pairs: List[SignaturePair] = field(default_factory=list)

    def encode(self) -> bytes:
        w = ProtoWriter()
        for pair in self.pairs:
            w.message_field(1, pair.encode())
        return w.to_bytes()

    @classmethod
    def decode(cls, data: bytes) -> SignatureMap:
        fields = decode_fields(data)
        return cls([SignaturePair.decode(v) for v in fields.get(1, [])])


@dataclass
class SignedTransaction:
    """Body bytes plus the signatures over exactly those bytes."""

    body_bytes: bytes
    sig_map: SignatureMap = field(default_factory=SignatureMap)

    def encode(self) -> bytes:
        w = ProtoWriter()
        w.bytes_field(1, self.body_bytes)
        w.message_field(2, self.sig_map.encode())
        return w.to_bytes()

    @classmethod
    def decode(cls, data: bytes) -> SignedTransaction:
        fields = decode_fields(data)
        sig_map = last(fields, 2)
        return cls(last(fields, 1, b""), SignatureMap.decode(sig_map) if sig_map is not None else SignatureMap())


def encode_transaction(signed_transaction_bytes: bytes) -> bytes:
    """Wrap signed transaction bytes in a `Transaction` message."""
    w = ProtoWriter()
    w.bytes_field(5, signed_transaction_bytes)
    return w.to_bytes()


def decode_transaction(data: bytes) -> bytes:
    """
    Extract signedTransactionBytes from a `Transaction` message.

    Raises:
        CodecError: If the message only uses the deprecated body fields
    """
    fields = decode_fields(data)
    signed = last(fields, 5)
    if signed is None:
        raise CodecError("Transaction message has no signedTransactionBytes")
    return signed


def encode_transaction_list(transactions: List[bytes]) -> bytes:
    """Encode a `TransactionList` from already-encoded `Transaction` messages."""
    w = ProtoWriter()
    for tx in transactions:
        w.message_field(1, tx)
    return w.to_bytes()


def decode_transaction_list(data: bytes) -> List[bytes]:
    """Decode a `TransactionList` into its encoded `Transaction` messages."""
    return list(decode_fields(data).get(1, []))


@dataclass
class TransactionBody:
    """
    The common TransactionBody envelope.

    `data_field` is the oneof field number selecting the transaction kind;
    `data` is that kind's already-encoded body message.
    """

    transaction_id: Optional[TransactionId] = None
    node_account_id: Optional[AccountId] = None
    transaction_fee: int = 0
    valid_duration: int = 0
    memo: str = ""
    data_field: int = 0
    data: bytes = b""

    def encode(self) -> bytes:
        w = ProtoWriter()
        w.message_field(1, self.transaction_id.encode() if self.transaction_id else None)
        w.message_field(2, self.node_account_id.encode() if self.node_account_id else None)
        w.varint_field(3, self.transaction_fee)
        w.message_field(4, encode_duration(self.valid_duration))
        w.string_field(6, self.memo)
        if self.data_field:
            w.message_field(self.data_field, self.data)
        return w.to_bytes()

    @classmethod
    def decode(cls, data: bytes) -> TransactionBody:
        body = cls()
        for field_number, _, value in ProtoReader(data).fields():
            if field_number == 1:
                body.transaction_id = TransactionId.decode(value)
            elif field_number == 2:
                body.node_account_id = AccountId.decode(value)
            elif field_number == 3:
                body.transaction_fee = value
            elif field_number == 4:
                body.valid_duration = decode_duration(value)
            elif field_number == 5:
                continue
            elif field_number == 6:
                body.memo = value.decode("utf-8")
            elif isinstance(value, bytes):
                body.data_field = field_number
                body.data = value
        return body


def encode_duration(seconds: int) -> bytes:
    w = ProtoWriter()
    w.varint_field(1, seconds)
    return w.to_bytes()


def decode_duration(data: bytes) -> int:
    return to_int64(last(decode_fields(data), 1, 0))


@dataclass
class PrecheckResponse:
    """The HAPI `TransactionResponse` message: precheck answer to a submission."""

    precheck_code: ResponseCode = ResponseCode.OK
    cost: int = 0

    @classmethod
    def decode(cls, data: bytes) -> PrecheckResponse:
        fields = decode_fields(data)
        return cls(ResponseCode(last(fields, 1, 0)), last(fields, 2, 0))

    def encode(self) -> bytes:
        w = ProtoWriter()
        w.varint_field(1, int(self.precheck_code))
        w.varint_field(2, self.cost)
        return w.to_bytes()


class ResponseType(IntEnum):
    ANSWER_ONLY = 0
    ANSWER_STATE_PROOF = 1
    COST_ANSWER = 2
    COST_ANSWER_STATE_PROOF = 3


def encode_query_header(payment: Optional[bytes] = None,
                        response_type: ResponseType = ResponseType.ANSWER_ONLY) -> bytes:
    w = ProtoWriter()
    w.message_field(1, payment)
    w.varint_field(2, int(response_type))
    return w.to_bytes()


@dataclass
class ResponseHeader:
    precheck_code: ResponseCode = ResponseCode.OK
    response_type: ResponseType = ResponseType.ANSWER_ONLY
    cost: int = 0

    @classmethod
    def decode(cls, data: bytes) -> ResponseHeader:
        fields = decode_fields(data)
        return cls(ResponseCode(last(fields, 1, 0)), ResponseType(last(fields, 2, 0)), last(fields, 3, 0))

    def encode(self) -> bytes:
        w = ProtoWriter()
        w.varint_field(1, int(self.precheck_code))
        w.varint_field(2, int(self.response_type))
        w.varint_field(3, self.cost)
        return w.to_bytes()


__all__ = [
    "SignatureType",
    "SignaturePair",
    "SignatureMap",
    "SignedTransaction",
    "encode_transaction",
    "decode_transaction",
    "encode_transaction_list",
    "decode_transaction_list",
    "TransactionBody",
    "encode_duration",
    "decode_duration",
    "PrecheckResponse",
    "ResponseType",
    "encode_query_header",
    "ResponseHeader",
]
