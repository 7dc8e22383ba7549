"""
Entity and transaction identifiers.

Entity ids are `shard.realm.num` triples; a TransactionId pairs the payer
account with a nanosecond-precision valid-start timestamp. All identifiers
are immutable, hashable, ordered, and encode to their HAPI protobuf form.
"""

from __future__ import annotations
import re
import time
from dataclasses import dataclass
from typing import ClassVar, Optional, Type, TypeVar

from ..codec.reader import decode_fields, last, to_int64, to_int32
from ..codec.writer import ProtoWriter
from .errors import InvalidIdentifierError

NANOS_PER_SECOND = 1_000_000_000

_ENTITY_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")
_TX_ID_RE = re.compile(r"^(\d+\.\d+\.\d+)@(\d+)\.(\d{1,9})(\?scheduled)?(?:/(\d+))?$")

E = TypeVar("E", bound="EntityId")


@dataclass(frozen=True, order=True)
class EntityId:
    """
    A `shard.realm.num` ledger entity identifier.

    Subclasses only differ in the field number their entity number is
    written at, which is 3 for every HAPI id message the SDK uses.
    """

    shard: int = 0
    realm: int = 0
    num: int = 0

    NUM_FIELD: ClassVar[int] = 3

    def __post_init__(self):
        for name in ("shard", "realm", "num"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise InvalidIdentifierError(f"{type(self).__name__}.{name} must be a non-negative int, got {value!r}")

    @classmethod
    def from_string(cls: Type[E], text: str) -> E:
        """
        Parse `shard.realm.num`.

        Raises:
            InvalidIdentifierError: If the text is not three dotted integers
        """
        if isinstance(text, cls):
            return text
        match = _ENTITY_RE.match(str(text).strip())
        if not match:
            raise InvalidIdentifierError(f"Invalid {cls.__name__} format: {text!r}")
        return cls(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    @classmethod
    def of(cls: Type[E], value) -> E:
        """Coerce a string, int (num in 0.0) or instance into this id type."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(0, 0, value)
        if isinstance(value, str):
            return cls.from_string(value)
        raise InvalidIdentifierError(f"Cannot convert {type(value).__name__} to {cls.__name__}")

    def encode(self) -> bytes:
        """Encode as the matching HAPI id message."""
        w = ProtoWriter()
        w.varint_field(1, self.shard)
        w.varint_field(2, self.realm)
        w.varint_field(self.NUM_FIELD, self.num)
        return w.to_bytes()

    @classmethod
    def decode(cls: Type[E], data: bytes) -> E:
        """Decode from the matching HAPI id message."""
        fields = decode_fields(data)
        return cls(
            to_int64(last(fields, 1, 0)),
            to_int64(last(fields, 2, 0)),
            to_int64(last(fields, cls.NUM_FIELD, 0)),
        )

    def __str__(self) -> str:
        return f"{self.shard}.{self.realm}.{self.num}"


class AccountId(EntityId):
    """Account identifier (payer, node account, transfer party)."""


class FileId(EntityId):
    """File identifier."""


class TopicId(EntityId):
    """Consensus topic identifier."""


class ContractId(EntityId):
    """Smart contract identifier."""


class TokenId(EntityId):
    """Token identifier."""


class ScheduleId(EntityId):
    """Schedule identifier."""


@dataclass(frozen=True, order=True)
class Timestamp:
    """Seconds plus nanoseconds since the Unix epoch."""

    seconds: int = 0
    nanos: int = 0

    def __post_init__(self):
        if not 0 <= self.nanos < NANOS_PER_SECOND:
            raise InvalidIdentifierError(f"Timestamp nanos out of range: {self.nanos}")

    @classmethod
    def from_nanos(cls, total: int) -> Timestamp:
        seconds, nanos = divmod(total, NANOS_PER_SECOND)
        return cls(seconds, nanos)

    @classmethod
    def now(cls) -> Timestamp:
        return cls.from_nanos(time.time_ns())

    def to_nanos(self) -> int:
        return self.seconds * NANOS_PER_SECOND + self.nanos

    def plus_nanos(self, n: int) -> Timestamp:
        return Timestamp.from_nanos(self.to_nanos() + n)

    def encode(self) -> bytes:
        w = ProtoWriter()
        w.varint_field(1, self.seconds)
        w.varint_field(2, self.nanos)
        return w.to_bytes()

    @classmethod
    def decode(cls, data: bytes) -> Timestamp:
        fields = decode_fields(data)
        return cls(to_int64(last(fields, 1, 0)), to_int32(last(fields, 2, 0)))

    def __str__(self) -> str:
        return f"{self.seconds}.{self.nanos:09d}"


@dataclass(frozen=True)
class TransactionId:
    """
    Identifies a transaction by payer account and valid-start time.

    Two ids are equal iff payer, valid start, scheduled flag and nonce are
    all equal.
    """

    account_id: AccountId
    valid_start: Timestamp
    scheduled: bool = False
    nonce: int = 0

    # Smallest representable valid-start increment, in nanoseconds.
    TICK: ClassVar[int] = 1

    @classmethod
    def generate(cls, account_id: AccountId, now: Optional[Timestamp] = None) -> TransactionId:
        """
        Create a fresh transaction id for a payer.

        The valid start is taken from the wall clock, so it is never in the
        future relative to the caller.
        """
        return cls(AccountId.of(account_id), now or Timestamp.now())

    @classmethod
    def from_string(cls, text: str) -> TransactionId:
        """Parse `0.0.2@1700000000.000000001[?scheduled][/nonce]`."""
        match = _TX_ID_RE.match(text.strip())
        if not match:
            raise InvalidIdentifierError(f"Invalid TransactionId format: {text!r}")
        account, seconds, nanos, scheduled, nonce = match.groups()
        return cls(
            AccountId.from_string(account),
            Timestamp(int(seconds), int(nanos.ljust(9, "0"))),
            scheduled is not None,
            int(nonce) if nonce else 0,
        )

    def plus_ticks(self, ticks: int) -> TransactionId:
        """Return the id whose valid start is `ticks` ticks later, same payer."""
        return TransactionId(self.account_id, self.valid_start.plus_nanos(ticks * self.TICK),
                             self.scheduled, self.nonce)

    def encode(self) -> bytes:
        w = ProtoWriter()
        w.message_field(1, self.valid_start.encode())
        w.message_field(2, self.account_id.encode())
        w.bool_field(3, self.scheduled)
        w.varint_field(4, self.nonce)
        return w.to_bytes()

    @classmethod
    def decode(cls, data: bytes) -> TransactionId:
        fields = decode_fields(data)
        return cls(
            AccountId.decode(last(fields, 2, b"")),
            Timestamp.decode(last(fields, 1, b"")),
            bool(last(fields, 3, 0)),
            to_int32(last(fields, 4, 0)),
        )

    def __str__(self) -> str:
        text = f"{self.account_id}@{self.valid_start}"
        if self.scheduled:
            text += "?scheduled"
        if self.nonce:
            text += f"/{self.nonce}"
        return text


__all__ = [
    "NANOS_PER_SECOND",
    "EntityId",
    "AccountId",
    "FileId",
    "TopicId",
    "ContractId",
    "TokenId",
    "ScheduleId",
    "Timestamp",
    "TransactionId",
]
