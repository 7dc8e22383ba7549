"""
Protobuf Writer

Implements the protobuf wire format for the HAPI messages the SDK sends.
Fields are written in the order the caller emits them; message encoders in
this package always emit in ascending field-number order and skip proto3
default values, which makes the output canonical and deterministic.
"""

from typing import List, Optional

WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_LENGTH_DELIMITED = 2
WIRE_FIXED32 = 5

_UINT64_MASK = 0xFFFFFFFFFFFFFFFF


def zigzag_encode(v: int) -> int:
    """Map a signed 64-bit integer onto an unsigned one (sint64 encoding)."""
    return ((v << 1) ^ (v >> 63)) & _UINT64_MASK


class ProtoWriter:
    """
    Protobuf wire-format writer.

    Primitive methods (u8, uvarint, bytes) write raw data; field methods
    write a tag followed by the value and omit proto3 defaults.
    """

    def __init__(self):
        """Initialize writer with empty byte buffer."""
        self._bb: List[int] = []

    def u8(self, v: int) -> None:
        """Write one raw byte."""
        self._bb.append(v & 0xFF)

    def bytes(self, v: bytes) -> None:
        """Write raw bytes without length prefix."""
        self._bb.extend(v)

    def uvarint(self, v: int) -> None:
        """
        Write unsigned varint in ULEB128 format.

        Negative values are written as their 64-bit two's complement, which
        is how protobuf encodes negative int32/int64 fields.

        Args:
            v: Integer value to encode as varint
        """
        x = v & _UINT64_MASK
        while x >= 0x80:
            self.u8((x & 0x7F) | 0x80)
            x >>= 7
        self.u8(x)

    def tag(self, field_number: int, wire_type: int) -> None:
        """Write a field key."""
        self.uvarint((field_number << 3) | wire_type)

    def len_prefixed_bytes(self, v: bytes) -> None:
        """Write bytes with a uvarint length prefix."""
        self.uvarint(len(v))
        self.bytes(v)

    # Field writers

    def varint_field(self, field_number: int, value: int) -> None:
        """Write an int32/int64/uint64/enum field, skipping zero."""
        if value:
            self.tag(field_number, WIRE_VARINT)
            self.uvarint(value)

    def sint64_field(self, field_number: int, value: int) -> None:
        """Write a zigzag-encoded sint64 field, skipping zero."""
        if value:
            self.tag(field_number, WIRE_VARINT)
            self.uvarint(zigzag_encode(value))

    def bool_field(self, field_number: int, value: bool) -> None:
        """Write a bool field, skipping False."""
        if value:
            self.tag(field_number, WIRE_VARINT)
            self.u8(1)

    def bytes_field(self, field_number: int, value: Optional[bytes]) -> None:
        """Write a bytes field, skipping None and empty values."""
        if value:
            self.tag(field_number, WIRE_LENGTH_DELIMITED)
            self.len_prefixed_bytes(value)

    def string_field(self, field_number: int, value: Optional[str]) -> None:
        """Write a UTF-8 string field, skipping None and empty strings."""
        if value:
            self.bytes_field(field_number, value.encode("utf-8"))

    def message_field(self, field_number: int, encoded: Optional[bytes]) -> None:
        """
        Write an embedded message field.

        Unlike scalar fields, a present-but-empty message is still written:
        message presence is significant in proto3.

        Args:
            field_number: Field number
            encoded: Encoded sub-message, or None if the field is unset
        """
        if encoded is not None:
            self.tag(field_number, WIRE_LENGTH_DELIMITED)
            self.len_prefixed_bytes(encoded)

    def to_bytes(self) -> bytes:
        """Return accumulated bytes as immutable bytes object."""
        return bytes(self._bb)
