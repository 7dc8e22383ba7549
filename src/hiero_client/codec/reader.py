"""
Protobuf Reader

Decodes protobuf wire data into (field number, wire type, value) triples.
Message decoders in this package collect the fields they know and ignore
the rest, matching protobuf's forward-compatibility rules.
"""

import builtins
import struct
from collections import defaultdict
from typing import Dict, Iterator, List, Tuple, Union

from ..runtime.errors import CodecError
from .writer import WIRE_VARINT, WIRE_FIXED64, WIRE_LENGTH_DELIMITED, WIRE_FIXED32

FieldValue = Union[int, builtins.bytes]


def zigzag_decode(v: int) -> int:
    """Inverse of zigzag_encode."""
    return (v >> 1) ^ -(v & 1)


def to_int64(v: int) -> int:
    """Interpret an unsigned 64-bit varint as a signed int64."""
    return v - (1 << 64) if v >= (1 << 63) else v


def to_int32(v: int) -> int:
    """Interpret a varint as a signed int32."""
    v &= 0xFFFFFFFF
    return v - (1 << 32) if v >= (1 << 31) else v


class ProtoReader:
    """
    Protobuf wire-format reader over a byte buffer.
    """

    def __init__(self, buf: builtins.bytes):
        """
        Initialize reader with byte buffer.

        Args:
            buf: Byte buffer to read from
        """
        self._buf = buf
        self._off = 0

    @property
    def eof(self) -> bool:
        """True when the whole buffer has been consumed."""
        return self._off >= len(self._buf)

    def u8(self) -> int:
        """Read one raw byte."""
        if self._off >= len(self._buf):
            raise CodecError("Buffer overflow: attempting to read beyond end")
        val = self._buf[self._off]
        self._off += 1
        return val

    def uvarint(self) -> int:
        """
        Read unsigned varint in ULEB128 format.

        Returns:
            Decoded unsigned integer value
        """
        x = 0
        s = 0
        while True:
            b = self.u8()
            if b < 0x80:
                x |= b << s
                break
            x |= (b & 0x7F) << s
            s += 7
            if s >= 70:
                raise CodecError("Varint is too long")
        return x

    def bytes(self, n: int) -> builtins.bytes:
        """Read n raw bytes."""
        if self._off + n > len(self._buf):
            raise CodecError(f"Buffer overflow: attempting to read {n} bytes beyond end")
        out = builtins.bytes(self._buf[self._off : self._off + n])
        self._off += n
        return out

    def len_prefixed_bytes(self) -> builtins.bytes:
        """Read bytes with a uvarint length prefix."""
        n = self.uvarint()
        return self.bytes(n)

    def fields(self) -> Iterator[Tuple[int, int, FieldValue]]:
        """
        Iterate over the remaining fields.

        Yields:
            (field_number, wire_type, value) where value is an int for
            varint and fixed fields and bytes for length-delimited fields
        """
        while not self.eof:
            key = self.uvarint()
            field_number, wire_type = key >> 3, key & 0x07
            if field_number == 0:
                raise CodecError("Invalid field number 0")
            if wire_type == WIRE_VARINT:
                value: FieldValue = self.uvarint()
            elif wire_type == WIRE_LENGTH_DELIMITED:
                value = self.len_prefixed_bytes()
            elif wire_type == WIRE_FIXED64:
                value = struct.unpack("<Q", self.bytes(8))[0]
            elif wire_type == WIRE_FIXED32:
                value = struct.unpack("<I", self.bytes(4))[0]
            else:
                raise CodecError(f"Unsupported wire type {wire_type} for field {field_number}")
            yield field_number, wire_type, value


def decode_fields(data: builtins.bytes) -> Dict[int, List[FieldValue]]:
    """
    Decode a message into a map of field number to the list of its values.

    Repeated fields keep their wire order; for singular fields the last
    value wins, as in protobuf.
    """
    out: Dict[int, List[FieldValue]] = defaultdict(list)
    for field_number, _, value in ProtoReader(data).fields():
        out[field_number].append(value)
    return out


def last(fields: Dict[int, List[FieldValue]], field_number: int, default=None):
    """Return the last value of a singular field, or default."""
    values = fields.get(field_number)
    return values[-1] if values else default
