"""
Protobuf wire codec for the HAPI messages the SDK sends and receives.

Envelope messages live in `hiero_client.codec.messages`.
"""

from .writer import ProtoWriter, zigzag_encode
from .reader import ProtoReader, decode_fields, last, zigzag_decode, to_int64, to_int32

__all__ = [
    "ProtoWriter",
    "ProtoReader",
    "decode_fields",
    "last",
    "zigzag_encode",
    "zigzag_decode",
    "to_int64",
    "to_int32",
]
