"""
Ed25519 and ECDSA(secp256k1) keys for transaction signing.

Ed25519 signs the body bytes directly. ECDSA secp256k1 signs the Keccak-256
digest of the body bytes and produces a 64-byte r||s signature with a
low-s value; its public key is the 33-byte compressed point.

Private keys parse from raw hex (32 bytes) or from DER hex, including the
short PKCS#8 forms other Hiero SDKs print.
"""

from __future__ import annotations
import os
from enum import Enum
from typing import Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519
from cryptography.hazmat.primitives.asymmetric.utils import (
    Prehashed,
    decode_dss_signature,
    encode_dss_signature,
)

from ..codec.reader import decode_fields, last
from ..codec.writer import ProtoWriter
from ..codec.messages import SignatureType
from ..runtime.errors import InvalidKeyError
from .hashes import keccak256

SIGNATURE_LENGTH = 64

_SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# DER prefixes for raw 32-byte private keys and public keys.
_ED25519_PRIVATE_DER_PREFIX = bytes.fromhex("302e020100300506032b657004220420")
_ED25519_PUBLIC_DER_PREFIX = bytes.fromhex("302a300506032b6570032100")
_ECDSA_PRIVATE_DER_PREFIX = bytes.fromhex("3030020100300706052b8104000a04220420")
_ECDSA_PUBLIC_DER_PREFIX = bytes.fromhex("302d300706052b8104000a032200")


class KeyType(Enum):
    """Supported signature algorithms."""

    ED25519 = "ed25519"
    ECDSA_SECP256K1 = "ecdsa_secp256k1"


def _parse_hex(text: str) -> bytes:
    text = text.strip()
    if text.startswith("0x"):
        text = text[2:]
    try:
        return bytes.fromhex(text)
    except ValueError as e:
        raise InvalidKeyError(f"Invalid hex string: {e}", cause=e)


class PublicKey:
    """
    A public key able to verify signatures and encode itself as a HAPI `Key`.
    """

    def __init__(self, key_type: KeyType, raw: bytes):
        """
        Initialize from raw key bytes.

        Args:
            key_type: Signature algorithm
            raw: 32-byte Ed25519 key, or 33-byte compressed secp256k1 point

        Raises:
            InvalidKeyError: If the bytes are not a valid key of that type
        """
        try:
            if key_type is KeyType.ED25519:
                if len(raw) != 32:
                    raise InvalidKeyError(f"Ed25519 public key must be 32 bytes, got {len(raw)}")
                self._key = ed25519.Ed25519PublicKey.from_public_bytes(raw)
            else:
                if len(raw) not in (33, 65):
                    raise InvalidKeyError(f"ECDSA public key must be 33 or 65 bytes, got {len(raw)}")
                self._key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), raw)
                raw = self._key.public_bytes(serialization.Encoding.X962,
                                             serialization.PublicFormat.CompressedPoint)
        except ValueError as e:
            raise InvalidKeyError(f"Invalid {key_type.value} public key: {e}", cause=e)
        self.key_type = key_type
        self._raw = raw

    @classmethod
    def from_bytes_ed25519(cls, raw: bytes) -> PublicKey:
        if raw[:len(_ED25519_PUBLIC_DER_PREFIX)] == _ED25519_PUBLIC_DER_PREFIX:
            raw = raw[len(_ED25519_PUBLIC_DER_PREFIX):]
        return cls(KeyType.ED25519, raw)

    @classmethod
    def from_bytes_ecdsa(cls, raw: bytes) -> PublicKey:
        if raw[:len(_ECDSA_PUBLIC_DER_PREFIX)] == _ECDSA_PUBLIC_DER_PREFIX:
            raw = raw[len(_ECDSA_PUBLIC_DER_PREFIX):]
        return cls(KeyType.ECDSA_SECP256K1, raw)

    @classmethod
    def from_string(cls, text: str) -> PublicKey:
        """
        Parse a hex public key.

        32 bytes (or the Ed25519 DER form) is Ed25519; 33/65 bytes (or the
        secp256k1 DER form) is ECDSA.
        """
        raw = _parse_hex(text)
        if raw.startswith(_ECDSA_PUBLIC_DER_PREFIX) or len(raw) in (33, 65):
            return cls.from_bytes_ecdsa(raw)
        return cls.from_bytes_ed25519(raw)

    @classmethod
    def from_proto_key(cls, data: bytes) -> PublicKey:
        """
        Decode a HAPI `Key` message holding a single public key.

        Raises:
            InvalidKeyError: If the message holds another kind of key
        """
        fields = decode_fields(data)
        if 2 in fields:
            return cls(KeyType.ED25519, last(fields, 2))
        if 7 in fields:
            return cls.from_bytes_ecdsa(last(fields, 7))
        raise InvalidKeyError(f"Unsupported Key message fields: {sorted(fields)}")

    def to_bytes_raw(self) -> bytes:
        """Raw key bytes, as used for the signature-pair prefix."""
        return self._raw

    def to_bytes_der(self) -> bytes:
        prefix = _ED25519_PUBLIC_DER_PREFIX if self.key_type is KeyType.ED25519 else _ECDSA_PUBLIC_DER_PREFIX
        return prefix + self._raw

    def to_string(self) -> str:
        return self._raw.hex()

    @property
    def signature_type(self) -> SignatureType:
        """SignaturePair field this key's signatures are written to."""
        return SignatureType.ED25519 if self.key_type is KeyType.ED25519 else SignatureType.ECDSA_SECP256K1

    def to_proto_key(self) -> bytes:
        """Encode as a HAPI `Key` message."""
        w = ProtoWriter()
        w.bytes_field(2 if self.key_type is KeyType.ED25519 else 7, self._raw)
        return w.to_bytes()

    def verify(self, message: bytes, signature: bytes) -> bool:
        """
        Verify a signature against a message.

        Args:
            message: Message that was signed (body bytes)
            signature: 64-byte signature

        Returns:
            True if signature is valid
        """
        if len(signature) != SIGNATURE_LENGTH:
            return False
        try:
            if self.key_type is KeyType.ED25519:
                self._key.verify(signature, message)
            else:
                der = encode_dss_signature(int.from_bytes(signature[:32], "big"),
                                           int.from_bytes(signature[32:], "big"))
                self._key.verify(der, keccak256(message), ec.ECDSA(Prehashed(hashes.SHA256())))
        except InvalidSignature:
            return False
        return True

    def __eq__(self, other) -> bool:
        if not isinstance(other, PublicKey):
            return False
        return self.key_type is other.key_type and self._raw == other._raw

    def __hash__(self) -> int:
        return hash((self.key_type, self._raw))

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"PublicKey({self.key_type.value}, {self.to_string()})"


class PrivateKey:
    """
    A private key able to sign transaction bodies.
    """

    def __init__(self, key_type: KeyType, raw: bytes):
        """
        Initialize from a 32-byte private key.

        Args:
            key_type: Signature algorithm
            raw: 32-byte seed (Ed25519) or scalar (secp256k1)

        Raises:
            InvalidKeyError: If key is invalid
        """
        if len(raw) != 32:
            raise InvalidKeyError(f"Private key must be 32 bytes, got {len(raw)}")
        try:
            if key_type is KeyType.ED25519:
                self._key = ed25519.Ed25519PrivateKey.from_private_bytes(raw)
                public_raw = self._key.public_key().public_bytes(serialization.Encoding.Raw,
                                                                 serialization.PublicFormat.Raw)
            else:
                self._key = ec.derive_private_key(int.from_bytes(raw, "big"), ec.SECP256K1())
                public_raw = self._key.public_key().public_bytes(serialization.Encoding.X962,
                                                                 serialization.PublicFormat.CompressedPoint)
        except (ValueError, UnsupportedAlgorithm) as e:
            raise InvalidKeyError(f"Invalid {key_type.value} private key: {e}", cause=e)
        self.key_type = key_type
        self._raw = raw
        self._public_key = PublicKey(key_type, public_raw)

    @classmethod
    def generate_ed25519(cls) -> PrivateKey:
        return cls(KeyType.ED25519, os.urandom(32))

    @classmethod
    def generate_ecdsa(cls) -> PrivateKey:
        while True:
            raw = os.urandom(32)
            if 0 < int.from_bytes(raw, "big") < _SECP256K1_ORDER:
                return cls(KeyType.ECDSA_SECP256K1, raw)

    @classmethod
    def from_bytes_ed25519(cls, data: bytes) -> PrivateKey:
        if data.startswith(_ED25519_PRIVATE_DER_PREFIX):
            data = data[len(_ED25519_PRIVATE_DER_PREFIX):]
        elif len(data) == 64:
            # seed || public key, as printed by some tools
            data = data[:32]
        return cls(KeyType.ED25519, data)

    @classmethod
    def from_bytes_ecdsa(cls, data: bytes) -> PrivateKey:
        if data.startswith(_ECDSA_PRIVATE_DER_PREFIX):
            data = data[len(_ECDSA_PRIVATE_DER_PREFIX):]
        return cls(KeyType.ECDSA_SECP256K1, data)

    @classmethod
    def from_der(cls, data: bytes) -> PrivateKey:
        """
        Load a full PKCS#8 / SEC1 DER private key.

        Raises:
            InvalidKeyError: If the DER is not an Ed25519 or secp256k1 key
        """
        try:
            key = serialization.load_der_private_key(data, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise InvalidKeyError(f"Invalid DER private key: {e}", cause=e)
        if isinstance(key, ed25519.Ed25519PrivateKey):
            return cls(KeyType.ED25519, key.private_bytes(serialization.Encoding.Raw,
                                                          serialization.PrivateFormat.Raw,
                                                          serialization.NoEncryption()))
        if isinstance(key, ec.EllipticCurvePrivateKey) and isinstance(key.curve, ec.SECP256K1):
            return cls(KeyType.ECDSA_SECP256K1, key.private_numbers().private_value.to_bytes(32, "big"))
        raise InvalidKeyError(f"Unsupported private key type: {type(key).__name__}")

    @classmethod
    def from_string(cls, text: str) -> PrivateKey:
        """
        Parse a hex private key.

        A bare 32-byte key is taken as Ed25519; use from_string_ecdsa for a
        bare secp256k1 scalar.
        """
        data = _parse_hex(text)
        if data.startswith(_ECDSA_PRIVATE_DER_PREFIX):
            return cls.from_bytes_ecdsa(data)
        if data.startswith(_ED25519_PRIVATE_DER_PREFIX) or len(data) in (32, 64):
            return cls.from_bytes_ed25519(data)
        return cls.from_der(data)

    @classmethod
    def from_string_ed25519(cls, text: str) -> PrivateKey:
        return cls.from_bytes_ed25519(_parse_hex(text))

    @classmethod
    def from_string_ecdsa(cls, text: str) -> PrivateKey:
        return cls.from_bytes_ecdsa(_parse_hex(text))

    @property
    def public_key(self) -> PublicKey:
        return self._public_key

    def to_bytes_raw(self) -> bytes:
        return self._raw

    def to_bytes_der(self) -> bytes:
        prefix = _ED25519_PRIVATE_DER_PREFIX if self.key_type is KeyType.ED25519 else _ECDSA_PRIVATE_DER_PREFIX
        return prefix + self._raw

    def to_string(self) -> str:
        return self.to_bytes_der().hex()

    def sign(self, message: bytes) -> bytes:
        """
        Sign a message.

        Args:
            message: Body bytes to sign

        Returns:
            64-byte signature
        """
        if self.key_type is KeyType.ED25519:
            return self._key.sign(message)
        der = self._key.sign(keccak256(message), ec.ECDSA(Prehashed(hashes.SHA256())))
        r, s = decode_dss_signature(der)
        if s > _SECP256K1_ORDER // 2:
            s = _SECP256K1_ORDER - s
        return r.to_bytes(32, "big") + s.to_bytes(32, "big")

    def __repr__(self) -> str:
        return f"PrivateKey({self.key_type.value}, public_key={self._public_key.to_string()})"


Key = Union[PrivateKey, PublicKey]


__all__ = ["SIGNATURE_LENGTH", "KeyType", "PublicKey", "PrivateKey", "Key"]
