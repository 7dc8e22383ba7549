"""
Cryptographic primitives: signing keys and hash functions.
"""

from .hashes import sha384, keccak256
from .keys import KeyType, PrivateKey, PublicKey, SIGNATURE_LENGTH

__all__ = [
    "sha384",
    "keccak256",
    "KeyType",
    "PrivateKey",
    "PublicKey",
    "SIGNATURE_LENGTH",
]
