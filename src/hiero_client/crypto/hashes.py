"""
Hash functions used for transaction hashes and ECDSA signing.
"""

import hashlib

from Crypto.Hash import keccak


def sha384(data: bytes) -> bytes:
    """
    Compute the SHA-384 digest used as the transaction hash.

    Args:
        data: Input bytes (the signedTransactionBytes of one body)

    Returns:
        48-byte digest
    """
    return hashlib.sha384(data).digest()


def keccak256(data: bytes) -> bytes:
    """
    Compute the Keccak-256 digest (pre-standard SHA-3 padding).

    ECDSA secp256k1 signatures are made over this digest of the body bytes.

    Args:
        data: Data to hash

    Returns:
        32-byte digest
    """
    return keccak.new(digest_bits=256).update(data).digest()


__all__ = ["sha384", "keccak256"]
