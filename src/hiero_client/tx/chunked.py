"""
Chunked transactions.

Payloads larger than one chunk are split and submitted as a sequence of
transactions. Chunk k carries the transaction id of chunk 0 with its valid
start moved k nanoseconds later, so the whole sequence shares one payer and
stays ordered.
"""

from __future__ import annotations
import logging
import math
from typing import ClassVar, Dict, List, Optional, Union

from ..client.client import Client, get_default_client
from ..crypto.hashes import sha384
from ..crypto.keys import PublicKey
from ..runtime.cancellation import CancellationToken
from ..runtime.errors import CannotSignLargeChunkedRequestError, TooManyChunksError, ValidationError
from ..runtime.ids import AccountId, TransactionId
from .execute import Executor
from .response import TransactionResponse
from .transaction import Transaction

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHUNKS = 20


class ChunkedTransaction(Transaction):
    """
    A transaction whose payload is split into chunks.

    Subclasses set `_default_chunk_size` and `_default_should_get_receipt`
    and encode `self._chunk_data(chunk)` in `_encode_data`.
    """

    _default_chunk_size: ClassVar[int] = 1024
    _default_max_chunks: ClassVar[int] = DEFAULT_MAX_CHUNKS
    _default_should_get_receipt: ClassVar[bool] = False

    def __init__(self):
        super().__init__()
        self._data = b""
        self._chunk_size = self._default_chunk_size
        self._max_chunks = self._default_max_chunks
        self._should_get_receipt = self._default_should_get_receipt

    # Settings

    def _set_data(self, data: Union[bytes, bytearray, str]) -> None:
        self._require_not_frozen()
        if isinstance(data, str):
            data = data.encode("utf-8")
        if not isinstance(data, (bytes, bytearray)):
            raise ValidationError(f"data must be bytes or str, got {type(data).__name__}")
        self._data = bytes(data)

    def set_chunk_size(self, chunk_size: int) -> ChunkedTransaction:
        self._require_not_frozen()
        if not isinstance(chunk_size, int) or chunk_size <= 0:
            raise ValidationError(f"chunk_size must be a positive int, got {chunk_size!r}")
        self._chunk_size = chunk_size
        return self

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def set_max_chunks(self, max_chunks: int) -> ChunkedTransaction:
        self._require_not_frozen()
        if not isinstance(max_chunks, int) or max_chunks <= 0:
            raise ValidationError(f"max_chunks must be a positive int, got {max_chunks!r}")
        self._max_chunks = max_chunks
        return self

    @property
    def max_chunks(self) -> int:
        return self._max_chunks

    def set_should_get_receipt(self, should_get_receipt: bool) -> ChunkedTransaction:
        """Wait for each chunk's receipt before submitting the next."""
        self._should_get_receipt = bool(should_get_receipt)
        return self

    @property
    def should_get_receipt(self) -> bool:
        return self._should_get_receipt

    def required_chunks(self) -> int:
        """Chunks the payload needs; an empty payload still takes one."""
        return max(1, math.ceil(len(self._data) / self._chunk_size))

    def _check_chunk_count(self) -> None:
        required = self.required_chunks()
        if required > self._max_chunks:
            raise TooManyChunksError(required, self._max_chunks)

    # Layout

    def _on_freeze(self, client: Optional[Client]) -> None:
        self._check_chunk_count()

    def _chunk_transaction_ids(self) -> List[TransactionId]:
        return [self._transaction_id.plus_ticks(k) for k in range(self.required_chunks())]

    def _chunk_count(self) -> int:
        if self._frozen:
            return len(self._transaction_ids)
        return self.required_chunks()

    def _chunk_data(self, chunk: int) -> bytes:
        """Payload slice for a chunk; a draft's single body carries the whole payload."""
        if not self._frozen:
            return self._data
        start = chunk * self._chunk_size
        return self._data[start:start + self._chunk_size]

    def _restore_chunks(self, chunks: List[bytes]) -> None:
        """Reassemble the payload from decoded chunk data."""
        self._data = b"".join(chunks)
        if len(chunks) > 1:
            self._chunk_size = len(chunks[0])
        self._max_chunks = max(self._max_chunks, len(chunks))

    # Signing and hashes

    def add_signature(self, public_key: PublicKey, signature: bytes) -> ChunkedTransaction:
        """
        Raises:
            CannotSignLargeChunkedRequestError: If the payload spans more than one chunk
        """
        if len(self._data) > self._chunk_size:
            raise CannotSignLargeChunkedRequestError(self._chunk_size)
        super().add_signature(public_key, signature)
        return self

    def get_transaction_hash(self) -> bytes:
        """
        Raises:
            ValidationError: If the transaction has more than one chunk
        """
        if self._chunk_count() > 1:
            raise ValidationError("Transaction has more than one chunk; use get_all_transaction_hashes_per_node()")
        return super().get_transaction_hash()

    def get_transaction_hash_per_node(self) -> Dict[AccountId, bytes]:
        if self._chunk_count() > 1:
            raise ValidationError("Transaction has more than one chunk; use get_all_transaction_hashes_per_node()")
        return super().get_transaction_hash_per_node()

    def get_all_transaction_hashes_per_node(self) -> List[Dict[AccountId, bytes]]:
        """One {node: SHA-384} map per chunk, in chunk order."""
        self._require_frozen()
        return [
            {node_id: sha384(self._signed_transaction_bytes(chunk, node_id)) for node_id in self._node_account_ids}
            for chunk in range(self._chunk_count())
        ]

    # Execution

    def execute_all(self, client: Optional[Client] = None, timeout: Optional[float] = None,
                    cancel: Optional[CancellationToken] = None) -> List[TransactionResponse]:
        """
        Submit every chunk in order.

        Each chunk runs through the execution harness with its own
        deadline. With should_get_receipt, each chunk's receipt is awaited
        before the next chunk is sent, and a failed receipt stops the
        sequence.

        Returns:
            One response per chunk

        Raises:
            TooManyChunksError: Before any submission, if the payload needs
                more than max_chunks chunks
            ReceiptStatusError: If a chunk's receipt is not SUCCESS
        """
        client = client or get_default_client()
        self._check_chunk_count()
        self.freeze_with(client)

        total = self._chunk_count()
        executor = Executor()
        responses: List[TransactionResponse] = []
        try:
            for chunk in range(total):
                self._current_chunk = chunk
                response = executor.execute(self, client, timeout, cancel)
                responses.append(response)
                logger.info(f"Submitted chunk {chunk + 1}/{total} of {self._transaction_id}")
                if self._should_get_receipt:
                    response.get_receipt(client, timeout, cancel)
        finally:
            self._current_chunk = 0
        return responses

    def execute(self, client: Optional[Client] = None, timeout: Optional[float] = None,
                cancel: Optional[CancellationToken] = None) -> TransactionResponse:
        """Submit every chunk and return the response for the first."""
        return self.execute_all(client, timeout, cancel)[0]

    @property
    def current_chunk(self) -> int:
        return self._current_chunk


__all__ = ["ChunkedTransaction", "DEFAULT_MAX_CHUNKS"]
