"""
Transaction request builder.

A Transaction collects its fields while in draft, then freezes: the
transaction id, node set, fee and duration are fixed and one body is laid
out per (chunk, node). Signing only adds signatures; every other setter
raises FrozenError once frozen.

Signed payloads are cached per (chunk, node) and invalidated whenever the
signature set changes, so the harness never re-signs on retry.
"""

from __future__ import annotations
import logging
from typing import Callable, ClassVar, Dict, List, Optional, Tuple, Type, Union

from ..codec.messages import (
    PrecheckResponse,
    SignatureMap,
    SignaturePair,
    SignatureType,
    SignedTransaction,
    TransactionBody,
    decode_transaction,
    decode_transaction_list,
    encode_transaction,
    encode_transaction_list,
)
from ..crypto.hashes import sha384
from ..crypto.keys import SIGNATURE_LENGTH, PrivateKey, PublicKey
from ..client.client import Client
from ..client.config import DEFAULT_MAX_TRANSACTION_FEE
from ..runtime.errors import (
    CodecError,
    FrozenError,
    HieroError,
    InvalidKeyError,
    PrecheckError,
    ValidationError,
)
from ..runtime.ids import AccountId, TransactionId
from ..runtime.status import ExecutionState, ResponseCode, classify_precheck
from .execute import Executable
from .response import TransactionResponse

logger = logging.getLogger(__name__)

DEFAULT_VALID_DURATION = 120
MAX_MEMO_BYTES = 100

Signer = Callable[[bytes], bytes]
BodyKey = Tuple[int, AccountId]


class Transaction(Executable):
    """
    Base class for all transaction kinds.

    Subclasses set `_data_field` (the TransactionBody oneof field number)
    and `_grpc_method`, and implement `_encode_data` / `_decode_data` for
    their body payload. Subclasses register themselves so `from_bytes` can
    rebuild the right kind.
    """

    _KINDS: ClassVar[Dict[int, Type[Transaction]]] = {}
    _data_field: ClassVar[int] = 0
    _grpc_method: ClassVar[str] = ""

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if cls._data_field:
            Transaction._KINDS[cls._data_field] = cls

    def __init__(self):
        """Initialize an empty draft transaction."""
        super().__init__()
        self._transaction_id: Optional[TransactionId] = None
        self._transaction_ids: List[TransactionId] = []
        self._max_transaction_fee: Optional[int] = None
        self._valid_duration = DEFAULT_VALID_DURATION
        self._memo = ""
        self._frozen = False
        self._current_chunk = 0

        self._signers: List[Tuple[PublicKey, Signer]] = []
        self._body_cache: Dict[BodyKey, bytes] = {}
        self._signed_cache: Dict[BodyKey, bytes] = {}
        self._extra_signatures: Dict[BodyKey, List[SignaturePair]] = {}

    # Field setters

    def _require_not_frozen(self) -> None:
        if self._frozen:
            raise FrozenError()
        self._body_cache.clear()
        self._signed_cache.clear()

    def set_transaction_id(self, transaction_id: Union[str, TransactionId]) -> Transaction:
        self._require_not_frozen()
        if isinstance(transaction_id, str):
            transaction_id = TransactionId.from_string(transaction_id)
        if not isinstance(transaction_id, TransactionId):
            raise ValidationError(f"transaction_id must be a TransactionId, got {type(transaction_id).__name__}")
        self._transaction_id = transaction_id
        return self

    @property
    def transaction_id(self) -> Optional[TransactionId]:
        return self._transaction_id

    def set_node_account_ids(self, node_account_ids) -> Transaction:
        self._require_not_frozen()
        super().set_node_account_ids(node_account_ids)
        return self

    def set_max_transaction_fee(self, tinybars: int) -> Transaction:
        self._require_not_frozen()
        if not isinstance(tinybars, int) or isinstance(tinybars, bool) or tinybars < 0:
            raise ValidationError(f"max_transaction_fee must be a non-negative int, got {tinybars!r}")
        self._max_transaction_fee = tinybars
        return self

    @property
    def max_transaction_fee(self) -> Optional[int]:
        return self._max_transaction_fee

    def set_transaction_valid_duration(self, seconds: int) -> Transaction:
        self._require_not_frozen()
        if not isinstance(seconds, int) or seconds <= 0:
            raise ValidationError(f"valid duration must be a positive number of seconds, got {seconds!r}")
        self._valid_duration = seconds
        return self

    @property
    def transaction_valid_duration(self) -> int:
        return self._valid_duration

    def set_transaction_memo(self, memo: str) -> Transaction:
        self._require_not_frozen()
        if not isinstance(memo, str):
            raise ValidationError(f"memo must be a str, got {type(memo).__name__}")
        if len(memo.encode("utf-8")) > MAX_MEMO_BYTES:
            raise ValidationError(f"memo must not exceed {MAX_MEMO_BYTES} bytes")
        self._memo = memo
        return self

    @property
    def transaction_memo(self) -> str:
        return self._memo

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    # Freezing

    def freeze(self) -> Transaction:
        """
        Freeze without a client.

        Raises:
            ValidationError: If the transaction id or node account ids are not set
        """
        return self.freeze_with(None)

    def freeze_with(self, client: Optional[Client]) -> Transaction:
        """
        Fix every field and lay out the bodies.

        Missing fields are filled from the client: a transaction id from the
        operator and the wall clock, the node set from the healthy nodes, the
        max fee from the client default. Freezing twice is a no-op.

        Raises:
            ValidationError: If a field cannot be filled in
            TooManyChunksError: If a chunked payload needs too many chunks
        """
        if self._frozen:
            return self

        if self._transaction_id is None:
            if client is None or client.operator is None:
                raise ValidationError(
                    "Transaction ID must be set, or an operator must be provided with freeze_with()")
            self._transaction_id = TransactionId.generate(client.operator.account_id)

        if not self._node_account_ids:
            if client is None:
                raise ValidationError("Node account ids must be set, or a client must be provided with freeze_with()")
            self._node_account_ids = client.select_nodes_for_request()

        if self._max_transaction_fee is None:
            self._max_transaction_fee = (client.default_max_transaction_fee if client is not None
                                         else DEFAULT_MAX_TRANSACTION_FEE)

        self._on_freeze(client)
        self._transaction_ids = self._chunk_transaction_ids()
        self._frozen = True
        logger.debug(f"Froze {type(self).__name__} {self._transaction_id} for nodes "
                     f"{', '.join(str(n) for n in self._node_account_ids)}")
        return self

    def _on_freeze(self, client: Optional[Client]) -> None:
        """Kind-specific validation and defaults, run before the bodies are fixed."""

    def _chunk_transaction_ids(self) -> List[TransactionId]:
        return [self._transaction_id]

    def _chunk_count(self) -> int:
        return 1

    # Bodies

    def _encode_data(self, chunk: int) -> bytes:
        """Encoded kind-specific body message for one chunk."""
        raise NotImplementedError

    def _decode_data(self, payloads: List[bytes]) -> None:
        """Restore kind-specific fields from the body message of each chunk."""
        raise NotImplementedError

    def _build_body(self, chunk: int, node_account_id: Optional[AccountId]) -> bytes:
        key = (chunk, node_account_id)
        cached = self._body_cache.get(key)
        if cached is not None:
            return cached
        transaction_id = self._transaction_ids[chunk] if self._transaction_ids else self._transaction_id
        body = TransactionBody(
            transaction_id=transaction_id,
            node_account_id=node_account_id,
            transaction_fee=self._max_transaction_fee or 0,
            valid_duration=self._valid_duration,
            memo=self._memo,
            data_field=self._data_field,
            data=self._encode_data(chunk),
        ).encode()
        if self._frozen:
            self._body_cache[key] = body
        return body

    def _signature_pairs(self, key: BodyKey, body: bytes) -> List[SignaturePair]:
        pairs = list(self._extra_signatures.get(key, []))
        present = {pair.pub_key_prefix for pair in pairs}
        for public_key, signer in self._signers:
            prefix = public_key.to_bytes_raw()
            if prefix in present:
                continue
            pairs.append(SignaturePair(prefix, signer(body), public_key.signature_type))
            present.add(prefix)
        return pairs

    def _signed_transaction_bytes(self, chunk: int, node_account_id: AccountId) -> bytes:
        key = (chunk, node_account_id)
        cached = self._signed_cache.get(key)
        if cached is None:
            body = self._build_body(chunk, node_account_id)
            cached = SignedTransaction(body, SignatureMap(self._signature_pairs(key, body))).encode()
            self._signed_cache[key] = cached
        return cached

    def _transaction_bytes(self, chunk: int, node_account_id: AccountId) -> bytes:
        return encode_transaction(self._signed_transaction_bytes(chunk, node_account_id))

    # Signing

    def _require_frozen(self) -> None:
        if not self._frozen:
            raise ValidationError("Transaction must be frozen before it can be signed")

    def sign(self, private_key: PrivateKey) -> Transaction:
        """
        Sign every body with a private key.

        Signing with a key that already signed is a no-op.
        """
        return self.sign_with(private_key.public_key, private_key.sign)

    def sign_with(self, public_key: PublicKey, signer: Signer) -> Transaction:
        """
        Sign every body through an external signer.

        Args:
            public_key: Public key the signatures verify against
            signer: Returns the 64-byte signature of the given body bytes
        """
        self._require_frozen()
        if any(existing == public_key for existing, _ in self._signers):
            return self
        self._signers.append((public_key, signer))
        self._signed_cache.clear()
        return self

    def add_signature(self, public_key: PublicKey, signature: bytes) -> Transaction:
        """
        Attach a signature made elsewhere.

        Only possible when the transaction has exactly one body (one node
        and one chunk). The signature is not checked against the body.

        Raises:
            ValidationError: If not frozen or not exactly one body
            InvalidKeyError: If the signature has the wrong length
        """
        self._require_frozen()
        if len(self._node_account_ids) * self._chunk_count() != 1:
            raise ValidationError("add_signature requires a transaction with exactly one node and one chunk")
        if not isinstance(public_key, PublicKey):
            raise InvalidKeyError(f"Expected a PublicKey, got {type(public_key).__name__}")
        if len(signature) != SIGNATURE_LENGTH:
            raise InvalidKeyError(f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(signature)}")
        key = (0, self._node_account_ids[0])
        pairs = self._extra_signatures.setdefault(key, [])
        prefix = public_key.to_bytes_raw()
        if any(pair.pub_key_prefix == prefix for pair in pairs):
            return self
        pairs.append(SignaturePair(prefix, bytes(signature), public_key.signature_type))
        self._signed_cache.clear()
        return self

    def get_signatures(self) -> Dict[AccountId, Dict[PublicKey, bytes]]:
        """
        Signatures on the first chunk, per node.

        Returns:
            {node account id: {public key: signature}}
        """
        self._require_frozen()
        result: Dict[AccountId, Dict[PublicKey, bytes]] = {}
        for node_id in self._node_account_ids:
            key = (0, node_id)
            body = self._build_body(0, node_id)
            per_key: Dict[PublicKey, bytes] = {}
            for pair in self._signature_pairs(key, body):
                if pair.sig_type is SignatureType.ED25519:
                    public_key = PublicKey.from_bytes_ed25519(pair.pub_key_prefix)
                elif pair.sig_type is SignatureType.ECDSA_SECP256K1:
                    public_key = PublicKey.from_bytes_ecdsa(pair.pub_key_prefix)
                else:
                    continue
                per_key[public_key] = pair.signature
            result[node_id] = per_key
        return result

    # Hashes

    def get_transaction_hash(self) -> bytes:
        """SHA-384 of the signed transaction sent to the first node."""
        self._require_frozen()
        return sha384(self._signed_transaction_bytes(0, self._node_account_ids[0]))

    def get_transaction_hash_per_node(self) -> Dict[AccountId, bytes]:
        self._require_frozen()
        return {node_id: sha384(self._signed_transaction_bytes(0, node_id))
                for node_id in self._node_account_ids}

    # Serialization

    def to_bytes(self) -> bytes:
        """
        Serialize as a `TransactionList`.

        A frozen transaction lists every (chunk, node) body, chunk-major,
        with its signatures. A draft serializes as a single body without a
        node account id, holding the full payload of a chunked transaction.
        """
        if not self._frozen:
            body = self._build_body(0, None)
            return encode_transaction_list([encode_transaction(SignedTransaction(body).encode())])
        return encode_transaction_list([
            self._transaction_bytes(chunk, node_id)
            for chunk in range(self._chunk_count())
            for node_id in self._node_account_ids
        ])

    @staticmethod
    def from_bytes(data: bytes) -> Transaction:
        """
        Rebuild a transaction from `to_bytes` output.

        Bodies and signatures are kept byte for byte, so re-serializing a
        frozen transaction reproduces its input.

        Raises:
            CodecError: If the bytes are not a transaction list of a known kind
        """
        messages = decode_transaction_list(data)
        if not messages:
            raise CodecError("Transaction list is empty")

        entries: List[Tuple[TransactionBody, bytes, SignatureMap]] = []
        for message in messages:
            signed = SignedTransaction.decode(decode_transaction(message))
            entries.append((TransactionBody.decode(signed.body_bytes), signed.body_bytes, signed.sig_map))

        first = entries[0][0]
        kind = Transaction._KINDS.get(first.data_field)
        if kind is None:
            raise CodecError(f"Unsupported transaction body field {first.data_field}")
        for body, _, _ in entries:
            if body.data_field != first.data_field:
                raise CodecError("Transaction list mixes transaction kinds")

        tx = kind()
        tx._transaction_id = first.transaction_id
        tx._max_transaction_fee = first.transaction_fee
        tx._valid_duration = first.valid_duration or DEFAULT_VALID_DURATION
        tx._memo = first.memo

        chunk_ids: List[TransactionId] = []
        node_ids: List[AccountId] = []
        payloads: List[bytes] = []
        for body, _, _ in entries:
            if body.transaction_id not in chunk_ids:
                chunk_ids.append(body.transaction_id)
                payloads.append(body.data)
            if body.node_account_id is not None and body.node_account_id not in node_ids:
                node_ids.append(body.node_account_id)
        tx._decode_data(payloads)

        if first.node_account_id is not None:
            tx._node_account_ids = node_ids
            tx._node_account_ids_pinned = True
            tx._transaction_ids = chunk_ids
            for body, body_bytes, sig_map in entries:
                key = (chunk_ids.index(body.transaction_id), body.node_account_id)
                tx._body_cache[key] = body_bytes
                tx._extra_signatures[key] = list(sig_map.pairs)
            tx._frozen = True
        return tx

    # Execution hooks

    def _prepare(self, client: Client) -> None:
        self.freeze_with(client)
        operator = client.operator
        if operator is not None and self._transaction_id.account_id == operator.account_id:
            self.sign_with(operator.public_key, operator.private_key.sign)

    def _method(self) -> str:
        return self._grpc_method

    def _accept_node(self, node_account_id: AccountId) -> bool:
        # Attached signatures only cover the bodies they were made for.
        if self._extra_signatures:
            return False
        return super()._accept_node(node_account_id)

    def _make_request(self, node_account_id: AccountId) -> bytes:
        return self._transaction_bytes(self._current_chunk, node_account_id)

    def _map_status(self, response: bytes) -> Tuple[ExecutionState, ResponseCode, PrecheckResponse]:
        parsed = PrecheckResponse.decode(response)
        return classify_precheck(parsed.precheck_code), parsed.precheck_code, parsed

    def _map_response(self, parsed: PrecheckResponse, node_account_id: AccountId) -> TransactionResponse:
        chunk = self._current_chunk
        return TransactionResponse(
            node_id=node_account_id,
            transaction_id=self._transaction_ids[chunk],
            transaction_hash=sha384(self._signed_transaction_bytes(chunk, node_account_id)),
        )

    def _make_error(self, status: ResponseCode, parsed: PrecheckResponse) -> HieroError:
        transaction_id = self._transaction_ids[self._current_chunk] if self._transaction_ids else None
        return PrecheckError(status, transaction_id)

    def fee_estimate_payloads(self, client: Client) -> List[bytes]:
        """Serialized `Transaction` per chunk, for the first node, for fee estimation."""
        self._prepare(client)
        return [self._transaction_bytes(chunk, self._node_account_ids[0]) for chunk in range(self._chunk_count())]

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "draft"
        return f"{type(self).__name__}({self._transaction_id}, {state})"


__all__ = ["Transaction", "DEFAULT_VALID_DURATION", "MAX_MEMO_BYTES"]
