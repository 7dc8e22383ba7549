"""
Transaction receipts and the receipt query.

A receipt only becomes final once the transaction reached consensus.
Until then nodes answer with a pending status (UNKNOWN, or BUSY and
RECEIPT_NOT_FOUND in the header), which the query keeps polling through
with exponential backoff.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, replace
from typing import Any, Optional, Tuple, Union

from ..client.client import Client
from ..codec.messages import ResponseHeader, encode_query_header
from ..codec.reader import ProtoReader, decode_fields, last
from ..codec.writer import ProtoWriter
from ..runtime.errors import HieroError, PrecheckError, ReceiptStatusError, ValidationError
from ..runtime.ids import (
    AccountId,
    ContractId,
    FileId,
    ScheduleId,
    TokenId,
    TopicId,
    TransactionId,
)
from ..runtime.status import ExecutionState, ResponseCode, classify_receipt
from .execute import Executable

logger = logging.getLogger(__name__)

GET_RECEIPT_METHOD = "/proto.CryptoService/getTransactionReceipts"

# Query / Response oneof field for transactionGetReceipt.
_RECEIPT_QUERY_FIELD = 14


@dataclass(frozen=True)
class TransactionReceipt:
    """
    Consensus outcome of a transaction.

    Entity ids are set only for transactions that created the entity.
    """

    status: ResponseCode
    account_id: Optional[AccountId] = None
    file_id: Optional[FileId] = None
    contract_id: Optional[ContractId] = None
    topic_id: Optional[TopicId] = None
    topic_sequence_number: int = 0
    topic_running_hash: bytes = b""
    topic_running_hash_version: int = 0
    token_id: Optional[TokenId] = None
    schedule_id: Optional[ScheduleId] = None
    transaction_id: Optional[TransactionId] = None

    @classmethod
    def decode(cls, data: bytes) -> TransactionReceipt:
        """Decode a HAPI `TransactionReceipt` message."""
        fields = decode_fields(data)

        def entity(field_number, id_cls):
            value = last(fields, field_number)
            return id_cls.decode(value) if value is not None else None

        return cls(
            status=ResponseCode(last(fields, 1, 0)),
            account_id=entity(2, AccountId),
            file_id=entity(3, FileId),
            contract_id=entity(4, ContractId),
            topic_id=entity(6, TopicId),
            topic_sequence_number=last(fields, 7, 0),
            topic_running_hash=last(fields, 8, b""),
            topic_running_hash_version=last(fields, 9, 0),
            token_id=entity(10, TokenId),
            schedule_id=entity(12, ScheduleId),
        )

    def encode(self) -> bytes:
        w = ProtoWriter()
        w.varint_field(1, int(self.status))
        for field_number, value in ((2, self.account_id), (3, self.file_id), (4, self.contract_id),
                                    (6, self.topic_id)):
            w.message_field(field_number, value.encode() if value is not None else None)
        w.varint_field(7, self.topic_sequence_number)
        w.bytes_field(8, self.topic_running_hash)
        w.varint_field(9, self.topic_running_hash_version)
        w.message_field(10, self.token_id.encode() if self.token_id is not None else None)
        w.message_field(12, self.schedule_id.encode() if self.schedule_id is not None else None)
        return w.to_bytes()

    def validate_status(self) -> TransactionReceipt:
        """
        Raises:
            ReceiptStatusError: If the status is not SUCCESS
        """
        if self.status != ResponseCode.SUCCESS:
            raise ReceiptStatusError(self.status, self.transaction_id, self)
        return self


@dataclass
class ReceiptAnswer:
    """A decoded `TransactionGetReceiptResponse`."""

    header: ResponseHeader
    receipt: Optional[TransactionReceipt]

    @classmethod
    def decode(cls, response: bytes) -> ReceiptAnswer:
        """
        Decode a HAPI `Response` carrying a transactionGetReceipt answer.
        """
        inner = last(decode_fields(response), _RECEIPT_QUERY_FIELD, b"")
        header = ResponseHeader()
        receipt = None
        for field_number, _, value in ProtoReader(inner).fields():
            if field_number == 1:
                header = ResponseHeader.decode(value)
            elif field_number == 2:
                receipt = TransactionReceipt.decode(value)
        return cls(header, receipt)


def encode_receipt_query(transaction_id: TransactionId, include_duplicates: bool = False,
                         include_children: bool = False) -> bytes:
    """Encode a `Query` carrying a TransactionGetReceiptQuery."""
    inner = ProtoWriter()
    inner.message_field(1, encode_query_header())
    inner.message_field(2, transaction_id.encode())
    inner.bool_field(3, include_duplicates)
    inner.bool_field(4, include_children)
    w = ProtoWriter()
    w.message_field(_RECEIPT_QUERY_FIELD, inner.to_bytes())
    return w.to_bytes()


class TransactionReceiptQuery(Executable):
    """
    Poll a node for a transaction's receipt.

    Example usage:
        ```python
        receipt = TransactionReceiptQuery().set_transaction_id(tx_id).execute(client)
        ```

    Polling continues until the receipt is final or the deadline passes;
    the client's attempt budget does not apply unless set on the query.
    """

    _attempts_bounded = False

    def __init__(self):
        super().__init__()
        self._transaction_id: Optional[TransactionId] = None
        self._include_duplicates = False
        self._include_children = False
        self._validate_status = True

    def set_transaction_id(self, transaction_id: Union[str, TransactionId]) -> TransactionReceiptQuery:
        if isinstance(transaction_id, str):
            transaction_id = TransactionId.from_string(transaction_id)
        self._transaction_id = transaction_id
        return self

    @property
    def transaction_id(self) -> Optional[TransactionId]:
        return self._transaction_id

    def set_include_duplicates(self, include: bool) -> TransactionReceiptQuery:
        self._include_duplicates = bool(include)
        return self

    def set_include_children(self, include: bool) -> TransactionReceiptQuery:
        self._include_children = bool(include)
        return self

    def set_validate_status(self, validate: bool) -> TransactionReceiptQuery:
        """Raise ReceiptStatusError on a non-SUCCESS receipt (default on)."""
        self._validate_status = bool(validate)
        return self

    # Execution hooks

    def _prepare(self, client: Client) -> None:
        if self._transaction_id is None:
            raise ValidationError("Receipt query requires a transaction id")
        if not self._node_account_ids:
            self._node_account_ids = client.select_nodes_for_request()

    def _method(self) -> str:
        return GET_RECEIPT_METHOD

    def _make_request(self, node_account_id: AccountId) -> bytes:
        return encode_receipt_query(self._transaction_id, self._include_duplicates, self._include_children)

    def _map_status(self, response: bytes) -> Tuple[ExecutionState, ResponseCode, Any]:
        answer = ReceiptAnswer.decode(response)
        precheck = answer.header.precheck_code
        receipt_status = answer.receipt.status if answer.receipt is not None else ResponseCode.UNKNOWN
        state = classify_receipt(precheck, receipt_status)
        status = receipt_status if precheck == ResponseCode.OK else precheck
        if state is ExecutionState.RETRY_SAME_NODE:
            logger.debug(f"Receipt for {self._transaction_id} not final yet ({status.name})")
        return state, status, answer

    def _map_response(self, parsed: ReceiptAnswer, node_account_id: AccountId) -> TransactionReceipt:
        receipt = replace(parsed.receipt, transaction_id=self._transaction_id)
        if self._validate_status:
            receipt.validate_status()
        return receipt

    def _make_error(self, status: ResponseCode, parsed: ReceiptAnswer) -> HieroError:
        return PrecheckError(status, self._transaction_id)


__all__ = [
    "TransactionReceipt",
    "TransactionReceiptQuery",
    "ReceiptAnswer",
    "encode_receipt_query",
    "GET_RECEIPT_METHOD",
]
