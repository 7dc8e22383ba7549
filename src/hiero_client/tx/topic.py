"""
Consensus topics: creation and message submission.
"""

from __future__ import annotations
import logging
from typing import List, Optional, Union

from ..codec.messages import decode_duration, encode_duration
from ..codec.reader import ProtoReader, decode_fields, last
from ..codec.writer import ProtoWriter
from ..crypto.keys import PrivateKey, PublicKey
from ..runtime.ids import AccountId, TopicId, TransactionId
from ..runtime.errors import ValidationError
from .account import DEFAULT_AUTO_RENEW_PERIOD, _check_entity_memo, _public
from .chunked import ChunkedTransaction
from .transaction import Transaction

logger = logging.getLogger(__name__)

TOPIC_MESSAGE_CHUNK_SIZE = 1024


class TopicCreateTransaction(Transaction):
    """
    Create a consensus topic.

    When no auto-renew account is set, the payer becomes the auto-renew
    account. The receipt's topic_id holds the new topic.
    """

    _data_field = 24
    _grpc_method = "/proto.ConsensusService/createTopic"

    def __init__(self):
        super().__init__()
        self._topic_memo = ""
        self._admin_key: Optional[PublicKey] = None
        self._submit_key: Optional[PublicKey] = None
        self._auto_renew_period = DEFAULT_AUTO_RENEW_PERIOD
        self._auto_renew_account_id: Optional[AccountId] = None

    def set_topic_memo(self, memo: str) -> TopicCreateTransaction:
        self._require_not_frozen()
        self._topic_memo = _check_entity_memo(memo)
        return self

    def set_admin_key(self, key: Union[PublicKey, PrivateKey]) -> TopicCreateTransaction:
        self._require_not_frozen()
        self._admin_key = _public(key)
        return self

    def set_submit_key(self, key: Union[PublicKey, PrivateKey]) -> TopicCreateTransaction:
        self._require_not_frozen()
        self._submit_key = _public(key)
        return self

    def set_auto_renew_period(self, seconds: int) -> TopicCreateTransaction:
        self._require_not_frozen()
        if not isinstance(seconds, int) or seconds <= 0:
            raise ValidationError(f"auto renew period must be a positive int, got {seconds!r}")
        self._auto_renew_period = seconds
        return self

    def set_auto_renew_account_id(self, account_id: Union[str, AccountId]) -> TopicCreateTransaction:
        self._require_not_frozen()
        self._auto_renew_account_id = AccountId.of(account_id)
        return self

    @property
    def topic_memo(self) -> str:
        return self._topic_memo

    @property
    def admin_key(self) -> Optional[PublicKey]:
        return self._admin_key

    @property
    def submit_key(self) -> Optional[PublicKey]:
        return self._submit_key

    @property
    def auto_renew_account_id(self) -> Optional[AccountId]:
        return self._auto_renew_account_id

    def _on_freeze(self, client) -> None:
        if self._auto_renew_account_id is None:
            self._auto_renew_account_id = self._transaction_id.account_id

    def _encode_data(self, chunk: int) -> bytes:
        w = ProtoWriter()
        w.string_field(1, self._topic_memo)
        w.message_field(2, self._admin_key.to_proto_key() if self._admin_key else None)
        w.message_field(3, self._submit_key.to_proto_key() if self._submit_key else None)
        w.message_field(6, encode_duration(self._auto_renew_period))
        w.message_field(7, self._auto_renew_account_id.encode() if self._auto_renew_account_id else None)
        return w.to_bytes()

    def _decode_data(self, payloads: List[bytes]) -> None:
        for field_number, _, value in ProtoReader(payloads[0]).fields():
            if field_number == 1:
                self._topic_memo = value.decode("utf-8")
            elif field_number == 2:
                self._admin_key = PublicKey.from_proto_key(value)
            elif field_number == 3:
                self._submit_key = PublicKey.from_proto_key(value)
            elif field_number == 6:
                self._auto_renew_period = decode_duration(value)
            elif field_number == 7:
                self._auto_renew_account_id = AccountId.decode(value)


class TopicMessageSubmitTransaction(ChunkedTransaction):
    """
    Submit a message to a topic, split over as many chunks as needed.

    Every chunk carries a ConsensusMessageChunkInfo with the initial
    transaction id, the chunk total and its 1-based number, so mirror
    nodes can reassemble the message.
    """

    _data_field = 27
    _grpc_method = "/proto.ConsensusService/submitMessage"
    _default_chunk_size = TOPIC_MESSAGE_CHUNK_SIZE
    _default_should_get_receipt = False

    def __init__(self):
        super().__init__()
        self._topic_id: Optional[TopicId] = None

    def set_topic_id(self, topic_id: Union[str, TopicId]) -> TopicMessageSubmitTransaction:
        self._require_not_frozen()
        self._topic_id = TopicId.of(topic_id)
        return self

    @property
    def topic_id(self) -> Optional[TopicId]:
        return self._topic_id

    def set_message(self, message: Union[bytes, str]) -> TopicMessageSubmitTransaction:
        self._set_data(message)
        return self

    @property
    def message(self) -> bytes:
        return self._data

    def _on_freeze(self, client) -> None:
        if self._topic_id is None:
            raise ValidationError("TopicMessageSubmitTransaction requires a topic id")
        super()._on_freeze(client)

    def _encode_data(self, chunk: int) -> bytes:
        w = ProtoWriter()
        w.message_field(1, self._topic_id.encode() if self._topic_id else None)
        w.bytes_field(2, self._chunk_data(chunk))
        if self._transaction_ids:
            info = ProtoWriter()
            info.message_field(1, self._transaction_ids[0].encode())
            info.varint_field(2, len(self._transaction_ids))
            info.varint_field(3, chunk + 1)
            w.message_field(3, info.to_bytes())
        return w.to_bytes()

    def _decode_data(self, payloads: List[bytes]) -> None:
        chunks = []
        for payload in payloads:
            fields = decode_fields(payload)
            topic = last(fields, 1)
            if topic is not None:
                self._topic_id = TopicId.decode(topic)
            chunks.append(last(fields, 2, b""))
            info = last(fields, 3)
            if info is not None:
                info_fields = decode_fields(info)
                initial = last(info_fields, 1)
                if initial is not None and self._transaction_id is not None:
                    if TransactionId.decode(initial) != self._transaction_id:
                        logger.warning("Chunk info initial transaction id does not match the first chunk")
        self._restore_chunks(chunks)


__all__ = ["TopicCreateTransaction", "TopicMessageSubmitTransaction", "TOPIC_MESSAGE_CHUNK_SIZE"]
