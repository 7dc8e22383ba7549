"""
Tests for chunked transactions: cascading ids, ordered submission and
per-chunk receipts.
"""

import pytest

from helpers import decode_submitted_body, mk_transaction_id, precheck, receipt_response

from hiero_client.codec.messages import decode_transaction_list
from hiero_client.codec.reader import decode_fields, last
from hiero_client.runtime.errors import (
    CannotSignLargeChunkedRequestError,
    FrozenError,
    ReceiptStatusError,
    TooManyChunksError,
    ValidationError,
)
from hiero_client.runtime.ids import AccountId, TransactionId
from hiero_client.runtime.status import ResponseCode
from hiero_client.tx.file import FileAppendTransaction
from hiero_client.tx.receipt import GET_RECEIPT_METHOD
from hiero_client.tx.topic import TopicMessageSubmitTransaction
from hiero_client.tx.transaction import Transaction

APPEND = FileAppendTransaction._grpc_method
SUBMIT_MESSAGE = TopicMessageSubmitTransaction._grpc_method
CHUNK = 10
DATA = bytes(range(4 * CHUNK + 1))


def file_append(max_chunks=5, data=DATA):
    return (FileAppendTransaction()
            .set_file_id("0.0.150")
            .set_contents(data)
            .set_chunk_size(CHUNK)
            .set_max_chunks(max_chunks)
            .set_transaction_id(mk_transaction_id())
            .set_node_account_ids(["0.0.3"]))


def topic_message(data=DATA):
    return (TopicMessageSubmitTransaction()
            .set_topic_id("0.0.500")
            .set_message(data)
            .set_chunk_size(CHUNK)
            .set_transaction_id(mk_transaction_id())
            .set_node_account_ids(["0.0.3", "0.0.4"]))


class TestChunkedExecution:
    """Every chunk is submitted in order with a cascading transaction id."""

    def test_file_append_submits_every_chunk_and_waits_for_receipts(self, client, transport):
        transport.set_default(APPEND, precheck())
        transport.set_default(GET_RECEIPT_METHOD, receipt_response())
        tx = file_append()
        responses = tx.execute_all(client)

        base = mk_transaction_id()
        assert len(responses) == 5
        assert [r.transaction_id for r in responses] == [base.plus_ticks(k) for k in range(5)]
        assert [c.method for c in transport.calls] == [APPEND, GET_RECEIPT_METHOD] * 5
        assert tx.current_chunk == 0

        contents = []
        for k, call in enumerate(transport.calls_to(APPEND)):
            body = decode_submitted_body(call.payload)
            assert body.transaction_id == base.plus_ticks(k)
            contents.append(last(decode_fields(body.data), 4))
        assert b"".join(contents) == DATA
        assert [len(c) for c in contents] == [10, 10, 10, 10, 1]

    def test_execute_returns_first_chunk(self, client, transport):
        transport.set_default(APPEND, precheck())
        transport.set_default(GET_RECEIPT_METHOD, receipt_response())
        response = file_append().execute(client)
        assert response.transaction_id == mk_transaction_id()

    def test_too_many_chunks_fails_before_submitting(self, client, transport):
        tx = file_append(max_chunks=3)
        with pytest.raises(TooManyChunksError) as exc_info:
            tx.execute_all(client)
        assert exc_info.value.required == 5
        assert exc_info.value.allowed == 3
        assert transport.call_count == 0

    def test_failed_chunk_receipt_stops_sequence(self, client, transport):
        transport.set_default(APPEND, precheck())
        transport.enqueue(GET_RECEIPT_METHOD, receipt_response(), receipt_response(ResponseCode.FAIL_INVALID))
        tx = file_append()
        with pytest.raises(ReceiptStatusError):
            tx.execute_all(client)
        assert len(transport.calls_to(APPEND)) == 2
        assert tx.current_chunk == 0

    def test_topic_message_chunk_info_without_receipts(self, client, transport):
        transport.set_default(SUBMIT_MESSAGE, precheck())
        tx = topic_message()
        responses = tx.execute_all(client)

        assert len(responses) == 5
        assert transport.calls_to(GET_RECEIPT_METHOD) == []
        for k, call in enumerate(transport.calls):
            fields = decode_fields(decode_submitted_body(call.payload).data)
            info = decode_fields(last(fields, 3))
            assert TransactionId.decode(last(info, 1)) == mk_transaction_id()
            assert last(info, 2) == 5
            assert last(info, 3) == k + 1

    def test_chunk_retry_stays_on_chunk(self, client, transport):
        transport.enqueue(SUBMIT_MESSAGE, precheck(ResponseCode.BUSY))
        transport.set_default(SUBMIT_MESSAGE, precheck())
        tx = topic_message(b"x" * 15)
        tx.set_min_backoff(0.0)
        responses = tx.execute_all(client)
        assert len(responses) == 2
        submitted = [decode_submitted_body(c.payload).transaction_id for c in transport.calls]
        assert submitted == [mk_transaction_id(), mk_transaction_id(), mk_transaction_id().plus_ticks(1)]


class TestChunkLayout:
    def test_empty_payload_is_one_chunk(self):
        tx = topic_message(b"")
        assert tx.required_chunks() == 1
        tx.freeze()
        assert len(Transaction.from_bytes(tx.to_bytes()).node_account_ids) == 2

    def test_bodies_are_chunk_major(self):
        tx = topic_message(b"x" * 15).freeze()
        restored = Transaction.from_bytes(tx.to_bytes())
        assert restored.message == b"x" * 15
        bodies = [decode_submitted_body(m) for m in decode_transaction_list(tx.to_bytes())]
        start = mk_transaction_id().valid_start.nanos
        assert [(b.transaction_id.valid_start.nanos - start, str(b.node_account_id)) for b in bodies] == [
            (0, "0.0.3"), (0, "0.0.4"), (1, "0.0.3"), (1, "0.0.4")]

    def test_roundtrip_restores_chunking(self):
        tx = file_append().freeze()
        restored = Transaction.from_bytes(tx.to_bytes())
        assert isinstance(restored, FileAppendTransaction)
        assert restored.contents == DATA
        assert restored.chunk_size == CHUNK
        assert restored.file_id == tx.file_id
        assert restored.to_bytes() == tx.to_bytes()

    def test_draft_roundtrip_keeps_full_payload(self):
        """A draft spanning several chunks serializes its whole message."""
        tx = TopicMessageSubmitTransaction().set_topic_id("0.0.5").set_message(b"x" * 3000)
        restored = Transaction.from_bytes(tx.to_bytes())

        assert isinstance(restored, TopicMessageSubmitTransaction)
        assert not restored.is_frozen
        assert restored.message == b"x" * 3000
        assert restored.topic_id == tx.topic_id
        assert restored.required_chunks() == 3

    def test_hashes_per_chunk(self):
        tx = topic_message(b"x" * 25).freeze()
        with pytest.raises(ValidationError):
            tx.get_transaction_hash()
        with pytest.raises(ValidationError):
            tx.get_transaction_hash_per_node()
        hashes = tx.get_all_transaction_hashes_per_node()
        assert len(hashes) == 3
        assert set(hashes[0]) == {AccountId.of("0.0.3"), AccountId.of("0.0.4")}

    def test_single_chunk_hash_allowed(self):
        tx = topic_message(b"short").freeze()
        assert len(tx.get_transaction_hash()) == 48

    def test_manual_signature_on_large_payload(self):
        tx = topic_message().freeze()
        with pytest.raises(CannotSignLargeChunkedRequestError):
            tx.add_signature(None, b"\x00" * 64)

    def test_chunk_settings_frozen(self):
        tx = file_append().freeze()
        with pytest.raises(FrozenError):
            tx.set_chunk_size(20)
        with pytest.raises(FrozenError):
            tx.set_contents(b"more")

    def test_missing_topic(self):
        tx = TopicMessageSubmitTransaction().set_message(b"m").set_transaction_id(mk_transaction_id())
        with pytest.raises(ValidationError):
            tx.set_node_account_ids(["0.0.3"]).freeze()

    def test_defaults(self):
        assert FileAppendTransaction().should_get_receipt is True
        assert FileAppendTransaction().chunk_size == 4096
        assert TopicMessageSubmitTransaction().should_get_receipt is False
        assert TopicMessageSubmitTransaction().chunk_size == 1024
        assert TopicMessageSubmitTransaction().max_chunks == 20
