"""
Tests for receipt polling.
"""

import pytest

from helpers import RecordingToken, mk_transaction_id, receipt_response

from hiero_client.codec.reader import decode_fields, last
from hiero_client.runtime.errors import (
    ExecutionTimeoutError,
    NetworkExhaustedError,
    PrecheckError,
    ReceiptStatusError,
    ValidationError,
)
from hiero_client.runtime.ids import AccountId, TopicId, TransactionId
from hiero_client.runtime.status import ResponseCode
from hiero_client.tx.execute import Executor
from hiero_client.tx.receipt import GET_RECEIPT_METHOD, TransactionReceipt, TransactionReceiptQuery
from hiero_client.tx.response import TransactionResponse

NODE_3 = AccountId.of("0.0.3")


def accepted():
    return TransactionResponse(NODE_3, mk_transaction_id(), b"\x00" * 48)


class AdvancingToken(RecordingToken):
    """Records waits and moves a fake clock forward by each one."""

    def __init__(self):
        super().__init__()
        self.now = 0.0

    def clock(self):
        return self.now

    def wait(self, timeout):
        self.now += timeout
        return super().wait(timeout)


class TestReceiptPolling:
    """Pending receipts are polled on the accepting node."""

    def test_unknown_then_success(self, client, transport):
        transport.enqueue(GET_RECEIPT_METHOD,
                          receipt_response(ResponseCode.UNKNOWN),
                          receipt_response(ResponseCode.SUCCESS, account_id=AccountId.of("0.0.1234")))
        token = RecordingToken()
        receipt = accepted().get_receipt(client, cancel=token)

        assert receipt.status is ResponseCode.SUCCESS
        assert receipt.account_id == AccountId.of("0.0.1234")
        assert receipt.transaction_id == mk_transaction_id()
        assert token.waits == [pytest.approx(0.25)]
        assert [c.node_id for c in transport.calls] == [NODE_3, NODE_3]

    def test_busy_header_keeps_polling(self, client, transport):
        transport.enqueue(GET_RECEIPT_METHOD,
                          receipt_response(ResponseCode.UNKNOWN, header_code=ResponseCode.BUSY),
                          receipt_response(ResponseCode.UNKNOWN, header_code=ResponseCode.RECEIPT_NOT_FOUND),
                          receipt_response(ResponseCode.SUCCESS))
        token = RecordingToken()
        receipt = accepted().get_receipt(client, cancel=token)
        assert receipt.status is ResponseCode.SUCCESS
        assert token.waits == [pytest.approx(0.25), pytest.approx(0.5)]

    def test_failed_receipt_raises(self, client, transport):
        transport.set_default(GET_RECEIPT_METHOD, receipt_response(ResponseCode.INSUFFICIENT_PAYER_BALANCE))
        with pytest.raises(ReceiptStatusError) as exc_info:
            accepted().get_receipt(client)
        error = exc_info.value
        assert error.status is ResponseCode.INSUFFICIENT_PAYER_BALANCE
        assert error.transaction_id == mk_transaction_id()
        assert error.receipt.status is ResponseCode.INSUFFICIENT_PAYER_BALANCE

    def test_failed_receipt_without_validation(self, client, transport):
        transport.set_default(GET_RECEIPT_METHOD, receipt_response(ResponseCode.INVALID_SIGNATURE))
        receipt = accepted().get_receipt(client, validate_status=False)
        assert receipt.status is ResponseCode.INVALID_SIGNATURE

    def test_terminal_header(self, client, transport):
        transport.set_default(GET_RECEIPT_METHOD,
                              receipt_response(ResponseCode.UNKNOWN, header_code=ResponseCode.INVALID_TRANSACTION_ID))
        with pytest.raises(PrecheckError) as exc_info:
            accepted().get_receipt(client)
        assert exc_info.value.status is ResponseCode.INVALID_TRANSACTION_ID

    def test_pending_receipt_polls_until_deadline(self, client, transport):
        """Polling is bounded by the deadline, not by the client's attempt budget."""
        transport.set_default(GET_RECEIPT_METHOD, receipt_response(ResponseCode.UNKNOWN))
        token = AdvancingToken()
        with pytest.raises(ExecutionTimeoutError) as exc_info:
            Executor(clock=token.clock).execute(accepted().get_receipt_query(), client, timeout=120, cancel=token)

        assert exc_info.value.last_status is ResponseCode.UNKNOWN
        assert transport.call_count > client.max_attempts
        assert sum(token.waits) == pytest.approx(120)
        assert max(token.waits) == pytest.approx(client.max_backoff)

    def test_explicit_attempt_budget_still_applies(self, client, transport):
        transport.set_default(GET_RECEIPT_METHOD, receipt_response(ResponseCode.UNKNOWN))
        query = accepted().get_receipt_query().set_max_attempts(3)
        with pytest.raises(NetworkExhaustedError):
            query.execute(client, cancel=RecordingToken())
        assert transport.call_count == 3


class TestReceiptQuery:
    def test_query_payload_carries_transaction_id(self, client, transport):
        transport.set_default(GET_RECEIPT_METHOD, receipt_response())
        TransactionReceiptQuery().set_transaction_id("0.0.2@1700000000.000000001").execute(client)

        inner = last(decode_fields(transport.calls[0].payload), 14)
        fields = decode_fields(inner)
        assert 1 in fields
        assert TransactionId.decode(last(fields, 2)) == mk_transaction_id()

    def test_unpinned_query_selects_nodes(self, client, transport):
        transport.set_default(GET_RECEIPT_METHOD, receipt_response())
        query = TransactionReceiptQuery().set_transaction_id(mk_transaction_id())
        query.execute(client)
        assert len(query.node_account_ids) == 1

    def test_requires_transaction_id(self, client):
        with pytest.raises(ValidationError):
            TransactionReceiptQuery().execute(client)

    def test_pinned_query(self):
        query = accepted().get_receipt_query()
        assert query.node_account_ids == [NODE_3]
        assert query.transaction_id == mk_transaction_id()


def test_receipt_topic_fields():
    """Topic receipts carry the sequence number and running hash."""
    receipt = TransactionReceipt(ResponseCode.SUCCESS, topic_id=TopicId.of(9),
                                 topic_sequence_number=4, topic_running_hash=b"\x01" * 48,
                                 topic_running_hash_version=3)
    assert TransactionReceipt.decode(receipt.encode()) == receipt
    assert receipt.validate_status() is receipt
