"""
Tests for the protobuf wire codec: writer, reader and envelope messages.
"""

import pytest

from hiero_client.codec.messages import (
    PrecheckResponse,
    ResponseHeader,
    SignatureMap,
    SignaturePair,
    SignatureType,
    SignedTransaction,
    TransactionBody,
    decode_transaction,
    decode_transaction_list,
    encode_query_header,
    encode_transaction,
    encode_transaction_list,
)
from hiero_client.codec.reader import ProtoReader, decode_fields, last, to_int64, zigzag_decode
from hiero_client.codec.writer import ProtoWriter, zigzag_encode
from hiero_client.runtime.errors import CodecError
from hiero_client.runtime.ids import AccountId, Timestamp, TransactionId
from hiero_client.runtime.status import ResponseCode


class TestProtoWriter:
    """Wire-level encoding."""

    def test_varint_encoding(self):
        w = ProtoWriter()
        w.uvarint(300)
        assert w.to_bytes() == b"\xac\x02"

    def test_negative_int64_is_ten_bytes(self):
        w = ProtoWriter()
        w.uvarint(-1)
        data = w.to_bytes()
        assert len(data) == 10
        assert to_int64(ProtoReader(data).uvarint()) == -1

    def test_default_values_are_skipped(self):
        w = ProtoWriter()
        w.varint_field(1, 0)
        w.sint64_field(2, 0)
        w.bool_field(3, False)
        w.bytes_field(4, b"")
        w.string_field(5, "")
        w.message_field(6, None)
        assert w.to_bytes() == b""

    def test_empty_message_is_written(self):
        w = ProtoWriter()
        w.message_field(2, b"")
        assert w.to_bytes() == b"\x12\x00"

    @pytest.mark.parametrize("value", [0, 1, -1, 2**62, -(2**63)])
    def test_zigzag_inverse(self, value):
        assert zigzag_decode(zigzag_encode(value)) == value

    def test_zigzag_small_values(self):
        assert zigzag_encode(-1) == 1
        assert zigzag_encode(1) == 2


class TestProtoReader:
    """Wire-level decoding."""

    def test_fields_yield_triples(self):
        w = ProtoWriter()
        w.varint_field(1, 7)
        w.string_field(2, "hi")
        assert list(ProtoReader(w.to_bytes()).fields()) == [(1, 0, 7), (2, 2, b"hi")]

    def test_repeated_fields_keep_order_and_last_wins(self):
        w = ProtoWriter()
        w.varint_field(1, 1)
        w.varint_field(1, 2)
        fields = decode_fields(w.to_bytes())
        assert fields[1] == [1, 2]
        assert last(fields, 1) == 2
        assert last(fields, 9, "default") == "default"

    def test_truncated_buffer_raises(self):
        with pytest.raises(CodecError):
            decode_fields(b"\x12\x05ab")

    def test_unterminated_varint_raises(self):
        with pytest.raises(CodecError):
            decode_fields(b"\x08\xff")

    def test_field_zero_rejected(self):
        with pytest.raises(CodecError):
            decode_fields(b"\x00\x01")

    def test_fixed_width_fields_are_skippable(self):
        data = b"\x09" + b"\x01" * 8 + b"\x15" + b"\x02" * 4 + b"\x18\x05"
        fields = decode_fields(data)
        assert last(fields, 3) == 5


class TestEnvelopeMessages:
    """TransactionBody, SignatureMap and the wrappers around them."""

    def _body(self):
        return TransactionBody(
            transaction_id=TransactionId(AccountId(0, 0, 2), Timestamp(1700000000, 5)),
            node_account_id=AccountId(0, 0, 3),
            transaction_fee=100_000_000,
            valid_duration=120,
            memo="hello",
            data_field=14,
            data=b"\x0a\x00",
        )

    def test_body_layout_starts_with_transaction_id(self):
        encoded = self._body().encode()
        assert encoded[0] == 0x0A
        fields = decode_fields(encoded)
        assert last(fields, 3) == 100_000_000
        assert last(fields, 6) == b"hello"
        assert last(fields, 14) == b"\x0a\x00"

    def test_body_decode(self):
        body = self._body()
        decoded = TransactionBody.decode(body.encode())
        assert decoded == body

    def test_body_without_node_has_no_field_two(self):
        body = self._body()
        body.node_account_id = None
        assert 2 not in decode_fields(body.encode())

    def test_signature_pair_keeps_type(self):
        pair = SignaturePair(b"\x01" * 33, b"\x02" * 64, SignatureType.ECDSA_SECP256K1)
        decoded = SignaturePair.decode(pair.encode())
        assert decoded == pair

    def test_signed_transaction_with_empty_sig_map(self):
        signed = SignedTransaction(b"body")
        decoded = SignedTransaction.decode(signed.encode())
        assert decoded.body_bytes == b"body"
        assert decoded.sig_map.pairs == []

    def test_signature_map_order_is_preserved(self):
        pairs = [SignaturePair(bytes([i]) * 32, bytes([i]) * 64) for i in range(3)]
        assert SignatureMap.decode(SignatureMap(pairs).encode()).pairs == pairs

    def test_transaction_wrapper(self):
        assert decode_transaction(encode_transaction(b"signed")) == b"signed"

    def test_transaction_without_signed_bytes_rejected(self):
        w = ProtoWriter()
        w.bytes_field(1, b"legacy body")
        with pytest.raises(CodecError):
            decode_transaction(w.to_bytes())

    def test_transaction_list(self):
        items = [encode_transaction(b"a"), encode_transaction(b"b")]
        assert decode_transaction_list(encode_transaction_list(items)) == items


class TestResponses:
    """Precheck and query response headers."""

    def test_precheck_response(self):
        decoded = PrecheckResponse.decode(PrecheckResponse(ResponseCode.BUSY, 10).encode())
        assert decoded.precheck_code is ResponseCode.BUSY
        assert decoded.cost == 10

    def test_ok_precheck_encodes_empty(self):
        assert PrecheckResponse().encode() == b""
        assert PrecheckResponse.decode(b"").precheck_code is ResponseCode.OK

    def test_unknown_code_decodes(self):
        w = ProtoWriter()
        w.varint_field(1, 9999)
        code = PrecheckResponse.decode(w.to_bytes()).precheck_code
        assert int(code) == 9999
        assert code.name == "UNRECOGNIZED_9999"

    def test_response_header(self):
        header = ResponseHeader(ResponseCode.RECEIPT_NOT_FOUND)
        assert ResponseHeader.decode(header.encode()) == header

    def test_query_header_defaults_to_answer_only(self):
        assert encode_query_header() == b""
