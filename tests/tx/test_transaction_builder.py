"""
Tests for the transaction request builder: freezing, signing, hashing and
serialization.
"""

import pytest

from helpers import OPERATOR_ID, mk_ed25519_key, mk_ecdsa_key, mk_transaction_id, mk_transfer

from hiero_client.codec.messages import (
    SignedTransaction,
    TransactionBody,
    decode_transaction,
    decode_transaction_list,
)
from hiero_client.crypto.hashes import sha384
from hiero_client.runtime.errors import CodecError, FrozenError, InvalidKeyError, ValidationError
from hiero_client.runtime.ids import AccountId
from hiero_client.tx.account import AccountCreateTransaction
from hiero_client.tx.topic import TopicCreateTransaction
from hiero_client.tx.transaction import Transaction
from hiero_client.tx.transfer import TransferTransaction


def signed_entries(tx):
    """(body, signed transaction) for every entry of to_bytes()."""
    out = []
    for message in decode_transaction_list(tx.to_bytes()):
        signed = SignedTransaction.decode(decode_transaction(message))
        out.append((TransactionBody.decode(signed.body_bytes), signed))
    return out


def frozen_transfer(nodes=("0.0.3",)):
    return mk_transfer().set_transaction_id(mk_transaction_id()).set_node_account_ids(list(nodes)).freeze()


class TestFreeze:
    """Freezing fixes every field."""

    def test_freeze_without_client_needs_id_and_nodes(self):
        with pytest.raises(ValidationError, match="Transaction ID"):
            mk_transfer().freeze()
        with pytest.raises(ValidationError, match="Node account ids"):
            mk_transfer().set_transaction_id(mk_transaction_id()).freeze()

    def test_freeze_with_client_fills_defaults(self, client):
        tx = mk_transfer().freeze_with(client)
        assert tx.is_frozen
        assert tx.transaction_id.account_id == AccountId.of(OPERATOR_ID)
        assert len(tx.node_account_ids) == 1
        assert tx.max_transaction_fee == client.default_max_transaction_fee

    def test_explicit_nodes_win(self, client):
        tx = mk_transfer().set_node_account_ids(["0.0.5", "0.0.4"]).freeze_with(client)
        assert tx.node_account_ids == [AccountId.of("0.0.5"), AccountId.of("0.0.4")]

    def test_node_ids_must_be_distinct_and_non_empty(self):
        with pytest.raises(ValidationError):
            mk_transfer().set_node_account_ids([])
        with pytest.raises(ValidationError):
            mk_transfer().set_node_account_ids(["0.0.3", "0.0.3"])

    def test_setters_raise_once_frozen(self):
        tx = frozen_transfer()
        with pytest.raises(FrozenError):
            tx.set_transaction_memo("late")
        with pytest.raises(FrozenError):
            tx.add_hbar_transfer("0.0.7", 1)
        with pytest.raises(FrozenError):
            tx.set_node_account_ids(["0.0.4"])

    def test_freeze_twice_is_noop(self):
        tx = frozen_transfer()
        before = tx.to_bytes()
        assert tx.freeze() is tx
        assert tx.to_bytes() == before

    def test_memo_limit(self):
        mk_transfer().set_transaction_memo("m" * 100)
        with pytest.raises(ValidationError):
            mk_transfer().set_transaction_memo("m" * 101)

    def test_one_body_per_node(self):
        tx = frozen_transfer(("0.0.3", "0.0.4", "0.0.5"))
        bodies = [body for body, _ in signed_entries(tx)]
        assert [str(b.node_account_id) for b in bodies] == ["0.0.3", "0.0.4", "0.0.5"]
        assert {b.transaction_id for b in bodies} == {mk_transaction_id()}
        assert all(b.transaction_fee == 200_000_000 and b.valid_duration == 120 for b in bodies)


class TestSigning:
    """Signatures cover exactly the body bytes."""

    def test_sign_requires_frozen(self):
        with pytest.raises(ValidationError):
            mk_transfer().sign(mk_ed25519_key(1))

    def test_every_body_is_signed(self):
        ed_key, ec_key = mk_ed25519_key(1), mk_ecdsa_key(2)
        tx = frozen_transfer(("0.0.3", "0.0.4")).sign(ed_key).sign(ec_key)
        for _, signed in signed_entries(tx):
            pairs = signed.sig_map.pairs
            assert [p.pub_key_prefix for p in pairs] == [ed_key.public_key.to_bytes_raw(),
                                                          ec_key.public_key.to_bytes_raw()]
            assert ed_key.public_key.verify(signed.body_bytes, pairs[0].signature)
            assert ec_key.public_key.verify(signed.body_bytes, pairs[1].signature)

    def test_signing_twice_with_same_key_is_noop(self):
        key = mk_ed25519_key(1)
        tx = frozen_transfer().sign(key).sign(key)
        [(_, signed)] = signed_entries(tx)
        assert len(signed.sig_map.pairs) == 1

    def test_sign_with_external_signer(self):
        key = mk_ed25519_key(3)
        bodies = []

        def signer(body):
            bodies.append(body)
            return key.sign(body)

        tx = frozen_transfer().sign_with(key.public_key, signer)
        [(_, signed)] = signed_entries(tx)
        assert bodies == [signed.body_bytes]

    def test_add_signature(self):
        key = mk_ed25519_key(4)
        tx = frozen_transfer()
        [(_, unsigned)] = signed_entries(tx)
        tx.add_signature(key.public_key, key.sign(unsigned.body_bytes))
        signatures = tx.get_signatures()
        assert list(signatures) == [AccountId.of("0.0.3")]
        assert key.public_key.verify(unsigned.body_bytes, signatures[AccountId.of("0.0.3")][key.public_key])

    def test_add_signature_rules(self):
        key = mk_ed25519_key(4)
        with pytest.raises(InvalidKeyError):
            frozen_transfer().add_signature(key.public_key, b"\x00" * 10)
        with pytest.raises(ValidationError):
            frozen_transfer(("0.0.3", "0.0.4")).add_signature(key.public_key, b"\x00" * 64)


class TestHashes:
    def test_hash_is_sha384_of_signed_bytes(self):
        tx = frozen_transfer(("0.0.3", "0.0.4")).sign(mk_ed25519_key(1))
        per_node = tx.get_transaction_hash_per_node()
        entries = signed_entries(tx)
        assert per_node[AccountId.of("0.0.3")] == sha384(entries[0][1].encode())
        assert per_node[AccountId.of("0.0.4")] == sha384(entries[1][1].encode())
        assert tx.get_transaction_hash() == per_node[AccountId.of("0.0.3")]

    def test_hash_changes_with_signatures(self):
        tx = frozen_transfer()
        unsigned = tx.get_transaction_hash()
        tx.sign(mk_ed25519_key(1))
        assert tx.get_transaction_hash() != unsigned


class TestSerialization:
    """to_bytes / from_bytes."""

    def test_frozen_roundtrip_is_exact(self):
        tx = (mk_transfer()
              .set_transaction_id(mk_transaction_id())
              .set_transaction_memo("rent")
              .set_node_account_ids(["0.0.3", "0.0.4"])
              .freeze()
              .sign(mk_ed25519_key(1)))
        data = tx.to_bytes()
        restored = Transaction.from_bytes(data)
        assert isinstance(restored, TransferTransaction)
        assert restored.is_frozen
        assert restored.to_bytes() == data
        assert restored.transaction_memo == "rent"
        assert restored.node_account_ids == tx.node_account_ids
        assert restored.hbar_transfers == tx.hbar_transfers

    def test_restored_transaction_can_be_cosigned(self):
        first, second = mk_ed25519_key(1), mk_ed25519_key(2)
        data = frozen_transfer().sign(first).to_bytes()
        restored = Transaction.from_bytes(data).sign(second)
        [(_, signed)] = signed_entries(restored)
        prefixes = [p.pub_key_prefix for p in signed.sig_map.pairs]
        assert prefixes == [first.public_key.to_bytes_raw(), second.public_key.to_bytes_raw()]

    def test_draft_has_no_node_and_no_signatures(self):
        draft = mk_transfer().set_transaction_id(mk_transaction_id())
        [(body, signed)] = signed_entries(draft)
        assert body.node_account_id is None
        assert signed.sig_map.pairs == []
        restored = Transaction.from_bytes(draft.to_bytes())
        assert not restored.is_frozen
        assert restored.hbar_transfers == draft.hbar_transfers

    def test_empty_list_rejected(self):
        with pytest.raises(CodecError):
            Transaction.from_bytes(b"")


class TestTransactionKinds:
    def test_transfers_merge_per_account(self):
        tx = mk_transfer(10).add_hbar_transfer("0.0.1001", 5).add_hbar_transfer(OPERATOR_ID, -5)
        assert tx.hbar_transfers == {AccountId.of(OPERATOR_ID): -15, AccountId.of("0.0.1001"): 15}

    def test_mixed_approval_rejected(self):
        with pytest.raises(ValidationError):
            TransferTransaction().add_hbar_transfer("0.0.5", 1).add_approved_hbar_transfer("0.0.5", 1)

    def test_account_create_requires_key(self):
        tx = AccountCreateTransaction().set_transaction_id(mk_transaction_id()).set_node_account_ids(["0.0.3"])
        with pytest.raises(ValidationError):
            tx.freeze()

    def test_account_create_fields_survive_serialization(self):
        key = mk_ecdsa_key(9)
        tx = (AccountCreateTransaction()
              .set_key(key)
              .set_initial_balance(1_000)
              .set_receiver_signature_required(True)
              .set_account_memo("new account")
              .set_transaction_id(mk_transaction_id())
              .set_node_account_ids(["0.0.3"])
              .freeze())
        restored = Transaction.from_bytes(tx.to_bytes())
        assert isinstance(restored, AccountCreateTransaction)
        assert restored.key == key.public_key
        assert restored.initial_balance == 1_000
        assert restored.account_memo == "new account"

    def test_topic_create_defaults_auto_renew_account_to_payer(self):
        tx = (TopicCreateTransaction()
              .set_topic_memo("topic")
              .set_transaction_id(mk_transaction_id("0.0.77"))
              .set_node_account_ids(["0.0.3"])
              .freeze())
        assert tx.auto_renew_account_id == AccountId.of("0.0.77")
        restored = Transaction.from_bytes(tx.to_bytes())
        assert restored.auto_renew_account_id == AccountId.of("0.0.77")
        assert restored.topic_memo == "topic"
