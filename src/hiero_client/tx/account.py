"""
Account creation.
"""

from __future__ import annotations
from typing import List, Optional, Union

from ..codec.messages import decode_duration, encode_duration
from ..codec.reader import ProtoReader
from ..codec.writer import ProtoWriter
from ..crypto.keys import PrivateKey, PublicKey
from ..runtime.errors import ValidationError
from .transaction import Transaction

DEFAULT_AUTO_RENEW_PERIOD = 7_890_000  # about 90 days
MAX_ENTITY_MEMO_BYTES = 100


def _public(key: Union[PublicKey, PrivateKey]) -> PublicKey:
    if isinstance(key, PrivateKey):
        return key.public_key
    if isinstance(key, PublicKey):
        return key
    raise ValidationError(f"Expected a PublicKey or PrivateKey, got {type(key).__name__}")


def _check_entity_memo(memo: str) -> str:
    if not isinstance(memo, str):
        raise ValidationError(f"memo must be a str, got {type(memo).__name__}")
    if len(memo.encode("utf-8")) > MAX_ENTITY_MEMO_BYTES:
        raise ValidationError(f"memo must not exceed {MAX_ENTITY_MEMO_BYTES} bytes")
    return memo


class AccountCreateTransaction(Transaction):
    """
    Create a new account controlled by a key.

    The receipt's account_id holds the new account.
    """

    _data_field = 11
    _grpc_method = "/proto.CryptoService/createAccount"

    def __init__(self):
        super().__init__()
        self._key: Optional[PublicKey] = None
        self._initial_balance = 0
        self._receiver_signature_required = False
        self._auto_renew_period = DEFAULT_AUTO_RENEW_PERIOD
        self._account_memo = ""

    def set_key(self, key: Union[PublicKey, PrivateKey]) -> AccountCreateTransaction:
        self._require_not_frozen()
        self._key = _public(key)
        return self

    @property
    def key(self) -> Optional[PublicKey]:
        return self._key

    def set_initial_balance(self, tinybars: int) -> AccountCreateTransaction:
        self._require_not_frozen()
        if not isinstance(tinybars, int) or isinstance(tinybars, bool) or tinybars < 0:
            raise ValidationError(f"initial balance must be a non-negative int, got {tinybars!r}")
        self._initial_balance = tinybars
        return self

    @property
    def initial_balance(self) -> int:
        return self._initial_balance

    def set_receiver_signature_required(self, required: bool) -> AccountCreateTransaction:
        self._require_not_frozen()
        self._receiver_signature_required = bool(required)
        return self

    def set_auto_renew_period(self, seconds: int) -> AccountCreateTransaction:
        self._require_not_frozen()
        if not isinstance(seconds, int) or seconds <= 0:
            raise ValidationError(f"auto renew period must be a positive int, got {seconds!r}")
        self._auto_renew_period = seconds
        return self

    def set_account_memo(self, memo: str) -> AccountCreateTransaction:
        self._require_not_frozen()
        self._account_memo = _check_entity_memo(memo)
        return self

    @property
    def account_memo(self) -> str:
        return self._account_memo

    def _on_freeze(self, client) -> None:
        if self._key is None:
            raise ValidationError("AccountCreateTransaction requires a key")

    def _encode_data(self, chunk: int) -> bytes:
        w = ProtoWriter()
        w.message_field(1, self._key.to_proto_key() if self._key is not None else None)
        w.varint_field(2, self._initial_balance)
        w.bool_field(8, self._receiver_signature_required)
        w.message_field(9, encode_duration(self._auto_renew_period))
        w.string_field(13, self._account_memo)
        return w.to_bytes()

    def _decode_data(self, payloads: List[bytes]) -> None:
        for field_number, _, value in ProtoReader(payloads[0]).fields():
            if field_number == 1:
                self._key = PublicKey.from_proto_key(value)
            elif field_number == 2:
                self._initial_balance = value
            elif field_number == 8:
                self._receiver_signature_required = bool(value)
            elif field_number == 9:
                self._auto_renew_period = decode_duration(value)
            elif field_number == 13:
                self._account_memo = value.decode("utf-8")


__all__ = ["AccountCreateTransaction", "DEFAULT_AUTO_RENEW_PERIOD"]
