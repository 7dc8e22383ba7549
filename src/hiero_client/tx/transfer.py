"""
Hbar transfers.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Union

from ..codec.reader import ProtoReader, decode_fields, last, zigzag_decode
from ..codec.writer import ProtoWriter
from ..runtime.errors import ValidationError
from ..runtime.ids import AccountId
from .transaction import Transaction


@dataclass(frozen=True)
class AccountAmount:
    """One side of a transfer, in tinybars (negative for the sender)."""

    account_id: AccountId
    amount: int
    is_approval: bool = False

    def encode(self) -> bytes:
        w = ProtoWriter()
        w.message_field(1, self.account_id.encode())
        w.sint64_field(2, self.amount)
        w.bool_field(3, self.is_approval)
        return w.to_bytes()

    @classmethod
    def decode(cls, data: bytes) -> AccountAmount:
        fields = decode_fields(data)
        return cls(
            AccountId.decode(last(fields, 1, b"")),
            zigzag_decode(last(fields, 2, 0)),
            bool(last(fields, 3, 0)),
        )


def encode_transfer_list(amounts: List[AccountAmount]) -> bytes:
    w = ProtoWriter()
    for amount in amounts:
        w.message_field(1, amount.encode())
    return w.to_bytes()


def decode_transfer_list(data: bytes) -> List[AccountAmount]:
    return [AccountAmount.decode(v) for v in decode_fields(data).get(1, [])]


class TransferTransaction(Transaction):
    """
    Move hbar between accounts.

    Transfers to the same account are merged; the amounts of one
    transaction should sum to zero.

    Example usage:
        ```python
        tx = (TransferTransaction()
              .add_hbar_transfer("0.0.1234", -10)
              .add_hbar_transfer("0.0.5678", 10))
        ```
    """

    _data_field = 14
    _grpc_method = "/proto.CryptoService/cryptoTransfer"

    def __init__(self):
        super().__init__()
        self._hbar_transfers: Dict[AccountId, AccountAmount] = {}

    def add_hbar_transfer(self, account_id: Union[str, AccountId], amount: int) -> TransferTransaction:
        return self._add_transfer(account_id, amount, False)

    def add_approved_hbar_transfer(self, account_id: Union[str, AccountId], amount: int) -> TransferTransaction:
        """Transfer spending an allowance granted to the payer."""
        return self._add_transfer(account_id, amount, True)

    def _add_transfer(self, account_id, amount: int, is_approval: bool) -> TransferTransaction:
        self._require_not_frozen()
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise ValidationError(f"amount must be an int number of tinybars, got {amount!r}")
        account_id = AccountId.of(account_id)
        existing = self._hbar_transfers.get(account_id)
        if existing is not None:
            if existing.is_approval != is_approval:
                raise ValidationError(f"Account {account_id} has both approved and unapproved transfers")
            amount += existing.amount
        self._hbar_transfers[account_id] = AccountAmount(account_id, amount, is_approval)
        return self

    @property
    def hbar_transfers(self) -> Dict[AccountId, int]:
        return {account: entry.amount for account, entry in sorted(self._hbar_transfers.items())}

    def _encode_data(self, chunk: int) -> bytes:
        amounts = [self._hbar_transfers[a] for a in sorted(self._hbar_transfers)]
        w = ProtoWriter()
        w.message_field(1, encode_transfer_list(amounts))
        return w.to_bytes()

    def _decode_data(self, payloads: List[bytes]) -> None:
        for field_number, _, value in ProtoReader(payloads[0]).fields():
            if field_number == 1:
                for entry in decode_transfer_list(value):
                    self._hbar_transfers[entry.account_id] = entry


__all__ = ["TransferTransaction", "AccountAmount"]
