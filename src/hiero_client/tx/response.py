"""
Result of a successful submission.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from ..runtime.cancellation import CancellationToken
from ..runtime.ids import AccountId, TransactionId

if TYPE_CHECKING:
    from ..client.client import Client
    from .receipt import TransactionReceipt, TransactionReceiptQuery


@dataclass(frozen=True)
class TransactionResponse:
    """
    A submission the network accepted at precheck.

    Attributes:
        node_id: Node that accepted the submission
        transaction_id: Id of the submitted transaction (of the chunk, for chunked requests)
        transaction_hash: SHA-384 of the signed transaction sent to that node
    """

    node_id: AccountId
    transaction_id: TransactionId
    transaction_hash: bytes

    def get_receipt_query(self) -> TransactionReceiptQuery:
        """A receipt query pinned to the node that accepted the submission."""
        from .receipt import TransactionReceiptQuery

        return (TransactionReceiptQuery()
                .set_transaction_id(self.transaction_id)
                .set_node_account_ids([self.node_id]))

    def get_receipt(self, client: Optional[Client] = None, timeout: Optional[float] = None,
                    cancel: Optional[CancellationToken] = None,
                    validate_status: bool = True) -> TransactionReceipt:
        """
        Wait for the transaction to reach consensus and return its receipt.

        Raises:
            ReceiptStatusError: If validate_status and the receipt status is not SUCCESS
            ExecutionTimeoutError: If no final receipt arrives before the deadline
        """
        return self.get_receipt_query().set_validate_status(validate_status).execute(client, timeout, cancel)

    def __str__(self) -> str:
        return f"TransactionResponse({self.transaction_id} via {self.node_id}, hash={self.transaction_hash.hex()})"


__all__ = ["TransactionResponse"]
