"""
Transactions, receipts and the execution harness.
"""

from .execute import Executable, Executor
from .response import TransactionResponse
from .receipt import TransactionReceipt, TransactionReceiptQuery
from .transaction import Transaction
from .chunked import ChunkedTransaction
from .transfer import TransferTransaction, AccountAmount
from .account import AccountCreateTransaction
from .topic import TopicCreateTransaction, TopicMessageSubmitTransaction
from .file import FileAppendTransaction

__all__ = [
    "Executable",
    "Executor",
    "TransactionResponse",
    "TransactionReceipt",
    "TransactionReceiptQuery",
    "Transaction",
    "ChunkedTransaction",
    "TransferTransaction",
    "AccountAmount",
    "AccountCreateTransaction",
    "TopicCreateTransaction",
    "TopicMessageSubmitTransaction",
    "FileAppendTransaction",
]
