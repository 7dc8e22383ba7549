"""
Fee estimation through the mirror node.

The mirror's `/api/v1/network/fees` endpoint takes a serialized
`Transaction` protobuf and answers with the node, service and network fee
components in tinybars.
"""

from __future__ import annotations
import logging
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from ..runtime.errors import FeeEstimateError, ValidationError
from .rest import LOCAL_FEE_PORT

logger = logging.getLogger(__name__)

FEES_PATH = "/api/v1/network/fees"
PROTOBUF_CONTENT_TYPE = "application/protobuf"


class FeeEstimateMode(Enum):
    """How the mirror evaluates the transaction."""

    STATE = "STATE"
    TRANSIENT = "TRANSIENT"


class FeeExtra(BaseModel):
    """An extra fee component."""

    amount: int = Field(default=0, ge=0, description="Amount in tinybars")
    description: str = ""


class FeeEstimate(BaseModel):
    """Base fee plus extra components."""

    base: int = Field(default=0, ge=0, description="Base fee in tinybars")
    extras: List[FeeExtra] = Field(default_factory=list)

    @property
    def subtotal(self) -> int:
        return self.base + sum(extra.amount for extra in self.extras)


class NetworkFee(BaseModel):
    multiplier: float = 0.0
    subtotal: int = Field(default=0, ge=0)


class FeeEstimateResponse(BaseModel):
    """
    Parsed fee estimate.

    Field aliases follow the mirror's camelCase JSON.
    """

    node_fee: FeeEstimate = Field(default_factory=FeeEstimate, alias="nodeFee")
    service_fee: FeeEstimate = Field(default_factory=FeeEstimate, alias="serviceFee")
    network_fee: NetworkFee = Field(default_factory=NetworkFee, alias="networkFee")
    total: int = Field(default=0, ge=0)
    notes: List[str] = Field(default_factory=list)

    model_config = {
        "populate_by_name": True,
    }

    @classmethod
    def aggregate(cls, responses: List[FeeEstimateResponse]) -> FeeEstimateResponse:
        """
        Combine per-chunk estimates into one.

        Amounts add up and extras and notes are concatenated; the network
        multiplier is taken from the first chunk.
        """
        if not responses:
            return cls()
        if len(responses) == 1:
            return responses[0]
        return cls(
            node_fee=FeeEstimate(base=sum(r.node_fee.base for r in responses),
                                 extras=[e for r in responses for e in r.node_fee.extras]),
            service_fee=FeeEstimate(base=sum(r.service_fee.base for r in responses),
                                    extras=[e for r in responses for e in r.service_fee.extras]),
            network_fee=NetworkFee(multiplier=responses[0].network_fee.multiplier,
                                   subtotal=sum(r.network_fee.subtotal for r in responses)),
            total=sum(r.total for r in responses),
            notes=[n for r in responses for n in r.notes],
        )


class FeeEstimateQuery:
    """
    Estimate the fee of a transaction before submitting it.

    Example usage:
        ```python
        estimate = FeeEstimateQuery(transfer).set_mode(FeeEstimateMode.TRANSIENT).execute(client)
        print(estimate.total)
        ```
    """

    def __init__(self, transaction: Any = None, mode: FeeEstimateMode = FeeEstimateMode.STATE):
        self._transaction = transaction
        self._mode = mode
        self._max_attempts: Optional[int] = None

    def set_transaction(self, transaction: Any) -> FeeEstimateQuery:
        self._transaction = transaction
        return self

    def set_mode(self, mode: FeeEstimateMode) -> FeeEstimateQuery:
        self._mode = FeeEstimateMode(mode)
        return self

    @property
    def mode(self) -> FeeEstimateMode:
        return self._mode

    def set_max_attempts(self, max_attempts: int) -> FeeEstimateQuery:
        if max_attempts < 1:
            raise ValidationError("max_attempts must be at least 1")
        self._max_attempts = max_attempts
        return self

    def execute(self, client) -> FeeEstimateResponse:
        """
        Run the estimate.

        The transaction is frozen with the client if needed. Chunked
        transactions are estimated one chunk at a time and aggregated.

        Raises:
            ValidationError: If no transaction was set
            FeeEstimateError: On a non-retryable HTTP status, an invalid
                answer, or when every attempt failed
            MirrorNodeError: If no mirror is configured
        """
        if self._transaction is None:
            raise ValidationError("No transaction set for fee estimation")
        rest = client.mirror_rest()
        if self._max_attempts is not None:
            rest.max_attempts = self._max_attempts

        responses = []
        for payload in self._transaction.fee_estimate_payloads(client):
            data = rest.request(
                "POST", FEES_PATH,
                params={"mode": self._mode.value},
                data=payload,
                headers={"Content-Type": PROTOBUF_CONTENT_TYPE},
                local_port=LOCAL_FEE_PORT,
                error_cls=FeeEstimateError,
            )
            responses.append(self._parse(data))
        logger.debug(f"Fee estimate over {len(responses)} chunk(s)")
        return FeeEstimateResponse.aggregate(responses)

    @staticmethod
    def _parse(data: Any) -> FeeEstimateResponse:
        if not isinstance(data, dict):
            raise FeeEstimateError("Fee estimate response is not a JSON object")
        try:
            return FeeEstimateResponse.model_validate(data)
        except ValueError as e:
            raise FeeEstimateError(f"Failed to parse fee estimate response: {e}", cause=e)


__all__ = [
    "FeeEstimateMode",
    "FeeExtra",
    "FeeEstimate",
    "NetworkFee",
    "FeeEstimateResponse",
    "FeeEstimateQuery",
    "FEES_PATH",
]
