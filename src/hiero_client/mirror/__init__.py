"""
Mirror node REST access: session with retry and fee estimation.
"""

from .rest import MirrorRestClient, base_url
from .fees import (
    FeeEstimateMode,
    FeeExtra,
    FeeEstimate,
    NetworkFee,
    FeeEstimateResponse,
    FeeEstimateQuery,
)

__all__ = [
    "MirrorRestClient",
    "base_url",
    "FeeEstimateMode",
    "FeeExtra",
    "FeeEstimate",
    "NetworkFee",
    "FeeEstimateResponse",
    "FeeEstimateQuery",
]
