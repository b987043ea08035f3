"""
Ingestion Layer

Normalises raw listing records from comp acquisition collaborators into
ComparableSale and drives acquisition through bounded search expansion
under an injected rate limiter.
"""

from .schema import REJECTION_CODES, RawListingRecord, RejectionRecord
from .adapter import FIELD_PRIORITY, ListingNormaliser
from .rate_limit import RateLimiter, RateLimitExceeded
from .acquisition import CompAcquisition, CompSource

__all__ = [
    "REJECTION_CODES",
    "RawListingRecord",
    "RejectionRecord",
    "FIELD_PRIORITY",
    "ListingNormaliser",
    "RateLimiter",
    "RateLimitExceeded",
    "CompAcquisition",
    "CompSource",
]
