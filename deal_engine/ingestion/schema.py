"""
Ingestion Schema - Raw listing records and rejection tracking

Raw records from listing sources are untrusted dictionaries of varying
shape. Records that cannot be normalised are rejected with a code from
REJECTION_CODES and never partially populated.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Final, Optional


# Unstructured record returned by a comp acquisition collaborator
RawListingRecord = dict[str, Any]


REJECTION_CODES: Final[dict[str, str]] = {
    "INVALID_RECORD": "Record is not a mapping",
    "MISSING_ADDRESS": "No address could be read from the record",
    "MISSING_COORDINATES": "No latitude/longitude could be read from the record",
    "NOT_SOLD": "Record is not a completed sale",
    "INVALID_VALUE": "Record contains a negative size or price",
}


@dataclass(frozen=True)
class RejectionRecord:
    """
    Record of a listing that failed normalisation.

    Used for audit trail and data quality monitoring.
    """

    source: str
    source_listing_id: str
    rejection_code: str
    rejection_reason: str
    raw_data_hash: str
    rejected_at: datetime

    @classmethod
    def create(
        cls,
        source: str,
        source_listing_id: str,
        rejection_code: str,
        raw_data: Optional[Any] = None,
    ) -> "RejectionRecord":
        """Create a rejection record with automatic hash and timestamp."""
        reason = REJECTION_CODES.get(rejection_code, f"Unknown code: {rejection_code}")

        # Hash raw data for debugging without storing PII
        if raw_data:
            data_str = json.dumps(raw_data, sort_keys=True, default=str)
            raw_hash = hashlib.sha256(data_str.encode()).hexdigest()[:16]
        else:
            raw_hash = "no_data"

        return cls(
            source=source,
            source_listing_id=source_listing_id,
            rejection_code=rejection_code,
            rejection_reason=reason,
            raw_data_hash=raw_hash,
            rejected_at=datetime.utcnow(),
        )

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "source_listing_id": self.source_listing_id,
            "rejection_code": self.rejection_code,
            "rejection_reason": self.rejection_reason,
            "raw_data_hash": self.raw_data_hash,
            "rejected_at": self.rejected_at.isoformat(),
        }
