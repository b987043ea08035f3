"""
Listing Normaliser - RawListingRecord to ComparableSale adapter

Listing sources return records in many shapes: wrapped in {"property": ...}
or {"data": ...} envelopes, with prices as numbers or {"value": ...}
objects, dates as ISO strings or epoch milliseconds. Every field is read
through one fixed priority list of dotted paths, so the pipeline never
sees source-specific shapes.

Distance is not read from the record: the engine recomputes it.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Final, Iterable, List, Optional

from deal_engine.comp_engine.models import ComparableSale, DataSource, ListingStatus
from deal_engine.ingestion.schema import RawListingRecord, RejectionRecord


logger = logging.getLogger(__name__)


# =============================================================================
# Field Priorities
# =============================================================================

# First path yielding a usable value wins
FIELD_PRIORITY: Final[dict[str, tuple[str, ...]]] = {
    "source_id": ("zpid", "id", "listingId", "mlsId", "propertyId"),
    "latitude": (
        "latitude", "lat", "coordinates.lat", "location.latitude", "location.lat",
    ),
    "longitude": (
        "longitude", "lng", "lon", "coordinates.lng", "location.longitude", "location.lng",
    ),
    "beds": ("beds", "bedrooms", "bedroomCount", "resoFacts.bedrooms"),
    "baths": ("baths", "bathrooms", "bathroomCount", "resoFacts.bathrooms"),
    "square_footage": (
        "squareFootage", "livingArea", "livingAreaValue", "sqft", "area",
        "resoFacts.livingArea",
    ),
    "lot_size": ("lotSize", "lotAreaValue", "lotSizeSqft", "resoFacts.lotSize"),
    "year_built": ("yearBuilt", "resoFacts.yearBuilt"),
    "property_type": ("propertyType", "homeType", "property_type", "type"),
    "sale_price": (
        "price.value",
        "hdpView.price",
        "salePrice.value",
        "salePrice",
        "lastSoldPrice",
        "soldPrice",
        "closingPrice",
        "price.amount",
        "price",
    ),
    "list_price": ("listPrice", "listing.listPrice", "askingPrice"),
    "sale_date": (
        "listing.dateSold",
        "listing.saleDate",
        "listing.closingDate",
        "saleDate",
        "dateSold",
        "lastSoldDate",
        "closingDate",
    ),
    "status": (
        "listing.listingStatus",
        "homeStatus",
        "listingStatus",
        "listing_status",
        "status",
    ),
    "marketing_status": ("listing.marketingStatus", "marketingStatus"),
    "days_on_market": ("daysOnMarket", "daysOnZillow", "dom"),
    "image_urls": ("images", "imageUrls", "photos", "media.propertyPhotoLinks"),
}

ADDRESS_STRING_FIELDS: Final[tuple[str, ...]] = (
    "streetAddress", "fullAddress", "formattedAddress",
)

ACTIVE_STATUSES: Final[frozenset[str]] = frozenset({
    "for_sale", "for sale", "active", "pending", "coming_soon", "for_rent",
})

DATE_FORMATS: Final[tuple[str, ...]] = ("%Y-%m-%d", "%m/%d/%Y", "%Y/%m/%d")

# Epoch timestamps above this are milliseconds
EPOCH_MILLIS_THRESHOLD = 100_000_000_000


# =============================================================================
# Value Helpers
# =============================================================================


def lookup(record: Any, path: str) -> Any:
    """Resolve a dotted path in nested dictionaries; None if any part is missing."""
    value = record
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
        if value is None:
            return None
    return value


def parse_number(value: Any) -> Optional[float]:
    """Parse ints, floats and numeric strings ("$315,000"); None otherwise."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = value.replace(",", "").replace("$", "").strip()
        if not cleaned:
            return None
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def parse_date(value: Any) -> Optional[date]:
    """Parse ISO strings, common US formats and epoch seconds/milliseconds."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > EPOCH_MILLIS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            pass
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text[:10], fmt).date()
            except ValueError:
                continue
    return None


def first_value(record: RawListingRecord, field: str, parser=None) -> Any:
    """Return the first usable value for a field in priority order."""
    for path in FIELD_PRIORITY[field]:
        raw = lookup(record, path)
        if raw is None or raw == "":
            continue
        if parser is None:
            return raw
        parsed = parser(raw)
        if parsed is not None:
            return parsed
    return None


def unwrap(record: RawListingRecord) -> RawListingRecord:
    """Strip {"property": ...} / {"data": ...} envelopes around the payload."""
    if record.get("address") or record.get("price"):
        return record
    for key in ("property", "data"):
        inner = record.get(key)
        if isinstance(inner, dict) and (
            inner.get("price") or inner.get("zpid") or inner.get("address")
        ):
            return inner
    return record


def read_address(record: RawListingRecord) -> str:
    """Build a single-line address from an address object or string fields."""
    address = record.get("address")
    if isinstance(address, dict):
        parts = [
            address.get("streetAddress"),
            address.get("city"),
            address.get("state"),
            address.get("zipcode") or address.get("zipCode") or address.get("postalCode"),
        ]
        joined = ", ".join(str(p).strip() for p in parts if p)
        if joined:
            return joined
    if isinstance(address, str) and address.strip():
        return address.strip()

    for name in ADDRESS_STRING_FIELDS:
        value = record.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()

    if record.get("street") and record.get("city"):
        parts = [record["street"], record["city"], record.get("state"), record.get("zipCode")]
        return ", ".join(str(p).strip() for p in parts if p)

    return ""


def read_image_urls(record: RawListingRecord) -> List[str]:
    raw = first_value(record, "image_urls")
    if isinstance(raw, str):
        return [raw]
    if isinstance(raw, dict):
        raw = list(raw.values())
    urls = []
    for item in raw or []:
        if isinstance(item, str):
            urls.append(item)
        elif isinstance(item, dict):
            url = item.get("url") or item.get("href") or item.get("mixedSources")
            if isinstance(url, str):
                urls.append(url)
    return urls


# =============================================================================
# Normaliser
# =============================================================================


class ListingNormaliser:
    """
    Converts raw listing records to ComparableSale.

    Responsibilities:
    1. Read each field through FIELD_PRIORITY
    2. Decide sold status from status, sale date and price fields
    3. Reject records that cannot be normalised and track the rejections
    """

    def __init__(self) -> None:
        """Initialise normaliser with rejection tracking."""
        self._rejections: list[RejectionRecord] = []

    @property
    def rejections(self) -> list[RejectionRecord]:
        """Get all rejection records from this normaliser session."""
        return self._rejections.copy()

    def clear_rejections(self) -> None:
        self._rejections.clear()

    def normalise(self, raw: Any, source: str) -> Optional[ComparableSale]:
        """
        Normalise one raw record.

        Args:
            raw: Record from the listing source
            source: Source name, e.g. "zillow"

        Returns:
            ComparableSale if the record is a usable completed sale, None if
            rejected (rejection recorded)
        """
        if not isinstance(raw, dict):
            self._reject(source, "", "INVALID_RECORD", None)
            return None

        record = unwrap(raw)
        source_id = first_value(record, "source_id")
        source_id = str(source_id) if source_id is not None else ""

        address = read_address(record)
        if not address:
            self._reject(source, source_id, "MISSING_ADDRESS", raw)
            return None

        latitude = first_value(record, "latitude", parse_number)
        longitude = first_value(record, "longitude", parse_number)
        if latitude is None or longitude is None:
            self._reject(source, source_id or address, "MISSING_COORDINATES", raw)
            return None

        sale_price = first_value(record, "sale_price", parse_number)
        list_price = first_value(record, "list_price", parse_number)
        sale_date = first_value(record, "sale_date", parse_date)

        if not self.is_sold(record, sale_date, sale_price, list_price):
            self._reject(source, source_id or address, "NOT_SOLD", raw)
            return None

        # Sold records without a sale price fall back to the list price
        if not sale_price and list_price:
            sale_price = list_price

        year_built = first_value(record, "year_built", parse_number)
        days_on_market = first_value(record, "days_on_market", parse_number)
        property_type = first_value(record, "property_type")

        try:
            return ComparableSale(
                address=address,
                latitude=latitude,
                longitude=longitude,
                beds=first_value(record, "beds", parse_number),
                baths=first_value(record, "baths", parse_number),
                square_footage=first_value(record, "square_footage", parse_number),
                lot_size=first_value(record, "lot_size", parse_number),
                year_built=int(year_built) if year_built else None,
                property_type=str(property_type) if property_type else "",
                sale_date=sale_date,
                sale_price=sale_price,
                list_price=list_price,
                listing_status=ListingStatus.SOLD,
                days_on_market=int(days_on_market) if days_on_market is not None else None,
                data_source=DataSource.from_string(source),
                source_id=source_id,
                image_urls=read_image_urls(record),
            )
        except ValueError:
            self._reject(source, source_id or address, "INVALID_VALUE", raw)
            return None

    def normalise_all(self, records: Iterable[Any], source: str) -> List[ComparableSale]:
        """Normalise a batch, dropping rejected records."""
        comps = []
        for raw in records:
            comp = self.normalise(raw, source)
            if comp is not None:
                comps.append(comp)
        return comps

    @staticmethod
    def is_sold(
        record: RawListingRecord,
        sale_date: Optional[date],
        sale_price: Optional[float],
        list_price: Optional[float],
    ) -> bool:
        """
        Decide whether a record is a completed sale.

        Sold when the status says so ("sold", "recentlySold", "closed").
        Explicitly active or pending records are never sold. Otherwise a
        sale date, or a sale price that differs from the list price, marks
        the record sold.
        """
        status = str(first_value(record, "status") or "").lower().strip()
        marketing = str(first_value(record, "marketing_status") or "").lower().strip()

        if "sold" in status or status == "closed" or marketing == "closed":
            return True
        if status in ACTIVE_STATUSES or marketing in ACTIVE_STATUSES:
            return False
        if sale_date is not None:
            return True
        return bool(sale_price and list_price and sale_price != list_price)

    def _reject(
        self,
        source: str,
        source_listing_id: str,
        rejection_code: str,
        raw_data: Optional[Any],
    ) -> None:
        record = RejectionRecord.create(
            source=source,
            source_listing_id=source_listing_id,
            rejection_code=rejection_code,
            raw_data=raw_data,
        )
        self._rejections.append(record)
        logger.warning(
            "Rejected listing %s from %s: %s",
            source_listing_id or "<unknown>",
            source,
            rejection_code,
        )
