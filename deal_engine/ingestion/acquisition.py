"""
Comp Acquisition - drives a listing source through search expansion

Fetches sold listings for successively wider radius/window steps,
normalises them, recomputes distance, de-duplicates by address and keeps
only comps inside the current step.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional

from deal_engine.comp_engine.filters import is_within_radius, is_within_window, with_distance
from deal_engine.comp_engine.models import ComparableSale, SearchParams, SubjectProperty
from deal_engine.comp_engine.search import SearchExpansion, SearchOutcome, SearchStep
from deal_engine.ingestion.adapter import ListingNormaliser
from deal_engine.ingestion.rate_limit import RateLimiter
from deal_engine.ingestion.schema import RawListingRecord


logger = logging.getLogger(__name__)


class CompSource(ABC):
    """
    Abstract interface for comp acquisition collaborators.

    Implementations own retries, timeouts and transport; they return a
    finite list of raw records which the engine treats as untrusted.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Source name used for data_source and rate limiting, e.g. "zillow"."""
        ...

    @abstractmethod
    def fetch_sold(
        self,
        subject: SubjectProperty,
        radius_miles: float,
        window_months: int,
    ) -> List[RawListingRecord]:
        """
        Fetch raw sold-listing records around the subject.

        Args:
            subject: Property being valued
            radius_miles: Search radius
            window_months: Sales no older than this

        Returns:
            Raw records (may include unsold or malformed ones)
        """
        ...


class CompAcquisition:
    """
    Runs a CompSource through bounded search expansion.

    The rate limiter is injected so that limits are shared only where the
    caller chooses to share the limiter instance.
    """

    def __init__(
        self,
        source: CompSource,
        normaliser: Optional[ListingNormaliser] = None,
        rate_limiter: Optional[RateLimiter] = None,
        reference_date: date = None,
    ):
        self._source = source
        self._normaliser = normaliser or ListingNormaliser()
        self._rate_limiter = rate_limiter
        self._reference_date = reference_date or date.today()

    @property
    def normaliser(self) -> ListingNormaliser:
        return self._normaliser

    def acquire(
        self,
        subject: SubjectProperty,
        params: SearchParams,
        identifier: Optional[str] = None,
    ) -> SearchOutcome:
        """
        Find comps for a subject, widening the search until enough are found.

        Args:
            subject: Property being valued
            params: Search parameters from build_search_params
            identifier: Rate limit key (default: source name)

        Returns:
            SearchOutcome with de-duplicated comps within the final step

        Raises:
            RateLimitExceeded: If the injected limiter refuses a fetch
        """
        found: dict[str, ComparableSale] = {}
        limit_key = identifier or self._source.name

        def search(step: SearchStep) -> List[ComparableSale]:
            if self._rate_limiter is not None:
                self._rate_limiter.acquire(limit_key)

            raw = self._source.fetch_sold(subject, step.radius_miles, step.window_months)
            for comp in self._normaliser.normalise_all(raw, self._source.name):
                key = " ".join(comp.address.lower().split())
                if key not in found:
                    found[key] = with_distance(subject, comp)

            in_step = [
                c for c in found.values()
                if is_within_radius(c, step.radius_miles)
                and is_within_window(c, self._reference_date, step.window_months)
            ]
            logger.info(
                "Step %d: %d raw records, %d comps within %.2f mi / %d months",
                step.index, len(raw), len(in_step), step.radius_miles, step.window_months,
            )
            return in_step

        return SearchExpansion(params).run(search)
