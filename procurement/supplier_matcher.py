"""
Supplier matching module.

Resolves a free-text vendor name (from an imported purchase order or a
form) against the supplier master list, in priority order:
  1. Name exact match (case-insensitive, aliases included)
  2. Fuzzy name match (using rapidfuzz)
"""
import logging
from typing import Iterable, Optional

from rapidfuzz import fuzz

from models.supplier import Supplier

logger = logging.getLogger(__name__)

# Minimum fuzzy score (0-100) to accept a name match
FUZZY_THRESHOLD = 75


class SupplierMatcher:
    """Matches vendor names against a list of known suppliers."""

    def __init__(self, suppliers: Iterable[Supplier], fuzzy_threshold: int = FUZZY_THRESHOLD):
        self.suppliers: list[Supplier] = list(suppliers)
        self.fuzzy_threshold = fuzzy_threshold

    def match(self, vendor: Optional[str]) -> Optional[tuple[Supplier, float]]:
        """
        Return (supplier, confidence) for the best match, or None if the
        vendor could not be identified.
        """
        name = (vendor or "").strip().lower()
        if not name or not self.suppliers:
            return None

        for s in self.suppliers:
            if s.is_known_as(name):
                logger.debug("Vendor matched by exact name: %s", s.name)
                return s, 1.0

        best_score = 0.0
        best_supplier: Optional[Supplier] = None
        for s in self.suppliers:
            for candidate_name in s.all_names:
                score = fuzz.token_sort_ratio(name, candidate_name.lower())
                if score > best_score:
                    best_score = score
                    best_supplier = s

        if best_supplier and best_score >= self.fuzzy_threshold:
            logger.info(
                "Vendor fuzzy matched: '%s' -> '%s' (score=%d)",
                vendor, best_supplier.name, best_score,
            )
            return best_supplier, best_score / 100.0

        logger.debug("Best fuzzy match score was %d (threshold=%d)", best_score, self.fuzzy_threshold)
        return None

    def canonical_name(self, vendor: Optional[str]) -> Optional[str]:
        """The master-list name for *vendor*, or None when unmatched."""
        matched = self.match(vendor)
        return matched[0].name if matched else None
