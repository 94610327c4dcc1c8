from __future__ import annotations

import logging

from ..models import ATSClassification, ATSType, ExtractionOutcome
from .base import Extractor

log = logging.getLogger(__name__)

# In-process strategy map: ATSType -> Extractor.
_REGISTRY: dict[ATSType, Extractor] = {}

# Page types that have no vendor-specific strategy use the generic heuristics.
_GENERIC_TYPES = (ATSType.CUSTOM, ATSType.UNKNOWN)


def register(ats_type: ATSType, extractor: Extractor) -> Extractor:
    """
    Register an extractor for an ATS type. Re-registering the same object is
    a no-op; registering a different one for a taken type is rejected.
    """
    if not isinstance(ats_type, ATSType):
        raise ValueError(f"Cannot register extractor {extractor.name!r}: {ats_type!r} is not an ATSType.")
    current = _REGISTRY.get(ats_type)
    if current is not None and current is not extractor:
        raise ValueError(f"ATS type {ats_type.value!r} already registered to {current.name!r}.")
    _REGISTRY[ats_type] = extractor
    return extractor


def get(ats_type: ATSType) -> Extractor:
    """
    Look up the extractor for an ATS type. Types without a dedicated entry
    (Custom, Unknown, or a vendor whose module didn't load) get the generic one.
    """
    found = _REGISTRY.get(ats_type)
    if found is not None:
        return found
    for fallback in _GENERIC_TYPES:
        if fallback in _REGISTRY:
            return _REGISTRY[fallback]
    raise KeyError(f"No extractor registered for {ats_type.value!r} and no generic fallback.")


def all_types() -> dict[ATSType, Extractor]:
    """
    Return a shallow copy of the registry (useful for debugging/tests).
    """
    return dict(_REGISTRY)


def extract(classification: ATSClassification, page_content: str, page_url: str = "") -> ExtractionOutcome:
    """
    Run the page extractor selected by the classification. `page_url` is the
    address the page was fetched from; relative links resolve against it. A failure on the
    page as a whole comes back as an empty outcome carrying a warning.
    """
    extractor = get(classification.type)
    try:
        return extractor.extract_listings(page_content or "", classification, page_url=page_url)
    except Exception as e:  # arbitrary third-party markup; never propagate
        log.warning("%s extractor failed on whole page", extractor.name, exc_info=True)
        return ExtractionOutcome(listings=(), warnings=(f"{extractor.name}: page parse failed: {e!r}",))
