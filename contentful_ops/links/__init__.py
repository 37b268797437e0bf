# =============================================================================
# CONTENTFUL-OPS Links
# =============================================================================
"""
Link classification, broken link cleaning and inbound reference handling.
"""

from contentful_ops.links.cleaner import CleaningResult, LinkCleaner, LinkRemoval
from contentful_ops.links.references import LinkCheck, ReferenceTools, UnlinkResult, strip_links_to
from contentful_ops.fields import Link, ValueKind, classify_value

__all__ = [
    "CleaningResult",
    "LinkCleaner",
    "LinkRemoval",
    "LinkCheck",
    "ReferenceTools",
    "UnlinkResult",
    "strip_links_to",
    "Link",
    "ValueKind",
    "classify_value",
]
