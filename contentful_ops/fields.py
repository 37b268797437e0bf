"""
Field value classification.

An entry's `fields` map is `{field: {locale: value}}` where a value is a
scalar, a list, a Link object or some other JSON object (rich text,
location, JSON field). classify_value tags each value so traversals can
dispatch on the tag.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

LINK_TARGET_TYPES = ("Entry", "Asset")


class ValueKind(Enum):
    SCALAR = "scalar"
    LINK = "link"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


@dataclass(frozen=True)
class Link:
    link_type: str
    target_id: str

    @classmethod
    def from_value(cls, value: Any) -> Optional["Link"]:
        """
        Parse a Link object. Returns None when the object is tagged as a Link
        but lacks an id or carries a linkType other than Entry/Asset.
        """
        sys = value.get("sys") if isinstance(value, dict) else None
        if not isinstance(sys, dict) or sys.get("type") != "Link":
            return None
        link_type = sys.get("linkType")
        target_id = sys.get("id")
        if link_type not in LINK_TARGET_TYPES or not isinstance(target_id, str) or not target_id:
            return None
        return cls(link_type, target_id)


def is_link_value(value: Any) -> bool:
    """True for anything shaped like {"sys": {"type": "Link", ...}}, malformed or not."""
    return (
        isinstance(value, dict)
        and isinstance(value.get("sys"), dict)
        and value["sys"].get("type") == "Link"
    )


def classify_value(value: Any) -> ValueKind:
    if isinstance(value, list):
        return ValueKind.SEQUENCE
    if is_link_value(value):
        return ValueKind.LINK
    if isinstance(value, dict):
        return ValueKind.MAPPING
    return ValueKind.SCALAR


def iter_locale_values(fields: Optional[dict]):
    """Yield (field_name, locale, value) for every localized value."""
    for field_name, locales in (fields or {}).items():
        if not isinstance(locales, dict):
            continue
        for locale, value in locales.items():
            yield field_name, locale, value
