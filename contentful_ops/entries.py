"""
Predicates over raw CMA entry/asset documents.
"""

from typing import Any

from contentful_ops.fields import Link, ValueKind, classify_value, iter_locale_values


def entity_id(entity: dict) -> str:
    return (entity or {}).get("sys", {}).get("id") or "unknown"


def content_type_id(entry: dict) -> str:
    return (entry or {}).get("sys", {}).get("contentType", {}).get("sys", {}).get("id") or "unknown"


def is_archived(entity: dict) -> bool:
    return bool(entity.get("sys", {}).get("archivedAt"))


def is_published(entity: dict) -> bool:
    return bool(entity.get("sys", {}).get("publishedVersion"))


def is_changed(entity: dict) -> bool:
    """Published, then edited since (version runs two ahead of publishedVersion)."""
    sys = entity.get("sys", {})
    published_version = sys.get("publishedVersion")
    return bool(published_version) and sys.get("version", 0) >= published_version + 2


def needs_publishing(entity: dict) -> bool:
    """Draft or changed, and not archived."""
    if is_archived(entity):
        return False
    return not is_published(entity) or is_changed(entity)


def display_title(entry: dict) -> str:
    fields = entry.get("fields") or {}
    for key in ("title", "name"):
        locales = fields.get(key)
        if isinstance(locales, dict) and locales:
            return str(next(iter(locales.values())))
    return "No title"


def _is_meaningful(value: Any) -> bool:
    kind = classify_value(value)
    if kind is ValueKind.SCALAR:
        if isinstance(value, str):
            return value.strip() != ""
        return value is not None
    if kind is ValueKind.LINK:
        return Link.from_value(value) is not None
    if kind is ValueKind.SEQUENCE:
        return any(_is_meaningful(item) for item in value)
    return any(_is_meaningful(v) for v in value.values())


def has_entry_data(entry: dict) -> bool:
    """
    True if any field/locale holds meaningful content.

    Empty strings, None, empty lists/objects and malformed links do not
    count. Entries without a sys.id are treated as empty.
    """
    if not isinstance(entry, dict) or not entry.get("sys", {}).get("id"):
        return False
    return any(_is_meaningful(value) for _, _, value in iter_locale_values(entry.get("fields")))
