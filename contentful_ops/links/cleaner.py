"""
Broken link detection and removal.

Walks every field/locale value of an entry, checks each Link against the
environment and drops the ones whose target is confirmed missing (404):

- links inside a list are removed from the list
- a single-link value is replaced with None (the field itself stays)
- malformed links, and links whose check failed for any reason other than
  404, are kept

Checks are made one at a time. The input fields are never modified; the
cleaner returns a cleaned copy together with a CleaningResult.
"""

import copy
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from contentful_ops.api.client import ContentfulManagementClient
from contentful_ops.api.errors import NotFoundError
from contentful_ops.api.retry import with_retry
from contentful_ops.config import Settings
from contentful_ops.fields import Link, ValueKind, classify_value, iter_locale_values

logger = logging.getLogger(__name__)


@dataclass
class LinkRemoval:
    field: str
    locale: str
    link_type: str
    target_id: str

    def to_dict(self) -> dict:
        return {
            "field": self.field,
            "locale": self.locale,
            "linkType": self.link_type,
            "id": self.target_id,
        }


@dataclass
class CleaningResult:
    entry_id: str = "unknown"
    content_type: str = "unknown"
    links_found: int = 0
    removed_entry_links: int = 0
    removed_asset_links: int = 0
    removals: list = field(default_factory=list)

    @property
    def removed_count(self) -> int:
        return self.removed_entry_links + self.removed_asset_links

    @property
    def any_removed(self) -> bool:
        return self.removed_count > 0

    def record(self, removal: LinkRemoval):
        if removal.link_type == "Entry":
            self.removed_entry_links += 1
        else:
            self.removed_asset_links += 1
        self.removals.append(removal)

    def to_dict(self) -> dict:
        return {
            "entryId": self.entry_id,
            "contentType": self.content_type,
            "linksFound": self.links_found,
            "brokenLinks": self.removed_count,
            "brokenEntryLinks": self.removed_entry_links,
            "brokenAssetLinks": self.removed_asset_links,
            "removed": [r.to_dict() for r in self.removals],
        }


class LinkCleaner:
    """Validates and strips broken links from entry fields."""

    def __init__(
        self,
        client: ContentfulManagementClient,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.settings = settings or Settings()
        self.sleep = sleep

    def link_exists(self, link: Link) -> bool:
        """
        Existence check for one link target.

        Returns False only on a confirmed 404. Any other failure, including
        an exhausted retry budget, counts as "exists" so the link is kept.
        """
        if link.link_type == "Entry":
            fetch = self.client.get_entry
        else:
            fetch = self.client.get_asset

        try:
            with_retry(
                lambda: fetch(link.target_id),
                f"validate-{link.link_type.lower()}-{link.target_id}",
                sleep=self.sleep,
                **self.settings.retry_options(),
            )
        except NotFoundError:
            logger.debug(f"Broken {link.link_type} link found: {link.target_id} (404 Not Found)")
            return False
        except Exception as e:
            logger.warning(f"Could not validate {link.link_type} {link.target_id}, keeping link: {e}")
            return True

        logger.debug(f"Valid {link.link_type} link: {link.target_id}")
        return True

    def _is_broken(self, value: dict, field_name: str, locale: str, result: CleaningResult) -> bool:
        result.links_found += 1
        link = Link.from_value(value)
        if link is None:
            logger.debug(f"Entry {result.entry_id}: keeping malformed link in {field_name}.{locale}: {value}")
            return False
        if self.link_exists(link):
            return False

        result.record(LinkRemoval(field_name, locale, link.link_type, link.target_id))
        logger.info(
            f"Entry {result.entry_id}: removed broken {link.link_type} link "
            f"from {field_name}.{locale}: {link.target_id}"
        )
        return True

    def clean_fields(
        self,
        fields: Optional[dict],
        entry_id: str = "unknown",
        content_type: str = "unknown",
    ) -> tuple[Optional[dict], CleaningResult]:
        """Return (cleaned copy of `fields`, CleaningResult)."""
        result = CleaningResult(entry_id=entry_id, content_type=content_type)
        cleaned = copy.deepcopy(fields)
        if not cleaned:
            return cleaned, result

        for field_name, locale, value in list(iter_locale_values(cleaned)):
            kind = classify_value(value)

            if kind is ValueKind.SEQUENCE:
                kept = [
                    item for item in value
                    if not (classify_value(item) is ValueKind.LINK
                            and self._is_broken(item, field_name, locale, result))
                ]
                if len(kept) != len(value):
                    cleaned[field_name][locale] = kept

            elif kind is ValueKind.LINK:
                if self._is_broken(value, field_name, locale, result):
                    cleaned[field_name][locale] = None

        return cleaned, result

    def clean_entry(self, entry: dict) -> tuple[dict, CleaningResult]:
        """Return (entry copy with cleaned fields, CleaningResult)."""
        sys = entry.get("sys", {})
        entry_id = sys.get("id", "unknown")
        content_type = sys.get("contentType", {}).get("sys", {}).get("id", "unknown")

        cleaned_fields, result = self.clean_fields(entry.get("fields"), entry_id, content_type)
        cleaned_entry = dict(entry)
        cleaned_entry["fields"] = cleaned_fields if cleaned_fields is not None else {}
        return cleaned_entry, result
