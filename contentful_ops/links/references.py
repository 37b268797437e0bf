"""
Inbound reference lookups and the unlink pass.

Before an entry is deleted every entry that links to it is rewritten to
drop those links, so the delete cannot leave dangling references behind.
Archived referrers are unarchived first; the API refuses updates on
archived entries.
"""

import copy
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from contentful_ops.api.client import ContentfulManagementClient
from contentful_ops.api.retry import with_retry
from contentful_ops.config import Settings
from contentful_ops.entries import content_type_id, display_title, entity_id, is_archived
from contentful_ops.fields import ValueKind, classify_value, iter_locale_values

logger = logging.getLogger(__name__)


def _links_to(value, target_id: str) -> bool:
    return (
        classify_value(value) is ValueKind.LINK
        and value["sys"].get("id") == target_id
    )


def strip_links_to(fields: Optional[dict], target_id: str) -> tuple[Optional[dict], list]:
    """
    Return (copy of `fields` without links to `target_id`, removal records).

    List values lose the matching items; single-link values become None.
    """
    stripped = copy.deepcopy(fields)
    removed = []
    for field_name, locale, value in list(iter_locale_values(stripped)):
        kind = classify_value(value)
        if kind is ValueKind.SEQUENCE:
            kept = [item for item in value if not _links_to(item, target_id)]
            for item in value:
                if _links_to(item, target_id):
                    removed.append({
                        "field": field_name,
                        "locale": locale,
                        "linkType": item["sys"].get("linkType"),
                        "removedId": target_id,
                    })
            if len(kept) != len(value):
                stripped[field_name][locale] = kept
        elif kind is ValueKind.LINK and _links_to(value, target_id):
            stripped[field_name][locale] = None
            removed.append({
                "field": field_name,
                "locale": locale,
                "linkType": value["sys"].get("linkType"),
                "removedId": target_id,
            })
    return stripped, removed


@dataclass
class LinkCheck:
    is_linked: bool
    linked_by: list = field(default_factory=list)


@dataclass
class UnlinkResult:
    success: bool = True
    total_processed: int = 0
    total_updated: int = 0
    total_unarchived: int = 0
    unlinked_from: list = field(default_factory=list)
    errors: list = field(default_factory=list)


class ReferenceTools:
    """Reverse lookups and unlinking against one environment."""

    def __init__(
        self,
        client: ContentfulManagementClient,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.settings = settings or Settings()
        self.sleep = sleep

    def _retry(self, action, operation: str):
        return with_retry(action, operation, sleep=self.sleep, **self.settings.retry_options())

    def _check(self, lookup, target_kind: str, target_id: str) -> LinkCheck:
        try:
            response = self._retry(lambda: lookup(target_id, limit=10), f"links-to-{target_kind}-{target_id}")
        except Exception as e:
            # Unknown reference state counts as linked.
            logger.error(f"Error checking {target_kind} links for {target_id}: {e}")
            return LinkCheck(is_linked=True)

        linked_by = [
            {"id": entity_id(item), "contentType": content_type_id(item), "title": display_title(item)}
            for item in response.get("items", [])
        ]
        logger.info(f"{target_kind.capitalize()} {target_id} is linked by {len(linked_by)} entries")
        if linked_by:
            logger.info("Linked by: " + ", ".join(f"{e['id']} ({e['contentType']})" for e in linked_by))
        return LinkCheck(is_linked=bool(linked_by), linked_by=linked_by)

    def is_entry_linked(self, entry_id: str) -> LinkCheck:
        return self._check(self.client.get_entries_linking_to_entry, "entry", entry_id)

    def is_asset_linked(self, asset_id: str) -> LinkCheck:
        return self._check(self.client.get_entries_linking_to_asset, "asset", asset_id)

    def unlink_entry_from_all_references(self, entry_id: str, dry_run: bool = False) -> UnlinkResult:
        """Remove every link to `entry_id` from the entries referencing it."""
        result = UnlinkResult()

        try:
            response = self._retry(
                lambda: self.client.get_entries_linking_to_entry(entry_id),
                f"links-to-entry-{entry_id}",
            )
        except Exception as e:
            logger.error(f"Failed to look up references to {entry_id}: {e}")
            result.success = False
            result.errors.append({"entryId": entry_id, "error": str(e), "operation": "lookup"})
            return result

        referrers = response.get("items", [])
        if not referrers:
            logger.info(f"Entry {entry_id} is not referenced by any other entries")
            return result

        logger.info(f"Found {len(referrers)} entries referencing {entry_id}")
        result.total_processed = len(referrers)

        for referrer in referrers:
            referrer_id = entity_id(referrer)
            stripped, removed = strip_links_to(referrer.get("fields"), entry_id)
            if not removed:
                logger.info(f"No links to {entry_id} found in entry {referrer_id}")
                continue

            if dry_run:
                logger.info(f"DRY RUN: would remove {len(removed)} link(s) to {entry_id} from {referrer_id}")
                result.unlinked_from.append({
                    "entryId": referrer_id,
                    "contentType": content_type_id(referrer),
                    "removedLinks": removed,
                })
                continue

            try:
                current = referrer
                if is_archived(referrer):
                    logger.info(f"Entry {referrer_id} is archived - unarchiving before update")
                    current = self._retry(
                        lambda: self.client.unarchive_entry(referrer),
                        f"unarchive-entry-{referrer_id}",
                    )
                    result.total_unarchived += 1

                payload = dict(current)
                payload["fields"] = stripped
                self._retry(lambda: self.client.update_entry(payload), f"update-entry-{referrer_id}")

                result.total_updated += 1
                result.unlinked_from.append({
                    "entryId": referrer_id,
                    "contentType": content_type_id(referrer),
                    "removedLinks": removed,
                    "wasArchived": is_archived(referrer),
                })
                logger.info(f"Updated entry {referrer_id} (removed {len(removed)} link(s) to {entry_id})")
                self.sleep(self.settings.write_delay)
            except Exception as e:
                logger.error(f"Failed to unlink {entry_id} from entry {referrer_id}: {e}")
                result.success = False
                result.errors.append({"entryId": referrer_id, "error": str(e), "operation": "update"})

        if result.total_unarchived:
            logger.info(
                f"Unlinked entry {entry_id} from {result.total_updated} entries "
                f"(unarchived {result.total_unarchived} entries)"
            )
        return result
