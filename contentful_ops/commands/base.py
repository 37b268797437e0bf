"""
Shared run engine for the maintenance commands.

A command owns one ValidationReport and a results dict, pages through the
environment with the retry-wrapped pager, and isolates failures per entry:
a failing entry is logged and counted, and the run moves on. Authentication
failures mid-run abort the whole run.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from contentful_ops.api.client import ContentfulManagementClient
from contentful_ops.api.errors import AuthenticationError, NotFoundError, ValidationFailedError
from contentful_ops.api.paging import fetch_all_with_pagination
from contentful_ops.api.retry import with_retry
from contentful_ops.config import Settings
from contentful_ops.entries import content_type_id, entity_id, is_archived, is_published
from contentful_ops.links.cleaner import LinkCleaner
from contentful_ops.links.references import ReferenceTools
from contentful_ops.report import ValidationReport
from contentful_ops.validation import is_missing_required_field_error

logger = logging.getLogger(__name__)


class AbortException(Exception):
    """Raised when execution must abort."""
    pass


class MaintenanceCommand:
    """Base class: subclasses set `name` and implement execute()."""

    name = ""
    description = ""

    def __init__(
        self,
        client: ContentfulManagementClient,
        settings: Settings,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.settings = settings
        self.sleep = sleep
        self.dry_run = settings.dry_run
        self.cleaner = LinkCleaner(client, settings, sleep=sleep)
        self.references = ReferenceTools(client, settings, sleep=sleep)
        self.report = ValidationReport(settings.context, command=self.name, dry_run=self.dry_run)
        self.results = {
            "command": self.name,
            "execution_mode": "DRY_RUN" if self.dry_run else "APPLY",
            "space_id": settings.space_id,
            "environment_id": settings.environment_id,
            "start_utc": None,
            "end_utc": None,
            "duration_seconds": 0,
            "aborted": False,
            "abort_reason": None,
            "report_path": None,
            "summary": {},
        }

    # -------------------------------------------------------------------------
    # Run lifecycle
    # -------------------------------------------------------------------------

    def run(self) -> dict:
        start = datetime.now(timezone.utc)
        self.results["start_utc"] = start.isoformat()
        logger.info(f"Starting {self.name} ({self.results['execution_mode']})")

        try:
            self.execute()
        except AbortException as e:
            logger.error(f"ABORTED: {e}")
            self.results["aborted"] = True
            self.results["abort_reason"] = str(e)
        finally:
            end = datetime.now(timezone.utc)
            self.results["end_utc"] = end.isoformat()
            self.results["duration_seconds"] = (end - start).total_seconds()
            self.results["report_path"] = str(self.report.write(self.settings.report_dir))

        return self.results

    def execute(self):
        raise NotImplementedError

    def count(self, key: str, amount: int = 1):
        self.results["summary"][key] = self.results["summary"].get(key, 0) + amount

    def retry(self, action, operation: str):
        return with_retry(action, operation, sleep=self.sleep, **self.settings.retry_options())

    def handle_entry_error(self, error: Exception, entry_id: str, operation: str):
        """Log and count a per-entry failure. Authentication failures abort the run."""
        if isinstance(error, AuthenticationError):
            raise AbortException(f"Authentication failed during {operation} of {entry_id}: {error}") from error
        logger.error(f"Error during {operation} of entry {entry_id}: {error}")
        self.count("errors")

    # -------------------------------------------------------------------------
    # Fetching
    # -------------------------------------------------------------------------

    def entry_query(self, extra: Optional[dict] = None) -> dict:
        query = {"order": "sys.createdAt"}
        if self.settings.content_type:
            query["content_type"] = self.settings.content_type
        query.update(extra or {})
        return query

    def fetch_entries(self, extra_query: Optional[dict] = None) -> list:
        return fetch_all_with_pagination(
            self.client.get_entries,
            query=self.entry_query(extra_query),
            page_size=self.settings.batch_size,
            page_delay=self.settings.page_delay,
            max_items=self.settings.max_entries,
            label="entries",
            retry_options=self.settings.retry_options(),
            sleep=self.sleep,
        )

    def fetch_assets(self) -> list:
        return fetch_all_with_pagination(
            self.client.get_assets,
            query={"order": "sys.createdAt"},
            page_size=self.settings.batch_size,
            page_delay=self.settings.page_delay,
            max_items=self.settings.max_entries,
            label="assets",
            retry_options=self.settings.retry_options(),
            sleep=self.sleep,
        )

    def refresh_entry(self, entry: dict) -> Optional[dict]:
        """
        Re-read `entry` before writing to it. Earlier writes in the run
        (unlinking, deletes) may have changed or removed it. Returns None if
        it is gone.
        """
        entry_id = entity_id(entry)
        try:
            return self.retry(lambda: self.client.get_entry(entry_id), f"get-entry-{entry_id}")
        except NotFoundError:
            return None

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def clean_and_update(self, entry: dict) -> Tuple[dict, bool]:
        """
        Strip broken links from `entry` and write it back when anything was
        removed. Returns the latest known version of the entry and whether it
        was written (or would be, in a dry run).
        """
        entry_id = entity_id(entry)
        cleaned, result = self.cleaner.clean_entry(entry)

        updated = False
        if result.any_removed:
            if self.dry_run:
                logger.info(f"DRY RUN: would update entry {entry_id} (remove {result.removed_count} broken link(s))")
            else:
                entry = self.retry(lambda: self.client.update_entry(cleaned), f"update-entry-{entry_id}")
                updated = True
                self.count("entries_updated")
                logger.info(f"Updated entry {entry_id}: removed {result.removed_count} broken link(s)")
                self.sleep(self.settings.write_delay)

        self.report.add_cleaning_result(result, updated=updated)
        self.count("links_checked", result.links_found)
        self.count("broken_links_removed", result.removed_count)
        return entry, updated or (self.dry_run and result.any_removed)

    def force_delete_entry(self, entry: dict, reason: str) -> bool:
        """
        Delete `entry` without any reference checks, unpublishing or
        unarchiving first as the API requires.
        """
        entry_id = entity_id(entry)
        if self.dry_run:
            logger.info(f"DRY RUN: would delete entry {entry_id} ({content_type_id(entry)}): {reason}")
            self.count("would_delete")
            return False

        current = self.retry(lambda: self.client.get_entry(entry_id), f"get-entry-{entry_id}")
        if is_archived(current):
            logger.info(f"Unarchiving entry {entry_id} before deletion")
            current = self.retry(lambda: self.client.unarchive_entry(current), f"unarchive-entry-{entry_id}")
        if is_published(current):
            logger.info(f"Unpublishing entry {entry_id} before deletion")
            current = self.retry(lambda: self.client.unpublish_entry(current), f"unpublish-entry-{entry_id}")

        self.retry(lambda: self.client.delete_entry(current), f"delete-entry-{entry_id}")
        self.report.add_deleted_entry(entry_id, reason)
        self.count("entries_deleted")
        logger.info(f"Deleted entry {entry_id}: {reason}")
        self.sleep(self.settings.write_delay)
        return True

    def force_delete_asset(self, asset: dict, reason: str) -> bool:
        """Asset counterpart of force_delete_entry."""
        asset_id = entity_id(asset)
        if self.dry_run:
            logger.info(f"DRY RUN: would delete asset {asset_id}: {reason}")
            self.count("would_delete_assets")
            return False

        current = self.retry(lambda: self.client.get_asset(asset_id), f"get-asset-{asset_id}")
        if is_archived(current):
            current = self.retry(lambda: self.client.unarchive_asset(current), f"unarchive-asset-{asset_id}")
        if is_published(current):
            current = self.retry(lambda: self.client.unpublish_asset(current), f"unpublish-asset-{asset_id}")

        self.retry(lambda: self.client.delete_asset(current), f"delete-asset-{asset_id}")
        self.report.add_deleted_entry(asset_id, reason)
        self.count("assets_deleted")
        logger.info(f"Deleted asset {asset_id}: {reason}")
        self.sleep(self.settings.write_delay)
        return True

    def delete_entry_safely(self, entry: dict, reason: str) -> bool:
        """
        Guarded delete: strip every inbound reference, confirm none remain,
        then delete. Returns True only if the entry was deleted.
        """
        entry_id = entity_id(entry)

        check = self.references.is_entry_linked(entry_id)
        if check.is_linked:
            unlink = self.references.unlink_entry_from_all_references(entry_id, dry_run=self.dry_run)
            if self.dry_run:
                logger.info(
                    f"DRY RUN: would unlink {entry_id} from {len(unlink.unlinked_from)} entries, then delete it"
                )
                self.count("would_delete")
                return False

            self.count("references_unlinked", unlink.total_updated)
            if not unlink.success:
                logger.warning(f"Unlinking entry {entry_id} reported {len(unlink.errors)} error(s)")

            recheck = self.references.is_entry_linked(entry_id)
            if recheck.is_linked:
                logger.warning(
                    f"Entry {entry_id} is still referenced by {len(recheck.linked_by)} entries. Skipping deletion."
                )
                self.count("deletions_skipped_linked")
                return False

        return self.force_delete_entry(entry, reason)

    def publish_entry(self, entry: dict) -> bool:
        """
        Publish `entry`. A 422 is recorded in the report; when it is caused by
        missing required fields the entry goes through the guarded delete.
        """
        entry_id = entity_id(entry)
        if self.dry_run:
            logger.info(f"DRY RUN: would publish entry {entry_id}")
            self.count("would_publish")
            return False

        try:
            self.retry(lambda: self.client.publish_entry(entry), f"publish-entry-{entry_id}")
        except ValidationFailedError as e:
            self.report.add_validation_error(e, entry_id, content_type_id(entry))
            self.count("validation_errors")
            if is_missing_required_field_error(e):
                logger.warning(f"Entry {entry_id} is missing required fields, deleting")
                self.delete_entry_safely(entry, "Missing required fields (422 on publish)")
            else:
                logger.error(f"Validation error publishing entry {entry_id}: {e}")
            return False

        self.count("entries_published")
        logger.info(f"Published entry {entry_id}")
        self.sleep(self.settings.write_delay)
        return True
