"""
Bulk removal: delete-drafts, delete-all-entries, delete-all-assets,
unpublish-all-entries.

None of these commands checks inbound references. All honour --max-entries
and --dry-run; the entry commands also honour --content-type.
"""

import logging

from contentful_ops.commands.base import AbortException, MaintenanceCommand
from contentful_ops.entries import entity_id

logger = logging.getLogger(__name__)


class DeleteEntriesCommand(MaintenanceCommand):
    name = "delete-all-entries"
    description = "Delete every entry (unpublishing and unarchiving first)"
    reason = "Bulk delete of all entries"
    query = None

    def execute(self):
        # Collect first: deleting while paging would shift the offsets.
        entries = self.fetch_entries(self.query)
        logger.info(f"Found {len(entries)} entries to delete")

        for entry in entries:
            entry_id = entity_id(entry)
            self.count("entries_processed")
            try:
                self.force_delete_entry(entry, self.reason)
            except AbortException:
                raise
            except Exception as e:
                self.handle_entry_error(e, entry_id, "delete")


class DeleteDraftsCommand(DeleteEntriesCommand):
    name = "delete-drafts"
    description = "Delete entries that were never published"
    reason = "Draft entry (never published)"
    query = {"sys.publishedAt[exists]": "false"}


class DeleteAssetsCommand(MaintenanceCommand):
    name = "delete-all-assets"
    description = "Delete every asset (unpublishing and unarchiving first)"

    def execute(self):
        assets = self.fetch_assets()
        logger.info(f"Found {len(assets)} assets to delete")

        for asset in assets:
            asset_id = entity_id(asset)
            self.count("assets_processed")
            try:
                self.force_delete_asset(asset, "Bulk delete of all assets")
            except AbortException:
                raise
            except Exception as e:
                self.handle_entry_error(e, asset_id, "delete-asset")


class UnpublishEntriesCommand(MaintenanceCommand):
    name = "unpublish-all-entries"
    description = "Unpublish every published entry"

    def execute(self):
        entries = self.fetch_entries({"sys.publishedAt[exists]": "true"})
        logger.info(f"Found {len(entries)} published entries")

        for entry in entries:
            entry_id = entity_id(entry)
            self.count("entries_processed")
            try:
                self.unpublish_entry(entry)
            except AbortException:
                raise
            except Exception as e:
                self.handle_entry_error(e, entry_id, "unpublish")

    def unpublish_entry(self, entry: dict):
        entry_id = entity_id(entry)
        if self.dry_run:
            logger.info(f"DRY RUN: would unpublish entry {entry_id}")
            self.count("would_unpublish")
            return

        self.retry(lambda: self.client.unpublish_entry(entry), f"unpublish-entry-{entry_id}")
        self.count("entries_unpublished")
        logger.info(f"Unpublished entry {entry_id}")
        self.sleep(self.settings.write_delay)
