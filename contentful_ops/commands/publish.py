"""
Bulk publishing: publish-assets-only, publish-entries-only, publish.

Only drafts and changed items are published; archived items are left
alone. Entries go through the deletion mapping rules (if configured), the
empty-entry check and the link cleaner before being published.
"""

import logging

from contentful_ops.api.errors import ValidationFailedError
from contentful_ops.commands.base import AbortException, MaintenanceCommand
from contentful_ops.deletion_rules import DeletionRules
from contentful_ops.entries import content_type_id, entity_id, has_entry_data, needs_publishing
from contentful_ops.report import write_deletion_report

logger = logging.getLogger(__name__)


# =============================================================================
# ASSETS
# =============================================================================


class PublishAssetsCommand(MaintenanceCommand):
    name = "publish-assets-only"
    description = "Publish draft and changed assets"

    def execute(self):
        self.publish_assets()

    def publish_assets(self):
        assets = [a for a in self.fetch_assets() if needs_publishing(a)]
        logger.info(f"Found {len(assets)} assets to publish")

        for asset in assets:
            asset_id = entity_id(asset)
            try:
                self.publish_asset(asset)
            except AbortException:
                raise
            except Exception as e:
                self.handle_entry_error(e, asset_id, "publish-asset")

    def publish_asset(self, asset: dict):
        asset_id = entity_id(asset)
        if self.dry_run:
            logger.info(f"DRY RUN: would publish asset {asset_id}")
            self.count("would_publish_assets")
            return

        try:
            self.retry(lambda: self.client.publish_asset(asset), f"publish-asset-{asset_id}")
        except ValidationFailedError as e:
            self.report.add_validation_error(e, asset_id, "Asset")
            self.count("validation_errors")
            logger.warning(f"Asset {asset_id} failed validation: {e}")
            self.delete_unreferenced_asset(asset)
            return

        self.count("assets_published")
        logger.info(f"Published asset {asset_id}")
        self.sleep(self.settings.write_delay)

    def delete_unreferenced_asset(self, asset: dict) -> bool:
        asset_id = entity_id(asset)
        check = self.references.is_asset_linked(asset_id)
        if check.is_linked:
            logger.warning(f"Asset {asset_id} is referenced by {len(check.linked_by)} entries. Skipping deletion.")
            self.count("deletions_skipped_linked")
            return False

        return self.force_delete_asset(asset, "Asset failed validation and is not referenced")


# =============================================================================
# ENTRIES
# =============================================================================


class PublishEntriesCommand(MaintenanceCommand):
    name = "publish-entries-only"
    description = "Publish draft and changed entries, cleaning and deleting as needed"

    def __init__(self, client, settings, **kwargs):
        super().__init__(client, settings, **kwargs)
        self.rules = DeletionRules.load(settings.deletion_rules_path)

    def execute(self):
        self.publish_entries()

    def publish_entries(self):
        entries = [e for e in self.fetch_entries() if needs_publishing(e)]
        logger.info(f"Found {len(entries)} entries to publish")

        deleted_ids = self.apply_deletion_rules(entries)
        remaining = [e for e in entries if entity_id(e) not in deleted_ids]

        for entry in remaining:
            entry_id = entity_id(entry)
            try:
                self.process_entry(entry)
            except AbortException:
                raise
            except Exception as e:
                self.handle_entry_error(e, entry_id, "publish-entry")

    def apply_deletion_rules(self, entries: list) -> set:
        """Delete entries matched by the mapping rules. Returns the ids handled."""
        if not self.rules.rules:
            return set()

        candidates = self.rules.select_candidates(
            entries,
            self.settings.context,
            link_checker=self.references.is_entry_linked,
        )
        if not candidates:
            return set()

        write_deletion_report(self.rules.build_report(candidates, self.settings.context), self.settings.report_dir)

        handled = set()
        for candidate in candidates:
            entry_id = entity_id(candidate.entry)
            if not candidate.will_delete:
                logger.info(f"Keeping entry {entry_id}: {candidate.skip_reason}")
                continue
            handled.add(entry_id)
            try:
                self.delete_entry_safely(candidate.entry, f"Deletion rule: {candidate.rule_name}")
            except AbortException:
                raise
            except Exception as e:
                self.handle_entry_error(e, entry_id, "rule-delete")
        return handled

    def process_entry(self, entry: dict):
        entry_id = entity_id(entry)
        self.count("entries_processed")

        entry = self.refresh_entry(entry)
        if entry is None:
            logger.info(f"Entry {entry_id} no longer exists, skipping")
            self.count("entries_skipped_deleted")
            return

        if not has_entry_data(entry):
            logger.info(f"Entry {entry_id} ({content_type_id(entry)}) has no data, deleting")
            self.delete_entry_safely(entry, "Empty entry (no field data)")
            return

        entry, _ = self.clean_and_update(entry)
        self.publish_entry(entry)


# =============================================================================
# ASSETS + ENTRIES
# =============================================================================


class PublishAllCommand(PublishEntriesCommand, PublishAssetsCommand):
    name = "publish"
    description = "Publish assets, then entries"

    def execute(self):
        self.publish_assets()
        if not self.dry_run:
            logger.info(f"Waiting {self.settings.publish_wait}s before publishing entries")
            self.sleep(self.settings.publish_wait)
        self.publish_entries()
