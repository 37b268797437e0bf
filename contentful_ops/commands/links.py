"""
Broken link commands: scan, clean, clean-and-publish.

    scan               collect entries and count broken links; no writes
    clean              scan + write back entries that had broken links
    clean-and-publish  clean + publish the entries that were written back; a
                       publish that fails on missing required fields triggers
                       the guarded delete
"""

import logging

from contentful_ops.commands.base import AbortException, MaintenanceCommand
from contentful_ops.entries import entity_id, is_archived

logger = logging.getLogger(__name__)


class LinkCleanupCommand(MaintenanceCommand):
    """Collects entries and runs the link cleaner over each one."""

    name = "scan"
    description = "Report broken links without changing anything"
    writes = False
    publishes = False

    def execute(self):
        # Collect first: guarded deletes would shift the offsets of a live walk.
        entries = self.fetch_entries()
        logger.info(f"Found {len(entries)} entries to check")

        for entry in entries:
            self.process_entry(entry)

        summary = self.results["summary"]
        if self.writes:
            logger.info(
                f"Processed {summary.get('entries_processed', 0)} entries, "
                f"removed {summary.get('broken_links_removed', 0)} broken link(s)"
            )
        else:
            logger.info(
                f"Processed {summary.get('entries_processed', 0)} entries, "
                f"found {summary.get('broken_links_found', 0)} broken link(s)"
            )

    def process_entry(self, entry: dict):
        entry_id = entity_id(entry)
        self.count("entries_processed")

        try:
            if self.writes:
                entry = self.refresh_entry(entry)
                if entry is None:
                    logger.info(f"Entry {entry_id} no longer exists, skipping")
                    self.count("entries_skipped_deleted")
                    return

            if is_archived(entry):
                logger.info(f"Skipping archived entry {entry_id}")
                self.count("entries_skipped_archived")
                return

            if self.writes:
                entry, updated = self.clean_and_update(entry)
            else:
                updated = False
                _, result = self.cleaner.clean_entry(entry)
                self.report.add_cleaning_result(result)
                self.count("links_checked", result.links_found)
                self.count("broken_links_found", result.removed_count)

            if self.publishes and updated:
                self.publish_entry(entry)
        except AbortException:
            raise
        except Exception as e:
            self.handle_entry_error(e, entry_id, self.name)


class CleanCommand(LinkCleanupCommand):
    name = "clean"
    description = "Remove broken links and update affected entries"
    writes = True


class CleanAndPublishCommand(LinkCleanupCommand):
    name = "clean-and-publish"
    description = "Remove broken links, update and publish the cleaned entries"
    writes = True
    publishes = True
