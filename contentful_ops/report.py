"""
Run report accumulation and the write-once JSON report file.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from contentful_ops.validation import extract_validation_error_details

logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _file_timestamp(moment: str) -> str:
    return moment.replace(":", "-").replace(".", "-").replace("+", "-")


class ValidationReport:
    """Collects validation failures, deletions and link counters for one run."""

    def __init__(self, environment: str, command: str = "", dry_run: bool = False):
        self.environment = environment
        self.command = command
        self.dry_run = dry_run
        self.validation_errors = []
        self.deleted_entries = []
        self.link_cleanup = {
            "entriesScanned": 0,
            "linksChecked": 0,
            "brokenLinksRemoved": 0,
            "brokenEntryLinks": 0,
            "brokenAssetLinks": 0,
            "entriesUpdated": 0,
            "entriesWithBrokenLinks": [],
        }
        self.written_path: Optional[Path] = None

    def add_validation_error(self, error, entry_id: str, content_type: str = "unknown") -> dict:
        record = extract_validation_error_details(error, entry_id, content_type)
        self.validation_errors.append(record)
        return record

    def add_deleted_entry(self, entry_id: str, reason: str):
        self.deleted_entries.append({
            "entryId": entry_id,
            "deletedAt": _utc_now(),
            "reason": reason,
        })

    def add_cleaning_result(self, result, updated: bool = False):
        cleanup = self.link_cleanup
        cleanup["entriesScanned"] += 1
        cleanup["linksChecked"] += result.links_found
        cleanup["brokenLinksRemoved"] += result.removed_count
        cleanup["brokenEntryLinks"] += result.removed_entry_links
        cleanup["brokenAssetLinks"] += result.removed_asset_links
        if updated:
            cleanup["entriesUpdated"] += 1
        if result.any_removed:
            cleanup["entriesWithBrokenLinks"].append(result.to_dict())

    def build(self) -> dict:
        missing_required = sum(
            1 for record in self.validation_errors
            if any(e.get("isMissingRequired") for e in record.get("errors", []))
        )
        return {
            "reportGenerated": _utc_now(),
            "environment": self.environment,
            "command": self.command,
            "dryRun": self.dry_run,
            "summary": {
                "totalValidationErrors": len(self.validation_errors),
                "totalDeletedEntries": len(self.deleted_entries),
                "missingRequiredFieldErrors": missing_required,
            },
            "validationErrors": self.validation_errors,
            "deletedEntries": self.deleted_entries,
            "linkCleanup": self.link_cleanup,
        }

    def write(self, output_dir: Path) -> Path:
        """Write the report once; later calls return the first path."""
        if self.written_path is not None:
            return self.written_path

        report = self.build()
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        stamp = _file_timestamp(report["reportGenerated"])
        path = output_dir / f"validation-report-{self.environment}-{stamp}.json"
        with open(path, "w") as f:
            json.dump(report, f, indent=2)

        self.written_path = path
        logger.info(f"Validation report saved to: {path}")
        return path


def write_deletion_report(report: dict, output_dir: Path) -> Path:
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    stamp = _file_timestamp(report.get("timestamp") or _utc_now())
    path = output_dir / f"deletion-report-{report.get('environment', 'unknown')}-{stamp}.json"
    with open(path, "w") as f:
        json.dump(report, f, indent=2)
    logger.info(f"Deletion report saved to: {path}")
    return path
