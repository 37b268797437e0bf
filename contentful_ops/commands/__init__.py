"""
Maintenance commands, keyed by their CLI name.
"""

from contentful_ops.commands.base import AbortException, MaintenanceCommand
from contentful_ops.commands.delete import (
    DeleteAssetsCommand,
    DeleteDraftsCommand,
    DeleteEntriesCommand,
    UnpublishEntriesCommand,
)
from contentful_ops.commands.links import CleanAndPublishCommand, CleanCommand, LinkCleanupCommand
from contentful_ops.commands.publish import PublishAllCommand, PublishAssetsCommand, PublishEntriesCommand
from contentful_ops.commands.rules import ValidateRulesCommand

COMMANDS = {
    "scan": LinkCleanupCommand,
    "clean": CleanCommand,
    "clean-and-publish": CleanAndPublishCommand,
    "publish": PublishAllCommand,
    "publish-entries-only": PublishEntriesCommand,
    "publish-assets-only": PublishAssetsCommand,
    "delete-drafts": DeleteDraftsCommand,
    "delete-all-entries": DeleteEntriesCommand,
    "delete-all-assets": DeleteAssetsCommand,
    "unpublish-all-entries": UnpublishEntriesCommand,
    "validate-rules": ValidateRulesCommand,
}

# Commands that remove content when run without --dry-run.
DESTRUCTIVE_COMMANDS = {"clean-and-publish", "publish", "publish-entries-only", "publish-assets-only",
                        "delete-drafts", "delete-all-entries", "delete-all-assets", "unpublish-all-entries"}

__all__ = [
    "AbortException",
    "COMMANDS",
    "DESTRUCTIVE_COMMANDS",
    "CleanAndPublishCommand",
    "CleanCommand",
    "DeleteAssetsCommand",
    "DeleteDraftsCommand",
    "DeleteEntriesCommand",
    "LinkCleanupCommand",
    "MaintenanceCommand",
    "PublishAllCommand",
    "PublishAssetsCommand",
    "PublishEntriesCommand",
    "UnpublishEntriesCommand",
    "ValidateRulesCommand",
]
