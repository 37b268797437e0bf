"""
validate-rules: check a --deletion-rules file before a publish run uses it.
Makes no writes.
"""

import json
import logging
from pathlib import Path

from contentful_ops.commands.base import AbortException, MaintenanceCommand
from contentful_ops.deletion_rules import DeletionRules

logger = logging.getLogger(__name__)


class ValidateRulesCommand(MaintenanceCommand):
    name = "validate-rules"
    description = "Check the deletion rules file and summarise it"

    def execute(self):
        path = self.settings.deletion_rules_path
        if path is None:
            raise AbortException("No deletion rules file given (use --deletion-rules)")
        path = Path(path)
        if not path.exists():
            raise AbortException(f"Deletion rules file not found: {path}")

        try:
            rules = DeletionRules.load(path)
        except json.JSONDecodeError as e:
            raise AbortException(f"Deletion rules file is not valid JSON: {e}") from e

        summary = rules.summary()
        self.count("rules_total", summary["totalRules"])
        self.count("rules_enabled", summary["enabledRules"])
        logger.info(f"Total rules: {summary['totalRules']}, enabled: {summary['enabledRules']}")
        logger.info(f"Content types covered: {', '.join(summary['contentTypes']) or '-'}")
        logger.info(f"Environments configured: {', '.join(summary['environments']) or '-'}")

        enabled_here = rules.enabled_rules(self.settings.context)
        self.count("rules_enabled_for_context", len(enabled_here))
        if not enabled_here:
            logger.warning(f"No deletion rules are enabled for {self.settings.context}")

        problems = rules.validate()
        for problem in problems:
            logger.error(f"Rule problem: {problem}")
        self.count("rule_problems", len(problems))
        if problems:
            raise AbortException(f"Deletion rules file has {len(problems)} problem(s)")

        logger.info("Deletion rules file is valid")
