"""
Rule-based deletion candidates.

An optional JSON file describes which entries may be deleted during a
publish run:

    {
      "deletionRules": [
        {
          "id": "empty-seo-heads",
          "name": "Empty SEO heads",
          "enabled": true,
          "environments": ["fr", "de"],
          "contentTypes": ["seoHead"],
          "conditions": {
            "operator": "AND",
            "rules": [
              {"field": "title", "operator": "isEmpty"},
              {"field": "sys.createdAt", "operator": "olderThan", "value": "30d"}
            ]
          },
          "safetyChecks": {"checkLinks": true, "skipIfReferenced": true}
        }
      ],
      "globalSettings": {"defaultBehavior": {"checkLinksBeforeDeletion": true, "maxDeletionsPerRun": 100}},
      "environmentConfig": {"fr": {"safeMode": true, "maxDeletionsPerRun": 50}}
    }

The first enabled rule matching an entry wins. Conditions nest with
AND/OR operators.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional

from contentful_ops.entries import content_type_id, entity_id, has_entry_data

logger = logging.getLogger(__name__)

RELATIVE_UNITS = {"d": "days", "h": "hours", "m": "minutes"}
CONDITION_OPERATORS = ("AND", "OR")
FIELD_OPERATORS = (
    "isEmpty", "isNotEmpty", "equals", "notEquals", "contains", "startsWith", "endsWith",
    "before", "after", "olderThan", "newerThan", "greaterThan", "lessThan", "hasNoData",
)


def _parse_date(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if value == "now":
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


@dataclass
class DeletionCandidate:
    entry: dict
    rule_id: str
    rule_name: str
    reasons: list
    safety_checks: dict = field(default_factory=dict)
    is_linked: bool = False
    linked_by: list = field(default_factory=list)
    will_delete: bool = False
    skip_reason: Optional[str] = None


class DeletionRules:
    """Evaluates entries against a deletion mapping file."""

    def __init__(self, config: Optional[dict] = None):
        self.config = config or {"deletionRules": [], "globalSettings": {}}

    @classmethod
    def load(cls, path: Optional[Path]) -> "DeletionRules":
        """Load rules from `path`. A missing file yields an empty rule set."""
        if path is None:
            return cls()
        path = Path(path)
        if not path.exists():
            logger.warning(f"Entry deletion config not found at {path}")
            return cls()
        with open(path) as f:
            config = json.load(f)
        logger.info(f"Loaded entry deletion config from {path}")
        return cls(config)

    @property
    def rules(self) -> list:
        rules = self.config.get("deletionRules")
        return [rule for rule in rules if isinstance(rule, dict)] if isinstance(rules, list) else []

    def enabled_rules(self, environment: str) -> list:
        return [
            rule for rule in self.rules
            if rule.get("enabled") and (not rule.get("environments") or environment in rule["environments"])
        ]

    def environment_settings(self, environment: str) -> dict:
        env_config = (self.config.get("environmentConfig") or {}).get(environment, {})
        defaults = (self.config.get("globalSettings") or {}).get("defaultBehavior", {})
        return {
            "safeMode": env_config.get("safeMode", defaults.get("checkLinksBeforeDeletion", True)),
            "maxDeletionsPerRun": env_config.get("maxDeletionsPerRun", defaults.get("maxDeletionsPerRun", 100)),
        }

    # -------------------------------------------------------------------------
    # Matching
    # -------------------------------------------------------------------------

    def match(self, entry: dict, environment: str) -> Optional[DeletionCandidate]:
        """Return a candidate for the first enabled rule matching `entry`, else None."""
        content_type = content_type_id(entry)
        for rule in self.enabled_rules(environment):
            content_types = rule.get("contentTypes") or []
            if not any(ct == "*" or ct == content_type for ct in content_types):
                continue
            matches, reasons = self.evaluate_conditions(entry, rule.get("conditions"))
            if matches:
                return DeletionCandidate(
                    entry=entry,
                    rule_id=rule.get("id", "unknown"),
                    rule_name=rule.get("name", "Unknown Rule"),
                    reasons=reasons,
                    safety_checks=rule.get("safetyChecks") or {},
                )
        return None

    def evaluate_conditions(self, entry: dict, conditions: Optional[dict]) -> tuple[bool, list]:
        if not conditions or not conditions.get("rules"):
            return False, []

        operator = conditions.get("operator", "AND")
        evaluated = [self.evaluate_rule(entry, rule) for rule in conditions["rules"]]

        if operator == "AND":
            if all(matched for matched, _ in evaluated):
                return True, [reason for _, reason in evaluated if reason]
            return False, []
        if operator == "OR":
            reasons = [reason for matched, reason in evaluated if matched]
            return bool(reasons), reasons

        logger.warning(f"Unknown condition operator: {operator}")
        return False, []

    def evaluate_rule(self, entry: dict, rule: dict) -> tuple[bool, str]:
        if rule.get("operator") in ("AND", "OR") and "rules" in rule:
            matched, reasons = self.evaluate_conditions(entry, rule)
            return matched, ", ".join(reasons)

        field_path = rule.get("field", "")
        operator = rule.get("operator", "")
        expected = rule.get("value")

        value = self.get_field_value(entry, field_path)
        if not self.evaluate_operator(value, operator, expected, entry):
            return False, ""
        return True, rule.get("description") or f"{field_path} {operator} {expected if expected is not None else ''}".strip()

    def get_field_value(self, entry: dict, field_path: str) -> Any:
        """`sys.*` paths read system fields; anything else reads the first locale of a field."""
        if field_path.startswith("sys."):
            return entry.get("sys", {}).get(field_path[len("sys."):])

        locales = (entry.get("fields") or {}).get(field_path)
        if isinstance(locales, dict):
            return next(iter(locales.values()), None)
        return locales

    def evaluate_operator(self, value: Any, operator: str, expected: Any, entry: dict) -> bool:
        if operator == "isEmpty":
            return _is_empty(value)
        elif operator == "isNotEmpty":
            return not _is_empty(value)
        elif operator == "equals":
            return value == expected
        elif operator == "notEquals":
            return value != expected
        elif operator == "contains":
            return value is not None and str(expected) in str(value)
        elif operator == "startsWith":
            return value is not None and str(value).startswith(str(expected))
        elif operator == "endsWith":
            return value is not None and str(value).endswith(str(expected))
        elif operator in ("before", "after"):
            actual, bound = _parse_date(value), _parse_date(expected)
            if actual is None or bound is None:
                return False
            return actual < bound if operator == "before" else actual > bound
        elif operator in ("olderThan", "newerThan"):
            return self._evaluate_relative_date(entry.get("sys", {}).get("createdAt"), expected, operator)
        elif operator in ("greaterThan", "lessThan"):
            try:
                actual, bound = float(value), float(expected)
            except (TypeError, ValueError):
                return False
            return actual > bound if operator == "greaterThan" else actual < bound
        elif operator == "hasNoData":
            return not has_entry_data(entry)

        logger.warning(f"Unknown operator: {operator}")
        return False

    def _evaluate_relative_date(self, created_at: Any, relative: Any, operator: str) -> bool:
        created = _parse_date(created_at)
        match = re.match(r"^(\d+)([dhm])$", str(relative or ""))
        if created is None:
            return False
        if not match:
            logger.warning(f"Invalid relative date format: {relative}")
            return False

        amount, unit = int(match.group(1)), match.group(2)
        cutoff = datetime.now(timezone.utc) - timedelta(**{RELATIVE_UNITS[unit]: amount})
        return created < cutoff if operator == "olderThan" else created > cutoff

    # -------------------------------------------------------------------------
    # File checks
    # -------------------------------------------------------------------------

    def summary(self) -> dict:
        content_types = []
        for rule in self.rules:
            for ct in rule.get("contentTypes") or []:
                if ct not in content_types:
                    content_types.append(ct)
        return {
            "totalRules": len(self.rules),
            "enabledRules": sum(1 for rule in self.rules if rule.get("enabled")),
            "contentTypes": content_types,
            "environments": list((self.config.get("environmentConfig") or {}).keys()),
        }

    def validate(self) -> list:
        """Return a list of problems found in the rule file. Empty means usable."""
        problems = []
        rules = self.config.get("deletionRules")
        if not isinstance(rules, list):
            return ["deletionRules must be a list"]

        seen_ids = set()
        for index, rule in enumerate(rules):
            label = f"rule {index + 1}"
            if not isinstance(rule, dict):
                problems.append(f"{label}: must be an object")
                continue

            rule_id = rule.get("id")
            if not rule_id:
                problems.append(f"{label}: missing id")
            elif rule_id in seen_ids:
                problems.append(f"{label}: duplicate id '{rule_id}'")
            else:
                seen_ids.add(rule_id)
                label = f"rule '{rule_id}'"

            if not rule.get("name"):
                problems.append(f"{label}: missing name")
            content_types = rule.get("contentTypes")
            if not isinstance(content_types, list) or not content_types:
                problems.append(f"{label}: contentTypes must be a non-empty list")
            problems.extend(self._condition_problems(rule.get("conditions"), label))

        return problems

    def _condition_problems(self, conditions: Any, label: str) -> list:
        if not isinstance(conditions, dict) or not conditions.get("rules"):
            return [f"{label}: conditions need at least one rule"]
        if conditions.get("operator", "AND") not in CONDITION_OPERATORS:
            return [f"{label}: unknown condition operator '{conditions.get('operator')}'"]

        problems = []
        for condition in conditions["rules"]:
            if not isinstance(condition, dict):
                problems.append(f"{label}: condition must be an object")
                continue
            if condition.get("operator") in CONDITION_OPERATORS and "rules" in condition:
                problems.extend(self._condition_problems(condition, label))
                continue

            operator = condition.get("operator")
            if operator not in FIELD_OPERATORS:
                problems.append(f"{label}: unknown operator '{operator}'")
            elif operator != "hasNoData" and not condition.get("field"):
                problems.append(f"{label}: {operator} needs a field")
            elif operator in ("olderThan", "newerThan") and not re.match(r"^\d+[dhm]$", str(condition.get("value") or "")):
                problems.append(f"{label}: invalid relative date '{condition.get('value')}'")
        return problems

    # -------------------------------------------------------------------------
    # Candidate selection
    # -------------------------------------------------------------------------

    def select_candidates(
        self,
        entries: list,
        environment: str,
        link_checker: Optional[Callable[[str], Any]] = None,
    ) -> list:
        """
        Match every entry, apply reference safety checks and the per-run cap.

        `link_checker(entry_id)` returns an object with `is_linked` and
        `linked_by`, e.g. ReferenceTools.is_entry_linked.
        """
        env_settings = self.environment_settings(environment)
        candidates = []

        logger.info(f"Processing {len(entries)} entries for deletion using mapping rules...")
        for entry in entries:
            candidate = self.match(entry, environment)
            if candidate is None:
                continue

            candidate.will_delete = True
            if env_settings["safeMode"] and candidate.safety_checks.get("checkLinks") and link_checker:
                check = link_checker(entity_id(entry))
                candidate.is_linked = check.is_linked
                candidate.linked_by = check.linked_by
                if check.is_linked and candidate.safety_checks.get("skipIfReferenced"):
                    logger.warning(f"Entry {entity_id(entry)} matches rule but is referenced by other entries. Skipping.")
                    candidate.will_delete = False
                    candidate.skip_reason = "Referenced by other entries"

            logger.info(
                f"Entry {entity_id(entry)} ({content_type_id(entry)}) matched rule '{candidate.rule_name}': "
                f"{', '.join(candidate.reasons)} - will delete: {candidate.will_delete}"
            )
            candidates.append(candidate)

        limit = env_settings["maxDeletionsPerRun"]
        to_delete = [c for c in candidates if c.will_delete]
        if len(to_delete) > limit:
            logger.warning(f"{len(to_delete)} entries marked for deletion exceeds limit of {limit}")
            for candidate in to_delete[limit:]:
                candidate.will_delete = False
                candidate.skip_reason = "Exceeded max deletions per run limit"

        return candidates

    def build_report(self, candidates: list, environment: str) -> dict:
        report = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": environment,
            "totalCandidates": len(candidates),
            "ruleBreakdown": {},
            "contentTypeBreakdown": {},
            "summary": {"willDelete": 0, "willSkipDueToLinks": 0, "willSkipDueToSafety": 0},
        }

        for candidate in candidates:
            rule = report["ruleBreakdown"].setdefault(
                candidate.rule_id, {"ruleName": candidate.rule_name, "count": 0, "entries": []}
            )
            rule["count"] += 1
            rule["entries"].append({
                "id": entity_id(candidate.entry),
                "contentType": content_type_id(candidate.entry),
                "reasons": candidate.reasons,
            })

            ct = content_type_id(candidate.entry)
            report["contentTypeBreakdown"][ct] = report["contentTypeBreakdown"].get(ct, 0) + 1

            if candidate.will_delete:
                report["summary"]["willDelete"] += 1
            elif candidate.is_linked:
                report["summary"]["willSkipDueToLinks"] += 1
            else:
                report["summary"]["willSkipDueToSafety"] += 1

        return report
