"""
Classification of failed writes.

A publish that fails with 422 because required fields are empty marks the
entry as a deletion candidate. Anything else, including error shapes this
module does not recognise, is not.
"""

from datetime import datetime, timezone


def _sub_errors(error) -> list:
    details = getattr(error, "details", None)
    if isinstance(error, dict):
        details = error.get("details")
    if not isinstance(details, dict):
        return []
    errors = details.get("errors")
    return errors if isinstance(errors, list) else []


def _status(error):
    if isinstance(error, dict):
        return error.get("status", error.get("httpStatus"))
    return getattr(error, "status", None)


def is_required_sub_error(sub_error: dict) -> bool:
    if not isinstance(sub_error, dict):
        return False
    if sub_error.get("name") == "required":
        return True
    detail = sub_error.get("details")
    return isinstance(detail, str) and "required" in detail.lower()


def is_missing_required_field_error(error) -> bool:
    """
    True only for a 422 whose details contain at least one sub-error named
    "required" or whose text mentions "required".

    Accepts a ContentfulError or a plain dict with `status`/`httpStatus` and
    `details`.
    """
    if error is None or _status(error) != 422:
        return False
    return any(is_required_sub_error(e) for e in _sub_errors(error))


def extract_validation_error_details(error, entry_id: str, content_type: str = "unknown") -> dict:
    """Report record for a failed write on `entry_id` of type `content_type`."""
    errors = []
    for sub_error in _sub_errors(error):
        if not isinstance(sub_error, dict):
            continue
        path = sub_error.get("path")
        errors.append({
            "field": ".".join(str(p) for p in path) if isinstance(path, list) else "unknown",
            "name": sub_error.get("name") or "unknown",
            "details": sub_error.get("details") or "unknown error",
            "isMissingRequired": is_required_sub_error(sub_error),
        })

    return {
        "entryId": entry_id,
        "contentType": content_type,
        "errorType": "validation",
        "status": _status(error) or 422,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "errors": errors,
    }
