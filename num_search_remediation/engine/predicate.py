"""
Candidate selection and num_search recomputation rules.

The MongoDB filter and update pipeline are what the store evaluates;
the plain functions below express the same rules in Python.
"""
import re
from typing import Any, Optional

from bson.regex import Regex

from num_search_remediation.models import JobRecord

NUM_SEARCH_FIELD = "num_search"
SOURCE_FIELDS = ("job_id", "client_code")

# Exact form j<digits>c<digits>
NUM_SEARCH_PATTERN = r"^j\d+c\d+$"
BLANK_PATTERN = r"^\s*$"

_NUM_SEARCH_RE = re.compile(NUM_SEARCH_PATTERN, re.ASCII)
_BLANK_RE = re.compile(BLANK_PATTERN, re.ASCII)


def build_candidate_filter() -> dict:
    """
    Build the filter selecting documents that need remediation.

    Returns:
        MongoDB $or filter over the three field validity rules
    """
    clauses = [
        {NUM_SEARCH_FIELD: {"$exists": False}},
        {NUM_SEARCH_FIELD: None},
        {NUM_SEARCH_FIELD: ""},
        {NUM_SEARCH_FIELD: Regex(BLANK_PATTERN)},
        {NUM_SEARCH_FIELD: {"$not": Regex(NUM_SEARCH_PATTERN)}},
    ]
    for field in SOURCE_FIELDS:
        clauses.extend([
            {field: {"$exists": False}},
            {field: None},
            {field: ""},
            {field: Regex(BLANK_PATTERN)},
        ])
    return {"$or": clauses}


def build_update_pipeline() -> list:
    """
    Build the update pipeline that recomputes num_search in place.

    num_search becomes "j<job_id>c<client_code>" when both source fields
    are truthy, otherwise it keeps its current value.
    """
    return [
        {
            "$set": {
                NUM_SEARCH_FIELD: {
                    "$cond": {
                        "if": {
                            "$and": [
                                {"$ifNull": ["$job_id", False]},
                                {"$ifNull": ["$client_code", False]},
                            ]
                        },
                        "then": {
                            "$concat": [
                                "j",
                                {"$toString": "$job_id"},
                                "c",
                                {"$toString": "$client_code"},
                            ]
                        },
                        "else": f"${NUM_SEARCH_FIELD}",
                    }
                }
            }
        }
    ]


def is_num_search_invalid(value: Any) -> bool:
    """Check if a num_search value is missing, blank or malformed."""
    if not isinstance(value, str):
        return True
    return _NUM_SEARCH_RE.match(value) is None


def is_source_field_invalid(value: Any) -> bool:
    """Check if a job_id/client_code value is missing or blank."""
    if value is None:
        return True
    return isinstance(value, str) and _BLANK_RE.match(value) is not None


def is_candidate(record: JobRecord) -> bool:
    """Check if a record matches the candidate filter."""
    return (
        is_num_search_invalid(record.num_search)
        or is_source_field_invalid(record.job_id)
        or is_source_field_invalid(record.client_code)
    )


def _is_truthy(value: Any) -> bool:
    # Aggregation truthiness: only null, missing, false and zero are false
    if value is None or value is False:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value != 0
    return True


def _to_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def recompute_num_search(record: JobRecord) -> Optional[Any]:
    """
    Apply the recomputation rule to a record.

    Args:
        record: Job record

    Returns:
        The num_search value the record should hold after remediation
    """
    if _is_truthy(record.job_id) and _is_truthy(record.client_code):
        return f"j{_to_string(record.job_id)}c{_to_string(record.client_code)}"
    return record.num_search
