"""
Criteria compilation for MDM Submit.

Turns a resource type and an optional FHIR-style search string into an
immutable QuerySpec. The supported subset is deliberately small:

- `_id=a,b`                      logical id in the listed values
- `_lastUpdated=ge2020-01-01`    last-updated comparison (eq/ne/gt/ge/lt/le)
- `<name>=x,y`                   top-level payload field equals one of the values

Repeated parameters are AND-ed, comma separated values are OR-ed.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import List, Optional
from urllib.parse import parse_qsl

from mdm_submit.config import DEFAULT_PAGE_SIZE
from mdm_submit.domain.models import Comparator, QuerySpec, SearchFilter
from mdm_submit.errors import ValidationError

PARAM_ID = "_id"
PARAM_LAST_UPDATED = "_lastUpdated"

_PARAM_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_\-]*$")
_COMPARATORS = {c.value for c in Comparator}


def _split_values(param: str, raw: str) -> tuple[str, ...]:
    values = tuple(part.strip() for part in raw.split(","))
    if not values or any(not value for value in values):
        raise ValidationError(f"Search parameter {param} has an empty value")
    return values


def _last_updated_filter(raw: str) -> SearchFilter:
    comparator = Comparator.EQ
    value = raw.strip()
    if value[:2] in _COMPARATORS:
        comparator = Comparator(value[:2])
        value = value[2:]
    if "," in value:
        raise ValidationError(f"{PARAM_LAST_UPDATED} accepts a single value, got {raw!r}")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError(f"Invalid {PARAM_LAST_UPDATED} value {raw!r}") from exc
    return SearchFilter(param=PARAM_LAST_UPDATED, comparator=comparator, values=(parsed.isoformat(),))


def _strip_prefix(resource_type: str, criteria: str) -> str:
    if "?" not in criteria:
        return criteria
    target, _, query = criteria.partition("?")
    if target and target != resource_type:
        raise ValidationError(
            f"Criteria {criteria!r} targets {target}, not {resource_type}"
        )
    return query


def parse_criteria(resource_type: str, criteria: Optional[str]) -> List[SearchFilter]:
    """
    Compile a criteria string into search filters. Blank criteria match everything.
    """
    if criteria is None or not criteria.strip():
        return []

    query = _strip_prefix(resource_type, criteria.strip())
    if not query:
        return []
    filters: List[SearchFilter] = []
    for param, raw in parse_qsl(query, keep_blank_values=True):
        if not param:
            raise ValidationError(f"Invalid criteria {criteria!r}: missing parameter name")
        if not _PARAM_NAME_RE.match(param):
            raise ValidationError(f"Unsupported search parameter {param!r}")
        if not raw.strip():
            raise ValidationError(f"Search parameter {param} has an empty value")

        if param == PARAM_LAST_UPDATED:
            filters.append(_last_updated_filter(raw))
        else:
            filters.append(SearchFilter(param=param, values=_split_values(param, raw)))
    if not filters:
        raise ValidationError(f"Invalid criteria {criteria!r}")
    return filters


def build_query_spec(
    resource_type: str,
    criteria: Optional[str] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> QuerySpec:
    """
    Build the QuerySpec a cursor executes for `resource_type` and `criteria`.
    """
    return QuerySpec(
        resource_type=resource_type,
        filters=tuple(parse_criteria(resource_type, criteria)),
        page_size=page_size,
    )


__all__ = ["PARAM_ID", "PARAM_LAST_UPDATED", "build_query_spec", "parse_criteria"]
