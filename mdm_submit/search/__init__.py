"""
Search package for MDM Submit: criteria strings to query specifications.
"""

from mdm_submit.search.criteria import build_query_spec, parse_criteria

__all__ = ["build_query_spec", "parse_criteria"]
