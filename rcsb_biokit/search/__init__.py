"""
Search Sub-package for RCSB Biokit.

Builds and runs queries against the RCSB Search API:

- operators: leaf predicates (text attributes, sequence, structure, chemical, motif).
- query: terminal nodes, AND/OR groups, request options.
- client: `perform_search` for query trees, `query_search` for single-term lookups.

Example Usage:
    >>> from rcsb_biokit.search import ExactMatchOperator, RangeOperator, QueryGroup, perform_search
    >>> group = QueryGroup(
    ...     [ExactMatchOperator("exptl.method", "X-RAY DIFFRACTION"),
    ...      RangeOperator("rcsb_entry_info.resolution_combined", 0.5, 1.5)],
    ...     "AND",
    ... )
    >>> # ids = perform_search(group)
"""

from .operators import (
    ComparisonType,
    SequenceType,
    PatternType,
    StructureSearchMode,
    DescriptorMatchingCriterion,
    DefaultOperator,
    ExactMatchOperator,
    InOperator,
    ContainsWordsOperator,
    ContainsPhraseOperator,
    ComparisonOperator,
    RangeOperator,
    ExistsOperator,
    SequenceOperator,
    StructureOperator,
    SeqMotifOperator,
    ChemicalOperator,
    autoresolve_sequence_type,
)
from .query import (
    LogicalOperator,
    SearchService,
    QueryNode,
    QueryGroup,
    RequestOptions,
    ScoredResult,
    infer_search_service,
)
from .client import (
    RETURN_TYPE_MAP,
    perform_search,
    query_search,
    walk_nested_dict,
)

__all__ = [
    "ComparisonType",
    "SequenceType",
    "PatternType",
    "StructureSearchMode",
    "DescriptorMatchingCriterion",
    "DefaultOperator",
    "ExactMatchOperator",
    "InOperator",
    "ContainsWordsOperator",
    "ContainsPhraseOperator",
    "ComparisonOperator",
    "RangeOperator",
    "ExistsOperator",
    "SequenceOperator",
    "StructureOperator",
    "SeqMotifOperator",
    "ChemicalOperator",
    "autoresolve_sequence_type",

    "LogicalOperator",
    "SearchService",
    "QueryNode",
    "QueryGroup",
    "RequestOptions",
    "ScoredResult",
    "infer_search_service",

    "RETURN_TYPE_MAP",
    "perform_search",
    "query_search",
    "walk_nested_dict",
]
