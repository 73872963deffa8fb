"""
Query tree construction for the RCSB Search API.

Leaf operators are wrapped in terminal `QueryNode`s tagged with the search
service that evaluates them; `QueryGroup`s combine nodes with AND/OR and may
nest arbitrarily. `RequestOptions` carries pagination and sorting.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..connectors._utils import CannotInferSearchServiceError, InvalidInputError
from .operators import (
    TEXT_SEARCH_OPERATORS,
    ChemicalOperator,
    ComparisonOperator,
    ContainsPhraseOperator,
    ContainsWordsOperator,
    DefaultOperator,
    ExactMatchOperator,
    ExistsOperator,
    InOperator,
    RangeOperator,
    SearchOperator,
    SeqMotifOperator,
    SequenceOperator,
    StructureOperator,
    coerce_enum,
)


class LogicalOperator(Enum):
    AND = "and"
    OR = "or"


class SearchService(Enum):
    """Search sub-engines of the RCSB Search API."""
    BASIC_SEARCH = "full_text"
    TEXT = "text"
    SEQUENCE = "sequence"
    SEQMOTIF = "seqmotif"
    STRUCTURE = "structure"
    CHEMICAL = "chemical"


_TEXT_OPERATOR_CLASSES = (
    ExactMatchOperator,
    InOperator,
    ContainsWordsOperator,
    ContainsPhraseOperator,
    ComparisonOperator,
    RangeOperator,
    ExistsOperator,
)


def infer_search_service(search_operator: Any) -> SearchService:
    """Return the search service that evaluates `search_operator`.

    Plain mappings are accepted too: one with a text operator tag (or an
    attribute but no tag) goes to the text service, one holding only a
    ``value`` goes to full-text search.

    Raises:
        CannotInferSearchServiceError: If no service handles the operator.
    """
    if isinstance(search_operator, DefaultOperator):
        return SearchService.BASIC_SEARCH
    if isinstance(search_operator, _TEXT_OPERATOR_CLASSES):
        return SearchService.TEXT
    if isinstance(search_operator, SequenceOperator):
        return SearchService.SEQUENCE
    if isinstance(search_operator, StructureOperator):
        return SearchService.STRUCTURE
    if isinstance(search_operator, SeqMotifOperator):
        return SearchService.SEQMOTIF
    if isinstance(search_operator, ChemicalOperator):
        return SearchService.CHEMICAL

    if isinstance(search_operator, Mapping):
        operator = search_operator.get("operator")
        if operator in TEXT_SEARCH_OPERATORS:
            return SearchService.TEXT
        if operator is None and "attribute" in search_operator:
            return SearchService.TEXT
        if operator is None and set(search_operator) == {"value"}:
            return SearchService.BASIC_SEARCH

    raise CannotInferSearchServiceError(
        f"Cannot infer search service for operator: {search_operator!r}"
    )


def _operator_parameters(search_operator: Any) -> Dict[str, Any]:
    if isinstance(search_operator, Mapping):
        return dict(search_operator)
    return search_operator.to_dict()


@dataclass
class QueryNode:
    """Terminal node wrapping a single search operator.

    ``QueryNode(group)`` returns the group itself, whether a `QueryGroup` or
    a serialized ``{"type": "group", ...}`` mapping.
    """
    search_operator: Union[SearchOperator, Mapping[str, Any]]
    service: SearchService = field(init=False)

    def __new__(cls, search_operator=None, *args, **kwargs):
        if isinstance(search_operator, QueryGroup):
            return search_operator
        if isinstance(search_operator, Mapping) and search_operator.get("type") == "group":
            return search_operator
        return super().__new__(cls)

    def __post_init__(self):
        self.service = infer_search_service(self.search_operator)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "terminal",
            "service": self.service.value,
            "parameters": _operator_parameters(self.search_operator),
        }


QueryLike = Union["QueryGroup", QueryNode, SearchOperator, Mapping[str, Any]]


def as_query_node(query: QueryLike) -> Union["QueryGroup", QueryNode, Mapping[str, Any]]:
    """Wrap `query` in a `QueryNode` unless it is already a node or group.

    Mappings already carrying a ``type`` key are treated as serialized nodes
    and passed through.
    """
    if isinstance(query, (QueryGroup, QueryNode)):
        return query
    if isinstance(query, Mapping) and "type" in query:
        return query
    return QueryNode(query)


def serialize_query(query: QueryLike) -> Dict[str, Any]:
    """Return the JSON-ready form of any query, operator or node."""
    node = as_query_node(query)
    if isinstance(node, Mapping):
        return dict(node)
    return node.to_dict()


@dataclass
class QueryGroup:
    """AND/OR combination of queries; groups may nest."""
    queries: Sequence[QueryLike]
    logical_operator: Union[LogicalOperator, str] = LogicalOperator.AND
    nodes: List[Any] = field(init=False)

    def __post_init__(self):
        if not self.queries:
            raise InvalidInputError("A QueryGroup needs at least one query.")
        self.logical_operator = coerce_enum(LogicalOperator, self.logical_operator)
        self.nodes = [as_query_node(query) for query in self.queries]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "group",
            "logical_operator": self.logical_operator.value,
            "nodes": [serialize_query(node) for node in self.nodes],
        }


@dataclass
class RequestOptions:
    """Pagination and sorting of search results.

    ``paginate`` is only sent when both `result_start_index` and `num_results`
    are given.
    """
    result_start_index: Optional[int] = None
    num_results: Optional[int] = None
    sort_by: Optional[str] = "score"
    desc: Optional[bool] = True

    def to_dict(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {}
        if self.result_start_index is not None and self.num_results is not None:
            options["paginate"] = {"start": self.result_start_index, "rows": self.num_results}
        if self.sort_by is not None and self.desc is not None:
            options["sort"] = [{
                "sort_by": self.sort_by,
                "direction": "desc" if self.desc else "asc",
            }]
        return options


@dataclass(frozen=True)
class ScoredResult:
    entity_id: str
    score: float
