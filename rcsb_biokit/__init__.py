"""
RCSB BioKit (rcsb-biokit)

This is the main package for RCSB BioKit, a Python client for the public web
services of the RCSB Protein Data Bank: the REST metadata API, the GraphQL
Data API, the Search API and the file download service.

Subpackages:
  - search: Search operators, query trees and search execution.
  - data: Batch metadata retrieval (GraphQL) and tabular flattening.
  - connectors: Entry/chemical component records and FASTA sequences.

Example Usage:
    Full-text search:
    >>> from rcsb_biokit import query_search
    >>> ids = query_search("hemoglobin")

    Structured search:
    >>> from rcsb_biokit import ComparisonOperator, perform_search
    >>> op = ComparisonOperator("rcsb_entry_info.resolution_combined", 1.0, "LESS")
    >>> ids = perform_search(op, return_type="ENTRY")

    Metadata of several entries as a DataFrame:
    >>> from rcsb_biokit import data_fetcher
    >>> df = data_fetcher(["4HHB", "1A0O"], "ENTRY", {"exptl": ["method"]})

    Coordinates:
    >>> from rcsb_biokit import get_pdb_file
    >>> result = get_pdb_file("4HHB", filetype="pdb")
    >>> result.xyz.shape
"""
from .config import (
    RCSBEndpoints,
    DEFAULT_ENDPOINTS,
    get_pdb_api_url,
)
from .connectors._utils import (
    RCSBError,
    APIRequestError,
    GraphQLQueryError,
    MalformedResponseError,
    UnsupportedMappingError,
    InvalidInputError,
    AmbiguousSequenceTypeError,
    CannotInferSearchServiceError,
    NotFoundError,
    MissingIDsError,
)
from .connectors import (
    get_info,
    describe_chemical,
    find_papers,
    find_results,
    FastaSequence,
    parse_fasta_text_to_list,
    get_fasta_from_rcsb_entry,
)
from .search import (
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
    LogicalOperator,
    SearchService,
    QueryNode,
    QueryGroup,
    RequestOptions,
    ScoredResult,
    infer_search_service,
    perform_search,
    query_search,
    walk_nested_dict,
)
from .data import (
    DataType,
    FetchResponse,
    add_property,
    generate_json_query,
    search_graphql,
    fetch_data,
    validate_id,
    data_fetcher,
    return_data_as_dataframe,
)
from .pdb_fetcher import (
    PdbFileResult,
    download_pdb_file,
    get_pdb_file,
)

# Also make the subpackages themselves available
from . import search
from . import data
from . import connectors

__all__ = [
    # Configuration
    "RCSBEndpoints",
    "DEFAULT_ENDPOINTS",
    "get_pdb_api_url",

    # Errors
    "RCSBError",
    "APIRequestError",
    "GraphQLQueryError",
    "MalformedResponseError",
    "UnsupportedMappingError",
    "InvalidInputError",
    "AmbiguousSequenceTypeError",
    "CannotInferSearchServiceError",
    "NotFoundError",
    "MissingIDsError",

    # REST and FASTA
    "get_info",
    "describe_chemical",
    "find_papers",
    "find_results",
    "FastaSequence",
    "parse_fasta_text_to_list",
    "get_fasta_from_rcsb_entry",

    # Search
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
    "perform_search",
    "query_search",
    "walk_nested_dict",

    # Data API
    "DataType",
    "FetchResponse",
    "add_property",
    "generate_json_query",
    "search_graphql",
    "fetch_data",
    "validate_id",
    "data_fetcher",
    "return_data_as_dataframe",

    # Structure files
    "PdbFileResult",
    "download_pdb_file",
    "get_pdb_file",

    # Subpackages
    "search",
    "data",
    "connectors",
]

__version__ = "0.1.0"
