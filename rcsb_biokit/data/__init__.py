"""
Data Sub-package for RCSB Biokit.

Batch metadata retrieval from the RCSB Data API (GraphQL):

- fetcher: property selection, query rendering, fetching and ID reconciliation.
- dataframe: flattening of nested records into a pandas DataFrame.
"""

from .fetcher import (
    DataType,
    FetchResponse,
    add_property,
    generate_json_query,
    search_graphql,
    fetch_data,
    validate_id,
    data_fetcher,
)
from .dataframe import (
    flatten_record,
    return_data_as_dataframe,
)

__all__ = [
    "DataType",
    "FetchResponse",
    "add_property",
    "generate_json_query",
    "search_graphql",
    "fetch_data",
    "validate_id",
    "data_fetcher",

    "flatten_record",
    "return_data_as_dataframe",
]
