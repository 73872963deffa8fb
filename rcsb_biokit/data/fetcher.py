"""
Metadata fetch pipeline for the RCSB Data API (GraphQL).

Given identifiers and a property selection this module renders a GraphQL
query, posts it, and reconciles the returned records with the requested IDs:

    >>> from rcsb_biokit.data import data_fetcher
    >>> df = data_fetcher(
    ...     ["4HHB", "1A0O"],
    ...     data_type="ENTRY",
    ...     properties={"exptl": ["method"], "cell": ["length_a", "length_b"]},
    ... )

`data_fetcher` composes `add_property`, `generate_json_query`, `fetch_data`
and (optionally) `return_data_as_dataframe`; each step is public on its own.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Sequence, Union

from ..config import DEFAULT_ENDPOINTS, RCSBEndpoints
from ..connectors._utils import (
    GraphQLQueryError,
    InvalidInputError,
    MalformedResponseError,
    MissingIDsError,
    make_api_request,
    parse_json_response,
)
from ..search.operators import coerce_enum

logger = logging.getLogger(__name__)


class DataType(Enum):
    """Kinds of records served by the Data API: GraphQL root field and id argument."""
    ENTRY = ("entries", "entry_ids")
    POLYMER_ENTITY = ("polymer_entities", "entity_ids")
    BRANCHED_ENTITY = ("branched_entities", "entity_ids")
    NONPOLYMER_ENTITY = ("nonpolymer_entities", "entity_ids")
    POLYMER_ENTITY_INSTANCE = ("polymer_entity_instances", "instance_ids")
    BRANCHED_ENTITY_INSTANCE = ("branched_entity_instances", "instance_ids")
    NONPOLYMER_ENTITY_INSTANCE = ("nonpolymer_entity_instances", "instance_ids")
    ASSEMBLY = ("assemblies", "assembly_ids")
    CHEMICAL_COMPONENT = ("chem_comps", "comp_ids")

    def __init__(self, root_field: str, id_keyword: str):
        self.root_field = root_field
        self.id_keyword = id_keyword


def _as_data_type(data_type: Union[DataType, str]) -> DataType:
    return coerce_enum(DataType, data_type)


def _as_id_list(ids: Union[str, Sequence[str], None]) -> List[str]:
    if ids is None:
        return []
    if isinstance(ids, str):
        return [ids]
    return list(ids)


def add_property(properties: Any) -> Dict[str, List[str]]:
    """Normalize a property selection into ``{group: [sub_property, ...]}``.

    Accepts a mapping, or a list of ``(group, sub_properties)`` pairs so that
    a group may be given more than once; repeated groups are merged. Each
    group's sub-properties are de-duplicated keeping first-seen order. A
    group with no sub-properties selects the field itself (e.g. ``rcsb_id``).

    Args:
        properties: Mapping or list of pairs. ``None`` counts as empty.

    Returns:
        Dict[str, List[str]]: The normalized selection.

    Raises:
        InvalidInputError: If `properties` or one of its elements is malformed.
    """
    if properties is None:
        return {}
    if isinstance(properties, Mapping):
        items = list(properties.items())
    elif isinstance(properties, (list, tuple)):
        items = []
        for element in properties:
            if (not isinstance(element, (list, tuple)) or len(element) != 2
                    or not isinstance(element[0], str) or not element[0]):
                raise InvalidInputError(f"Each property must be a named list element, got {element!r}")
            items.append((element[0], element[1]))
    else:
        raise InvalidInputError(f"Property must be a list or a mapping, got {type(properties).__name__}")

    merged: "OrderedDict[str, List[str]]" = OrderedDict()
    for key, values in items:
        if not isinstance(key, str) or not key:
            raise InvalidInputError(f"Each property must be a named list element, got key {key!r}")
        if values is None:
            values = []
        elif isinstance(values, str):
            values = [values]
        elif not isinstance(values, (list, tuple, set, frozenset)):
            raise InvalidInputError(f"Property values must be character vectors, got {values!r} for '{key}'")
        if not all(isinstance(value, str) for value in values):
            raise InvalidInputError(f"Property values must be character vectors, got {values!r} for '{key}'")

        group = merged.setdefault(key, [])
        for value in values:
            if value not in group:
                group.append(value)
    return dict(merged)


def generate_json_query(
    ids: Union[str, Sequence[str]],
    data_type: Union[DataType, str],
    properties: Mapping[str, Sequence[str]],
) -> str:
    """Render the single-line GraphQL query for `ids` and `properties`.

    Example:
        >>> generate_json_query(["4HHB"], "ENTRY", {"exptl": ["method"], "rcsb_id": []})
        '{entries(entry_ids: ["4HHB"]){exptl{method}, rcsb_id}}'

    Raises:
        InvalidInputError: If `properties` is empty.
        UnsupportedMappingError: If `data_type` is unknown.
    """
    if not properties:
        raise InvalidInputError("No properties given to generate the GraphQL query.")
    data_type = _as_data_type(data_type)
    id_list = ", ".join(f'"{id_}"' for id_ in _as_id_list(ids))

    selections = []
    for group, sub_properties in properties.items():
        if sub_properties:
            selections.append(f"{group}{{{', '.join(sub_properties)}}}")
        else:
            selections.append(group)
    return f"{{{data_type.root_field}({data_type.id_keyword}: [{id_list}]){{{', '.join(selections)}}}}}"


def search_graphql(
    graphql_json_query: Union[str, Mapping[str, Any]],
    endpoints: RCSBEndpoints = DEFAULT_ENDPOINTS,
) -> Dict[str, Any]:
    """POST a GraphQL query to the Data API and return the parsed body.

    Args:
        graphql_json_query: A query string or a ``{"query": ...}`` mapping.
        endpoints (RCSBEndpoints, optional): Endpoint override.

    Raises:
        APIRequestError: Transport failure or non-success status.
        MalformedResponseError: Body is not a JSON object.
    """
    if isinstance(graphql_json_query, str):
        graphql_json_query = {"query": graphql_json_query}
    response = make_api_request(
        url=endpoints.graphql_url,
        method="POST",
        json_data=dict(graphql_json_query),
        timeout=endpoints.timeout,
    )
    payload = parse_json_response(response)
    if not isinstance(payload, dict):
        raise MalformedResponseError(f"GraphQL response is not a JSON object: {payload!r}")
    return payload


@dataclass
class FetchResponse:
    """Records returned by `fetch_data`, keyed by requested ID in requested order."""
    data: Dict[str, Any]
    ids: List[str]
    data_type: DataType

    @property
    def root_field(self) -> str:
        return self.data_type.root_field

    def to_dict(self) -> Dict[str, Any]:
        """The ``{"data": {root_field: {id: record}}}`` form."""
        return {"data": {self.root_field: dict(self.data)}}


def _extract_records(response: Mapping[str, Any], data_type: DataType) -> Any:
    data = response.get("data")
    if not isinstance(data, Mapping) or not data:
        raise MalformedResponseError(f"GraphQL response has no 'data' object: {response!r}")
    records = data.get(data_type.root_field)
    if records is None and data_type.root_field not in data:
        records = next(iter(data.values()))
    if not isinstance(records, (list, Mapping)) or not records:
        raise MalformedResponseError(
            f"GraphQL response has no records under '{data_type.root_field}': {response!r}"
        )
    return records


def _reconcile_named(records: Mapping[str, Any], ids: List[str]) -> Dict[str, Any]:
    extra = [key for key in records if key not in ids]
    if extra:
        logger.warning(f"Dropping IDs returned but not requested: {', '.join(map(str, extra))}")
    missing = [id_ for id_ in ids if id_ not in records]
    if missing:
        raise MissingIDsError(missing)
    return OrderedDict((id_, records[id_]) for id_ in ids)


def _reconcile_positional(records: List[Any], ids: List[str]) -> Dict[str, Any]:
    logger.warning("Response records carry no IDs; normalized by position against the requested IDs.")
    if len(records) < len(ids):
        raise MissingIDsError(ids[len(records):])
    if len(records) > len(ids):
        logger.warning(f"Response has {len(records)} records for {len(ids)} requested IDs; truncating extras.")
    return OrderedDict(zip(ids, records))


def fetch_data(
    json_query: str,
    data_type: Union[DataType, str],
    ids: Union[str, Sequence[str]],
    endpoints: RCSBEndpoints = DEFAULT_ENDPOINTS,
) -> FetchResponse:
    """Run a GraphQL query and align the records with `ids`.

    Named responses (records keyed by ID) are reordered to `ids`; unrequested
    keys are dropped with a warning and a missing ID is an error. Positional
    responses (a plain array) are zipped with `ids` after a warning; too few
    records is an error, extra records are truncated with a warning.

    Raises:
        InvalidInputError: Empty query, before any request.
        GraphQLQueryError: The response carries an ``errors`` array.
        MalformedResponseError: No usable record set in the response.
        MissingIDsError: A requested ID has no record.
    """
    if not json_query:
        raise InvalidInputError("GraphQL query has not been created.")
    data_type = _as_data_type(data_type)
    id_list = _as_id_list(ids)

    response = search_graphql({"query": json_query}, endpoints=endpoints)
    if response.get("errors"):
        messages = [
            error.get("message", str(error)) if isinstance(error, Mapping) else str(error)
            for error in response["errors"]
        ]
        for message in messages:
            logger.error(f"GraphQL error: {message}")
        raise GraphQLQueryError(messages, url=endpoints.graphql_url)

    records = _extract_records(response, data_type)
    if isinstance(records, Mapping):
        data = _reconcile_named(records, id_list)
    else:
        data = _reconcile_positional(list(records), id_list)
    return FetchResponse(data=data, ids=id_list, data_type=data_type)


def validate_id(id: str, data_type: Union[DataType, str]) -> bool:
    """Warn when `id` does not look like an identifier of `data_type`.

    Entity IDs look like ``4HHB_1``, instance IDs like ``4HHB.A`` and
    assembly IDs like ``4HHB-1``.

    Returns:
        bool: False if a warning was emitted.
    """
    data_type = _as_data_type(data_type)
    name = data_type.name
    if "ENTITY" in name and "INSTANCE" not in name:
        valid = "_" in id
    elif "INSTANCE" in name:
        valid = "." in id
    elif data_type is DataType.ASSEMBLY:
        valid = "-" in id
    else:
        valid = True
    if not valid:
        logger.warning(f"{id} not valid for {name}.")
    return valid


def data_fetcher(
    id: Union[str, Sequence[str], None] = None,
    data_type: Union[DataType, str] = "ENTRY",
    properties: Any = None,
    return_as_dataframe: bool = True,
    endpoints: RCSBEndpoints = DEFAULT_ENDPOINTS,
):
    """Fetch `properties` for one or more IDs from the Data API.

    Args:
        id: A single ID or a list of IDs.
        data_type (DataType | str, optional): Kind of record. Defaults to "ENTRY".
        properties: Property selection, see `add_property`.
        return_as_dataframe (bool, optional): Flatten into a pandas DataFrame. Defaults to True.
        endpoints (RCSBEndpoints, optional): Endpoint override.

    Returns:
        pandas.DataFrame or FetchResponse.
    """
    from .dataframe import return_data_as_dataframe

    ids = _as_id_list(id)
    if not ids:
        raise InvalidInputError("At least one ID is required.")
    data_type = _as_data_type(data_type)
    for id_ in ids:
        validate_id(id_, data_type)

    selection = add_property(properties)
    json_query = generate_json_query(ids, data_type, selection)
    logger.debug(f"GraphQL query: {json_query}")
    response = fetch_data(json_query, data_type, ids, endpoints=endpoints)
    if return_as_dataframe:
        return return_data_as_dataframe(response, data_type, ids)
    return response
