"""
Search execution against the RCSB Search API.

Two entry points:

- `perform_search` runs an operator or query tree built with
  `rcsb_biokit.search.query` and returns identifiers, scored results or the
  raw response.
- `query_search` runs a single-term lookup (full text, PubMed ID, taxonomy,
  experimental method, author, organism, Pfam, UniProt, sequence, structure)
  with optional caller overrides of the request body and a fixed-delay retry.
"""

import copy
import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from ..config import DEFAULT_ENDPOINTS, RCSBEndpoints
from ..connectors._utils import (
    InvalidInputError,
    MalformedResponseError,
    UnsupportedMappingError,
    make_api_request,
    parse_json_response,
)
from .query import QueryLike, RequestOptions, ScoredResult, serialize_query

logger = logging.getLogger(__name__)

RETURN_TYPE_MAP = {
    "ENTRY": "entry",
    "ASSEMBLY": "assembly",
    "POLYMER_ENTITY": "polymer_entity",
    "NONPOLYMER_ENTITY": "non_polymer_entity",
    "NON_POLYMER_ENTITY": "non_polymer_entity",
    "POLYMER_INSTANCE": "polymer_instance",
    "MOL_DEFINITION": "mol_definition",
    "CHEMICAL_COMPONENT": "mol_definition",
}

# query_type -> attribute searched with exact_match on the text service
QUERY_TYPE_ATTRIBUTES = {
    "PubmedIdQuery": "rcsb_pubmed_container_identifiers.pubmed_id",
    "TreeEntityQuery": "rcsb_entity_source_organism.taxonomy_lineage.id",
    "ExpTypeQuery": "exptl.method",
    "AdvancedAuthorQuery": "rcsb_primary_citation.rcsb_authors",
    "OrganismQuery": "rcsb_entity_source_organism.taxonomy_lineage.name",
    "pfam": "rcsb_polymer_entity_annotation.annotation_id",
    "uniprot": "rcsb_polymer_entity_container_identifiers.reference_sequence_identifiers.database_accession",
}

QUERY_TYPES = ("full_text", "sequence", "structure") + tuple(QUERY_TYPE_ATTRIBUTES)

EXPERIMENT_TYPES = frozenset({
    "X-RAY DIFFRACTION",
    "ELECTRON MICROSCOPY",
    "ELECTRON CRYSTALLOGRAPHY",
    "SOLUTION NMR",
    "SOLID-STATE NMR",
    "NEUTRON DIFFRACTION",
    "FIBER DIFFRACTION",
    "POWDER DIFFRACTION",
    "SOLUTION SCATTERING",
    "EPR",
    "FLUORESCENCE TRANSFER",
    "INFRARED SPECTROSCOPY",
    "THEORETICAL MODEL",
})


def resolve_return_type(return_type: str) -> str:
    """Map a return type name (or its wire value) to the wire value.

    Raises:
        UnsupportedMappingError: For anything outside `RETURN_TYPE_MAP`.
    """
    if isinstance(return_type, str):
        if return_type.upper() in RETURN_TYPE_MAP:
            return RETURN_TYPE_MAP[return_type.upper()]
        if return_type in RETURN_TYPE_MAP.values():
            return return_type
    raise UnsupportedMappingError(
        f"Unsupported return_type '{return_type}'. Supported: {', '.join(RETURN_TYPE_MAP)}"
    )


def perform_search(
    search_operator: QueryLike,
    return_type: str = "ENTRY",
    request_options: Optional[Union[RequestOptions, Mapping[str, Any]]] = None,
    return_with_scores: bool = False,
    return_raw_json_dict: bool = False,
    verbosity: bool = False,
    endpoints: RCSBEndpoints = DEFAULT_ENDPOINTS,
) -> Union[List[str], List[ScoredResult], Dict[str, Any]]:
    """Run a search query and return the hits.

    Args:
        search_operator: An operator, `QueryNode`, `QueryGroup` or an already
            serialized node mapping.
        return_type (str, optional): Kind of identifier to return. Defaults to "ENTRY".
        request_options (optional): `RequestOptions` or a request_options mapping.
            Defaults to ``{"return_all_hits": True}``.
        return_with_scores (bool, optional): Return `ScoredResult`s instead of ids.
        return_raw_json_dict (bool, optional): Return the parsed response unchanged.
        verbosity (bool, optional): Log the outgoing query at INFO level.
        endpoints (RCSBEndpoints, optional): Endpoint override.

    Returns:
        Identifiers in ranking order (duplicates kept), scored results, or the
        raw response.

    Raises:
        UnsupportedMappingError: Unknown `return_type`, before any request.
        APIRequestError: Transport failure or non-success status.
        MalformedResponseError: Response without a usable ``result_set``,
            including an empty HTTP 204 body.
    """
    wire_return_type = resolve_return_type(return_type)

    if request_options is None:
        options: Dict[str, Any] = {"return_all_hits": True}
    elif isinstance(request_options, RequestOptions):
        options = request_options.to_dict()
    else:
        options = dict(request_options)

    body = {
        "query": serialize_query(search_operator),
        "request_options": options,
        "return_type": wire_return_type,
    }
    if verbosity:
        logger.info(f"Querying RCSB Search using the following parameters:\n{json.dumps(body, indent=2)}")

    response = make_api_request(
        url=endpoints.search_url,
        method="POST",
        json_data=body,
        headers={"Content-Type": "application/json"},
        timeout=endpoints.timeout,
    )
    if response.status_code == 204:
        raise MalformedResponseError(f"Search returned no content (HTTP 204) for return_type '{wire_return_type}'.")

    payload = parse_json_response(response)
    if return_raw_json_dict:
        return payload

    result_set = payload.get("result_set") if isinstance(payload, dict) else None
    if not isinstance(result_set, list):
        raise MalformedResponseError(f"Search response has no 'result_set' list: {payload!r}")

    results: List[Any] = []
    for hit in result_set:
        if not isinstance(hit, dict) or "identifier" not in hit:
            raise MalformedResponseError(f"Search hit without an 'identifier': {hit!r}")
        if return_with_scores:
            results.append(ScoredResult(entity_id=hit["identifier"], score=hit.get("score")))
        else:
            results.append(hit["identifier"])
    return results


def _deep_merge(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def build_query_search_params(
    search_term: str,
    query_type: str = "full_text",
    return_type: str = "entry",
) -> Dict[str, Any]:
    """Build the default request body of `query_search`."""
    if query_type not in QUERY_TYPES:
        raise UnsupportedMappingError(
            f"Unsupported query_type '{query_type}'. Supported: {', '.join(QUERY_TYPES)}"
        )

    if query_type in QUERY_TYPE_ATTRIBUTES:
        if query_type == "ExpTypeQuery":
            search_term = search_term.upper()
            if search_term not in EXPERIMENT_TYPES:
                raise InvalidInputError(
                    f"Invalid experiment type '{search_term}'. Expected one of: {', '.join(sorted(EXPERIMENT_TYPES))}"
                )
        service = "text"
        parameters: Dict[str, Any] = {
            "attribute": QUERY_TYPE_ATTRIBUTES[query_type],
            "operator": "exact_match",
            "negation": False,
            "value": search_term,
        }
    elif query_type == "sequence":
        service = "sequence"
        parameters = {"target": "pdb_protein_sequence", "value": search_term}
    elif query_type == "structure":
        service = "structure"
        parameters = {
            "operator": "relaxed_shape_match",
            "value": {"entry_id": search_term, "assembly_id": "1"},
        }
    else:
        service = "full_text"
        parameters = {"value": search_term}

    scan_params: Dict[str, Any] = {
        "query": {"type": "terminal", "service": service, "parameters": parameters},
        "return_type": return_type,
        "request_options": {"results_verbosity": "verbose"},
    }
    if return_type == "entry":
        scan_params["request_options"]["return_all_hits"] = True
    return scan_params


def query_search(
    search_term: str,
    query_type: str = "full_text",
    return_type: str = "entry",
    scan_params: Optional[Mapping[str, Any]] = None,
    num_attempts: int = 1,
    sleep_time: float = 0.5,
    endpoints: RCSBEndpoints = DEFAULT_ENDPOINTS,
) -> Union[List[Any], Dict[str, Any]]:
    """Search the PDB for a single term.

    Args:
        search_term (str): Term to search for.
        query_type (str, optional): One of `QUERY_TYPES`. Defaults to "full_text".
        return_type (str, optional): Search return type. Defaults to "entry".
        scan_params (Optional[Mapping], optional): Request body overrides,
            deep-merged over the computed defaults.
        num_attempts (int, optional): Total attempts for transport/status failures. Defaults to 1.
        sleep_time (float, optional): Seconds between attempts. Defaults to 0.5.
        endpoints (RCSBEndpoints, optional): Endpoint override.

    Returns:
        For ``return_type="entry"`` the list of identifiers found in the
        result set; otherwise the parsed response.

    Raises:
        InvalidInputError: Non-mapping `scan_params` or unknown experiment type.
        UnsupportedMappingError: Unknown `query_type` or `return_type`.
        APIRequestError: All attempts failed.
        MalformedResponseError: Unparseable body or no identifiers found.
    """
    if scan_params is not None and not isinstance(scan_params, Mapping):
        raise InvalidInputError(f"Invalid scan_params: expected a mapping, got {type(scan_params).__name__}")
    if num_attempts < 1:
        raise InvalidInputError(f"num_attempts must be at least 1, got {num_attempts}")

    return_type = resolve_return_type(return_type)
    body = build_query_search_params(search_term, query_type, return_type)
    if scan_params is not None:
        body = _deep_merge(body, scan_params)

    response = make_api_request(
        url=endpoints.search_url,
        method="POST",
        json_data=body,
        headers={"Content-Type": "application/json"},
        timeout=endpoints.timeout,
        retries=num_attempts - 1,
        delay=sleep_time,
    )
    if response.status_code == 204:
        raise MalformedResponseError(f"No identifiers found in search response for '{search_term}' (HTTP 204).")

    payload = parse_json_response(response)
    if return_type != "entry":
        return payload

    scope = payload.get("result_set", payload) if isinstance(payload, dict) else payload
    identifiers = walk_nested_dict(scope, "identifier", maxdepth=25)
    if not identifiers:
        raise MalformedResponseError(f"No identifiers found in search response for '{search_term}'.")
    return identifiers


def walk_nested_dict(
    my_result: Any,
    term: str,
    outputs: Optional[List[Any]] = None,
    depth: int = 0,
    maxdepth: int = 25,
) -> Optional[List[Any]]:
    """Collect every value stored under key `term` anywhere in `my_result`.

    A mapping that holds `term` contributes its value and is not searched
    further. List values are flattened into the output.

    Returns:
        The collected values in document order, or None once `maxdepth` is exceeded.
    """
    if outputs is None:
        outputs = []
    if depth > maxdepth:
        logger.warning(f"Maximum recursion depth {maxdepth} exceeded while searching for '{term}'.")
        return None

    if isinstance(my_result, Mapping):
        if term in my_result:
            value = my_result[term]
            if isinstance(value, list):
                outputs.extend(value)
            else:
                outputs.append(value)
        else:
            for value in my_result.values():
                walk_nested_dict(value, term, outputs, depth + 1, maxdepth)
    elif isinstance(my_result, list):
        for item in my_result:
            walk_nested_dict(item, term, outputs, depth + 1, maxdepth)
    return outputs
