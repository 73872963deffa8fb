"""
RCSB PDB REST Connector for RCSB Biokit.

This module provides the single-record accessors of the RCSB Data API REST
interface, plus two convenience lookups built on top of `query_search`:

- Fetching the metadata of a PDB entry (`get_info`).
- Describing a chemical component / ligand (`describe_chemical`).
- Mapping a search term to citation titles (`find_papers`) or to any field
  of the matching entries (`find_results`).
"""

import logging
from typing import Any, Dict, Optional

from ..config import RCSB_CHEMCOMP_API_ENDPOINT, RCSB_ENTRY_API_ENDPOINT
from ._utils import InvalidInputError, RCSBError, make_api_request, parse_json_response

logger = logging.getLogger(__name__)


def get_info(pdb_id: str, url_root: str = RCSB_ENTRY_API_ENDPOINT) -> Dict[str, Any]:
    """Fetch the full metadata record of a PDB entry.

    Legacy ``ENTRY:ID`` style identifiers are rewritten to ``ENTRY/ID`` first.

    Args:
        pdb_id (str): The PDB identifier (e.g., "4HHB").
        url_root (str, optional): REST root of the entry endpoint.

    Returns:
        Dict[str, Any]: The parsed JSON record.

    Raises:
        APIRequestError: Transport failure or non-success status, carrying the
            upstream message.
        MalformedResponseError: The body is not JSON.
    """
    pdb_id = pdb_id.replace(":", "/")
    response = make_api_request(url=f"{url_root}{pdb_id}", method="GET")
    return parse_json_response(response)


def describe_chemical(chem_id: str, url_root: str = RCSB_CHEMCOMP_API_ENDPOINT) -> Dict[str, Any]:
    """Fetch the chemical component record of a ligand.

    Args:
        chem_id (str): Chemical component ID of at most 3 characters (e.g., "ATP").
        url_root (str, optional): REST root of the chemcomp endpoint.

    Returns:
        Dict[str, Any]: The parsed JSON record.

    Raises:
        InvalidInputError: `chem_id` is longer than 3 characters (no request is sent).
        APIRequestError: Transport failure or non-success status.
    """
    if len(chem_id) > 3:
        raise InvalidInputError(f"Ligand id with more than 3 characters provided: '{chem_id}'")
    response = make_api_request(url=f"{url_root}{chem_id}", method="GET")
    return parse_json_response(response)


def find_papers(search_term: str, max_results: int = 10) -> Dict[str, str]:
    """Map the top entries of a full-text search to their first citation title.

    Args:
        search_term (str): Full-text search term (e.g., "crispr").
        max_results (int, optional): Number of entries to look up. Defaults to 10.

    Returns:
        Dict[str, str]: Entry ID -> citation title, for entries with a citation.
    """
    from ..search.client import query_search

    pdb_ids = query_search(search_term)[:max_results]
    papers: Dict[str, str] = {}
    for pdb_id in pdb_ids:
        pdb_info = get_info(pdb_id)
        citations = pdb_info.get("citation")
        if citations:
            title = citations[0].get("title") if isinstance(citations, list) else citations.get("title")
            if title is not None:
                papers[pdb_id] = title
    return papers


def find_results(search_term: str, field: str = "citation") -> Dict[str, Any]:
    """Map every entry matching a full-text search to one field of its record.

    Failures are logged rather than raised: a failed search yields ``{}`` and
    an entry whose lookup fails is skipped.

    Args:
        search_term (str): Full-text search term.
        field (str, optional): Top-level field of the entry record. Defaults to "citation".

    Returns:
        Dict[str, Any]: Entry ID -> field value, for entries that have the field.
    """
    from ..search.client import query_search

    try:
        pdb_ids = query_search(search_term)
    except RCSBError as e:
        logger.warning(f"Failed to fetch search results for '{search_term}': {e}")
        return {}

    results: Dict[str, Any] = {}
    for pdb_id in pdb_ids:
        try:
            pdb_info: Optional[Dict[str, Any]] = get_info(pdb_id)
        except RCSBError as e:
            logger.warning(f"Failed to fetch information for ID {pdb_id}: {e}")
            continue
        if field in pdb_info:
            results[pdb_id] = pdb_info[field]
    return results
