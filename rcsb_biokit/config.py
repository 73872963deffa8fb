"""
Endpoint configuration for RCSB Biokit.

The RCSB web services live behind a handful of fixed base URLs. They are kept
here as module constants and bundled into a frozen `RCSBEndpoints` record so
callers (and tests) can point any public function at an alternate host
without touching process-wide state.
"""

from dataclasses import dataclass

# RCSB PDB API Endpoints
RCSB_ENTRY_API_ENDPOINT = "https://data.rcsb.org/rest/v1/core/entry/"
RCSB_CHEMCOMP_API_ENDPOINT = "https://data.rcsb.org/rest/v1/core/chemcomp/"
RCSB_DATA_API_ENDPOINT = "https://data.rcsb.org/graphql"
RCSB_SEARCH_API_ENDPOINT = "https://search.rcsb.org/rcsbsearch/v2/query"
RCSB_FASTA_ENDPOINT = "https://www.rcsb.org/fasta/entry/"
RCSB_DOWNLOAD_ENDPOINT = "https://files.rcsb.org/download/"
RCSB_REST_API_ROOT = "https://data.rcsb.org/rest/v1/core/"

DEFAULT_TIMEOUT = 30  # seconds


@dataclass(frozen=True)
class RCSBEndpoints:
    """Base URLs and request timeout used by every network call."""
    entry_url: str = RCSB_ENTRY_API_ENDPOINT
    chemcomp_url: str = RCSB_CHEMCOMP_API_ENDPOINT
    graphql_url: str = RCSB_DATA_API_ENDPOINT
    search_url: str = RCSB_SEARCH_API_ENDPOINT
    fasta_url: str = RCSB_FASTA_ENDPOINT
    download_url: str = RCSB_DOWNLOAD_ENDPOINT
    timeout: int = DEFAULT_TIMEOUT


DEFAULT_ENDPOINTS = RCSBEndpoints()


def get_pdb_api_url(endpoint: str, id: str, base_url: str = RCSB_REST_API_ROOT) -> str:
    """Build a REST API URL such as ``.../core/entry/4HHB``.

    Args:
        endpoint (str): Resource name under the REST root ("entry", "chemcomp", ...).
        id (str): Identifier appended after the resource name.
        base_url (str, optional): REST root. Defaults to the RCSB data API core root.

    Returns:
        str: The joined URL.
    """
    return f"{base_url.rstrip('/')}/{endpoint.strip('/')}/{id}"
