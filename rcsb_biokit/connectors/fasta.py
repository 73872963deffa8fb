"""
RCSB PDB FASTA retrieval for RCSB Biokit.

This module downloads the FASTA file of a PDB entry from the RCSB website and
parses it into one `FastaSequence` per polymer entity. RCSB FASTA headers
look like::

    >4HHB_1|Chains A, C|Hemoglobin subunit alpha|Homo sapiens (9606)

The main functionalities are:
- Parsing RCSB FASTA text into structured records.
- Retrieving all sequences of an entry, or the sequence of one chain.
"""

import re
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from Bio.SeqIO.FastaIO import SimpleFastaParser

from ..config import DEFAULT_ENDPOINTS, RCSBEndpoints
from ._utils import NotFoundError, make_api_request

logger = logging.getLogger(__name__)

_CHAINS_PREFIX = re.compile(r"^\s*Chains?\s+")
_AUTH_LABEL = re.compile(r"\[auth [^\]]*\]")


@dataclass
class FastaSequence:
    """One FASTA record of an RCSB entry."""
    entity_id: str
    chains: List[str] = field(default_factory=list)
    sequence: str = ""
    fasta_header: str = ""


def parse_fasta_text_to_list(raw_fasta_text: str) -> List[FastaSequence]:
    """Parse RCSB FASTA text into `FastaSequence` records.

    The entity ID is the first ``|`` field of the header and the chain list
    comes from the second one, with the ``Chain``/``Chains`` label removed.

    Args:
        raw_fasta_text (str): Contents of an RCSB FASTA file.

    Returns:
        List[FastaSequence]: Records in file order.
    """
    sequences: List[FastaSequence] = []
    for header, sequence in SimpleFastaParser(io.StringIO(raw_fasta_text)):
        segments = header.split("|")
        entity_id = segments[0].strip()
        chains: List[str] = []
        if len(segments) > 1:
            chains = [chain.strip() for chain in _CHAINS_PREFIX.sub("", segments[1]).split(",") if chain.strip()]
        sequences.append(FastaSequence(
            entity_id=entity_id,
            chains=chains,
            sequence=sequence.replace(" ", ""),
            fasta_header=header,
        ))
    return sequences


def _header_has_chain(fasta_record: FastaSequence, chain_id: str) -> bool:
    segments = fasta_record.fasta_header.split("|")
    chain_field = segments[1] if len(segments) > 1 else fasta_record.fasta_header
    chain_field = _AUTH_LABEL.sub("", _CHAINS_PREFIX.sub("", chain_field))
    return re.search(rf"\b{re.escape(chain_id)}\b", chain_field) is not None


def get_fasta_from_rcsb_entry(
    rcsb_id: str,
    chain_id: Optional[str] = None,
    verbosity: bool = True,
    endpoints: RCSBEndpoints = DEFAULT_ENDPOINTS,
) -> Union[List[FastaSequence], Dict[str, str]]:
    """Fetch the FASTA sequences of a PDB entry.

    Args:
        rcsb_id (str): PDB entry ID (e.g., "4HHB").
        chain_id (Optional[str], optional): Return only the sequence of this
            chain. The chain label must appear as a whole word in a header's
            chain field ("A" does not match "AB"). Author labels such as
            ``[auth D]`` are ignored.
        verbosity (bool, optional): Log the request at INFO level. Defaults to True.
        endpoints (RCSBEndpoints, optional): Endpoint override.

    Returns:
        All records of the entry, or ``{chain_id: sequence}`` when `chain_id` is given.

    Raises:
        APIRequestError: Transport failure or non-success status.
        NotFoundError: No record lists `chain_id`.
    """
    if verbosity:
        logger.info(f"Querying RCSB for the '{rcsb_id}' FASTA file.")
    response = make_api_request(
        url=f"{endpoints.fasta_url}{rcsb_id}",
        method="GET",
        timeout=endpoints.timeout,
    )
    fasta_sequences = parse_fasta_text_to_list(response.text)
    if chain_id is None:
        return fasta_sequences

    for fasta_record in fasta_sequences:
        if _header_has_chain(fasta_record, chain_id):
            return {chain_id: fasta_record.sequence}
    raise NotFoundError(f"Chain {chain_id} not found in entry {rcsb_id}.")
