"""
Connectors Sub-package for RCSB Biokit.

This sub-package provides the low-level access to the RCSB web services:

Modules included:
- rcsb: Entry and chemical component records from the REST API, plus
  citation lookups built on full-text search.
- fasta: FASTA sequence retrieval and parsing.
- _utils: Internal HTTP helper and the package exception hierarchy
  (not for direct public use; exceptions are re-exported from `rcsb_biokit`).

Example Usage:
    from rcsb_biokit.connectors import get_info, get_fasta_from_rcsb_entry
    entry = get_info("4HHB")
    chain_a = get_fasta_from_rcsb_entry("4HHB", chain_id="A")
"""

from .rcsb import (
    get_info,
    describe_chemical,
    find_papers,
    find_results,
)
from .fasta import (
    FastaSequence,
    parse_fasta_text_to_list,
    get_fasta_from_rcsb_entry,
)

__all__ = [
    "get_info",
    "describe_chemical",
    "find_papers",
    "find_results",

    "FastaSequence",
    "parse_fasta_text_to_list",
    "get_fasta_from_rcsb_entry",
]
