"""Utility for fetching structure files from the RCSB PDB.

Provides functions to:
- Download coordinate, XML or structure factor files (optionally gzipped).
- Parse coordinate files into an atom table, a coordinate matrix and a
  C-alpha mask, with optional alternate-location and insertion-code filtering.
"""

import os
import gzip
import logging
import tempfile
import xml.etree.ElementTree as ElementTree
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd
import requests
from Bio.PDB import MMCIFParser, PDBParser
from Bio.PDB.MMCIF2Dict import MMCIF2Dict
from Bio.PDB.Polypeptide import is_aa

from .config import DEFAULT_ENDPOINTS, RCSBEndpoints
from .connectors._utils import (
    APIRequestError,
    MalformedResponseError,
    UnsupportedMappingError,
    make_api_request,
)

logger = logging.getLogger(__name__)

SUPPORTED_FILETYPES = ("pdb", "cif", "xml", "structfact")

ATOM_COLUMNS = [
    "type", "eleno", "elety", "alt", "resid", "chain", "resno", "insert",
    "x", "y", "z", "o", "b", "segid", "elesy",
]

# Values the PDB formats use for "no value".
_PLACEHOLDERS = ("", "?", ".")


@dataclass
class PdbFileResult:
    """Parsed coordinate file.

    Attributes:
        atom (pd.DataFrame): One row per atom of the first model (columns `ATOM_COLUMNS`).
        xyz (np.ndarray): ``(n_atoms, 3)`` coordinates, row-aligned with `atom`.
        calpha (np.ndarray): Boolean mask of amino acid C-alpha atoms in `atom`.
    """
    atom: pd.DataFrame
    xyz: np.ndarray
    calpha: np.ndarray


def _validate_filetype(filetype: str) -> str:
    if filetype not in SUPPORTED_FILETYPES:
        raise UnsupportedMappingError(
            f"Unsupported filetype '{filetype}'. Supported: {', '.join(SUPPORTED_FILETYPES)}"
        )
    return filetype


def build_download_url(
    pdb_id: str,
    filetype: str = "cif",
    compression: bool = True,
    endpoints: RCSBEndpoints = DEFAULT_ENDPOINTS,
) -> str:
    """``{base}{pdb_id}.{filetype}`` or ``{base}{pdb_id}-sf.cif``, plus ``.gz`` when compressed."""
    _validate_filetype(filetype)
    suffix = "-sf.cif" if filetype == "structfact" else f".{filetype}"
    url = f"{endpoints.download_url}{pdb_id}{suffix}"
    if compression:
        url += ".gz"
    return url


def download_pdb_file(
    pdb_id: str,
    filetype: str = "cif",
    compression: bool = True,
    path: Optional[str] = None,
    endpoints: RCSBEndpoints = DEFAULT_ENDPOINTS,
) -> str:
    """Download a structure file from RCSB PDB.

    Args:
        pdb_id (str): The PDB ID (e.g., "4HHB").
        filetype (str, optional): One of `SUPPORTED_FILETYPES`. Defaults to "cif".
        compression (bool, optional): Fetch the gzipped file. Defaults to True.
        path (Optional[str], optional): Directory to save into. Defaults to the
            system temporary directory.
        endpoints (RCSBEndpoints, optional): Endpoint override.

    Returns:
        str: Path of the written file, ``{path}/{pdb_id}.{filetype}[.gz]``.

    Raises:
        UnsupportedMappingError: Unknown filetype (no request is sent).
        APIRequestError: Transport failure, non-success status or a stream
            interrupted mid-download.
    """
    download_url = build_download_url(pdb_id, filetype, compression, endpoints)
    output_dir = path if path is not None else tempfile.gettempdir()
    output_filename = f"{pdb_id}.{filetype}" + (".gz" if compression else "")
    output_path = os.path.join(output_dir, output_filename)

    logger.info(f"Sending GET request to {download_url} to fetch {pdb_id}'s {filetype} file.")
    response = make_api_request(
        url=download_url,
        method="GET",
        stream=True,
        timeout=max(endpoints.timeout, 120),
    )

    try:
        with response, open(output_path, "wb") as f:
            for chunk in response.iter_content(chunk_size=8192):
                f.write(chunk)
    except requests.exceptions.RequestException as e:
        if os.path.exists(output_path):
            os.remove(output_path)
        raise APIRequestError(
            f"Download of {pdb_id} interrupted: {type(e).__name__}: {e}",
            status_code=response.status_code,
            url=download_url,
        ) from e
    except OSError:
        # Clean up partially downloaded file if it exists
        if os.path.exists(output_path):
            os.remove(output_path)
        raise
    return output_path


def _open(path: str, mode: str = "rt"):
    if path.endswith(".gz"):
        return gzip.open(path, mode)
    return open(path, mode)


def _atom_records(structure) -> List[Dict[str, Any]]:
    models = structure.get_list()
    if not models:
        return []
    records = []
    # First model only; alternate locations are unpacked into separate rows.
    for chain in models[0]:
        for residue in chain.get_unpacked_list():
            hetflag, resseq, icode = residue.get_id()
            for atom in residue.get_unpacked_list():
                x, y, z = (float(v) for v in atom.get_coord())
                records.append({
                    "type": "HETATM" if hetflag.strip() else "ATOM",
                    "eleno": atom.get_serial_number(),
                    "elety": atom.get_name(),
                    "alt": atom.get_altloc().strip(),
                    "resid": residue.get_resname().strip(),
                    "chain": chain.id.strip(),
                    "resno": resseq,
                    "insert": icode.strip(),
                    "x": x,
                    "y": y,
                    "z": z,
                    "o": atom.get_occupancy(),
                    "b": atom.get_bfactor(),
                    "segid": residue.segid.strip(),
                    "elesy": atom.element.strip() if atom.element else "",
                })
    return records


def _normalize_placeholders(atom: pd.DataFrame) -> pd.DataFrame:
    for column in atom.columns:
        if not pd.api.types.is_numeric_dtype(atom[column]):
            atom[column] = atom[column].where(~atom[column].isin(_PLACEHOLDERS), None)
    return atom


def _parse_coordinates(local_path: str, pdb_id: str, filetype: str) -> pd.DataFrame:
    parser = PDBParser(QUIET=True) if filetype == "pdb" else MMCIFParser(QUIET=True)
    with _open(local_path, "rt") as handle:
        structure = parser.get_structure(pdb_id, handle)
    atom = pd.DataFrame(_atom_records(structure), columns=ATOM_COLUMNS)
    if atom.empty:
        raise MalformedResponseError(f"No atoms found in {filetype} file for {pdb_id}.")
    return _normalize_placeholders(atom)


def _read_file(local_path: str, pdb_id: str, filetype: str) -> Any:
    try:
        if filetype == "xml":
            with _open(local_path, "rb") as handle:
                return ElementTree.parse(handle).getroot()
        if filetype == "structfact":
            with _open(local_path, "rt") as handle:
                return MMCIF2Dict(handle)
        return _parse_coordinates(local_path, pdb_id, filetype)
    except MalformedResponseError:
        raise
    except (ValueError, KeyError, IndexError, OSError, EOFError, ElementTree.ParseError) as e:
        raise MalformedResponseError(f"Error in reading file {local_path}: {e}") from e


def post_process_atoms(atom: pd.DataFrame, rm_insert: bool = False, rm_alt: bool = True) -> PdbFileResult:
    """Filter an atom table and derive its coordinates and C-alpha mask.

    With `rm_alt`, only atoms without an alternate location or with the
    lexicographically first one are kept. With `rm_insert`, atoms carrying an
    insertion code are dropped. Both filters and duplicated serial numbers
    are reported as warnings.
    """
    if rm_alt and atom["alt"].notna().any():
        first_alt = sorted(atom["alt"].dropna().unique())[0]
        logger.warning(f"PDB has ALT records, taking {first_alt} only, rm_alt=True")
        atom = atom[atom["alt"].isna() | (atom["alt"] == first_alt)]

    if rm_insert and atom["insert"].notna().any():
        logger.warning("PDB has INSERT records, removing, rm_insert=True")
        atom = atom[atom["insert"].isna()]

    atom = atom.reset_index(drop=True)
    if atom["eleno"].duplicated().any():
        logger.warning("Duplicated element numbers ('eleno') detected")

    xyz = atom[["x", "y", "z"]].to_numpy(dtype=float)
    calpha = ((atom["elety"] == "CA") & atom["resid"].map(lambda resname: isinstance(resname, str) and is_aa(resname))).to_numpy(dtype=bool)
    return PdbFileResult(atom=atom, xyz=xyz, calpha=calpha)


def get_pdb_file(
    pdb_id: str,
    filetype: str = "cif",
    rm_insert: bool = False,
    rm_alt: bool = True,
    compression: bool = True,
    save: bool = False,
    path: Optional[str] = None,
    endpoints: RCSBEndpoints = DEFAULT_ENDPOINTS,
) -> Union[PdbFileResult, ElementTree.Element, Dict[str, Any]]:
    """Download and parse a structure file.

    Args:
        pdb_id (str): The PDB ID (e.g., "4HHB").
        filetype (str, optional): "pdb", "cif", "xml" or "structfact". Defaults to "cif".
        rm_insert (bool, optional): Drop atoms with insertion codes. Defaults to False.
        rm_alt (bool, optional): Keep only the first alternate location. Defaults to True.
        compression (bool, optional): Download the gzipped file. Defaults to True.
        save (bool, optional): Keep the downloaded file. Defaults to False.
        path (Optional[str], optional): Directory for the downloaded file.
            Defaults to the system temporary directory.
        endpoints (RCSBEndpoints, optional): Endpoint override.

    Returns:
        `PdbFileResult` for "pdb"/"cif", the XML root element for "xml", and the
        mmCIF key/value dictionary for "structfact".

    Raises:
        UnsupportedMappingError: Unknown filetype (no request is sent).
        APIRequestError: Download failure.
        MalformedResponseError: The file cannot be parsed.
    """
    _validate_filetype(filetype)
    if filetype == "cif" and not compression:
        logger.warning(
            "Consider using get_pdb_file with compression=True for CIF files (it makes the file download faster!)"
        )

    local_path = download_pdb_file(pdb_id, filetype, compression, path, endpoints)
    try:
        result = _read_file(local_path, pdb_id, filetype)
    finally:
        if save:
            logger.info(f"The file saved to {local_path}")
        elif os.path.exists(local_path):
            os.remove(local_path)

    if filetype in ("xml", "structfact"):
        return result
    return post_process_atoms(result, rm_insert=rm_insert, rm_alt=rm_alt)
