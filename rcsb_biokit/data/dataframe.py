"""
Tabular flattening of Data API records.

Records are arbitrarily nested JSON objects. Each one becomes a single row
whose columns are dotted key paths (``cell.length_a``,
``rcsb_entity_source_organism.ncbi_scientific_name``); rows with different
shapes share one schema with missing cells set to NA.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..connectors._utils import MalformedResponseError
from .fetcher import DataType, FetchResponse, _as_data_type, _as_id_list

logger = logging.getLogger(__name__)


def _is_scalar(value: Any) -> bool:
    return not isinstance(value, (Mapping, list, tuple))


def flatten_record(value: Any, prefix: str = "") -> Dict[str, Any]:
    """Flatten one nested record into ``{dotted.path: scalar}``.

    Lists of scalars are joined with ``", "``. Any other list is replaced by
    its first element, so a field maps to the same column whatever the list
    length.
    """
    def join(key: Any) -> str:
        return f"{prefix}.{key}" if prefix else str(key)

    flat: Dict[str, Any] = {}
    if isinstance(value, Mapping):
        for key, child in value.items():
            flat.update(flatten_record(child, join(key)))
    elif isinstance(value, (list, tuple)):
        if len(value) == 0:
            flat[prefix or "value"] = np.nan
        elif len(value) == 1 or not all(_is_scalar(item) for item in value):
            flat.update(flatten_record(value[0], prefix))
        else:
            flat[prefix or "value"] = ", ".join("" if item is None else str(item) for item in value)
    else:
        flat[prefix or "value"] = np.nan if value is None else value
    return flat


def _records_from_response(
    response: Union[FetchResponse, Mapping[str, Any]],
    data_type: DataType,
    ids: List[str],
) -> List[Any]:
    if isinstance(response, FetchResponse):
        return [response.data.get(id_) for id_ in ids]

    data = response.get("data")
    if isinstance(data, Mapping):
        records = data.get(data_type.root_field, next(iter(data.values()), None))
    elif isinstance(data, list):
        records = data[0] if data else None
    else:
        records = None
    if records is None:
        raise MalformedResponseError(f"No records found in response: {response!r}")

    if isinstance(records, Mapping):
        if all(id_ in records for id_ in ids):
            return [records[id_] for id_ in ids]
        return list(records.values())[:len(ids)]
    return list(records)[:len(ids)]


def _common_prefix(columns: Sequence[str]) -> Optional[str]:
    if not columns or not all("." in column for column in columns):
        return None
    heads = {column.split(".", 1)[0] for column in columns}
    return heads.pop() if len(heads) == 1 else None


def return_data_as_dataframe(
    response: Union[FetchResponse, Mapping[str, Any], None],
    data_type: Union[DataType, str],
    ids: Union[str, Sequence[str]],
) -> Optional[pd.DataFrame]:
    """Flatten fetched records into a DataFrame with one row per requested ID.

    Args:
        response: A `FetchResponse` or a raw ``{"data": {root: records}}`` mapping.
        data_type (DataType | str): Kind of record.
        ids: Requested IDs, used as row labels and as the leading ``ID`` column.

    Returns:
        Optional[pd.DataFrame]: None for an empty response. The ``ID`` column is
        dropped when the first data column repeats it (e.g. ``rcsb_id``), and
        a path segment shared by every data column is stripped.

    Raises:
        MalformedResponseError: If the records hold no fields at all.
    """
    if response is None or (isinstance(response, Mapping) and not response):
        return None
    data_type = _as_data_type(data_type)
    id_list = _as_id_list(ids)

    records = _records_from_response(response, data_type, id_list)
    flat_rows = [flatten_record(record) if record is not None else {} for record in records]

    columns: List[str] = []
    for row in flat_rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    if not columns:
        raise MalformedResponseError("No result fetched from the RCSB PDB for the selected properties.")

    row_labels = id_list[:len(flat_rows)]
    df = pd.DataFrame(
        [[label] + [row.get(column, np.nan) for column in columns] for label, row in zip(row_labels, flat_rows)],
        columns=["ID"] + columns,
        index=pd.Index(row_labels),
    )

    prefix = _common_prefix(columns)
    if prefix is not None:
        logger.debug(f"Stripping common column prefix '{prefix}.'")
        df.columns = ["ID"] + [column[len(prefix) + 1:] for column in columns]

    if df.shape[1] > 1 and df.iloc[:, 1].astype(str).tolist() == df.iloc[:, 0].astype(str).tolist():
        df = df.iloc[:, 1:]
    return df
