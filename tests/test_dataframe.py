import pandas as pd
import pytest

from rcsb_biokit import MalformedResponseError
from rcsb_biokit.data import DataType, FetchResponse, flatten_record, return_data_as_dataframe


def test_flatten_record_paths():
    record = {
        "rcsb_id": "4HHB",
        "exptl": [{"method": "X-RAY DIFFRACTION"}],
        "struct_keywords": {"pdbx_keywords": "OXYGEN TRANSPORT"},
        "rcsb_entry_container_identifiers": {"entity_ids": ["1", "2", "3"]},
        "citation": [{"title": "First"}, {"title": "Second"}],
    }
    assert flatten_record(record) == {
        "rcsb_id": "4HHB",
        "exptl.method": "X-RAY DIFFRACTION",
        "struct_keywords.pdbx_keywords": "OXYGEN TRANSPORT",
        "rcsb_entry_container_identifiers.entity_ids": "1, 2, 3",
        "citation.title": "First",
    }


def test_list_lengths_share_one_schema():
    response = FetchResponse(
        data={
            "1ABC_1": {"src": [{"name": "human"}], "rcsb_id": "1ABC_1"},
            "2DEF_1": {"src": [{"name": "mouse"}, {"name": "rat"}], "rcsb_id": "2DEF_1"},
        },
        ids=["1ABC_1", "2DEF_1"],
        data_type=DataType.POLYMER_ENTITY,
    )
    df = return_data_as_dataframe(response, DataType.POLYMER_ENTITY, ["1ABC_1", "2DEF_1"])
    assert list(df.columns) == ["ID", "src.name", "rcsb_id"]
    assert df["src.name"].tolist() == ["human", "mouse"]


def test_unnamed_records_keep_all_rows():
    response = {"data": [[{"a": "A1", "b": "B1"}, {"a": "A2", "b": "B2"}]]}
    df = return_data_as_dataframe(response, "ENTRY", ["id1", "id2"])
    assert isinstance(df, pd.DataFrame)
    assert len(df) == 2
    assert df["a"].tolist() == ["A1", "A2"]
    assert df["ID"].tolist() == ["id1", "id2"]


def test_id_echo_column_does_not_fail():
    response = {"data": {"entries": {"id1": {"ID": "id1"}, "id2": {"ID": "id2"}}}}
    df = return_data_as_dataframe(response, "ENTRY", ["id1", "id2"])
    assert len(df) == 2
    assert list(df.columns) == ["ID"]
    assert df.iloc[:, 0].tolist() == ["id1", "id2"]


def test_heterogeneous_records_are_backfilled():
    response = FetchResponse(
        data={
            "4HHB": {"cell": {"length_a": 63.15, "length_b": 83.59}},
            "1A0O": {"cell": {"length_a": 70.1}},
        },
        ids=["4HHB", "1A0O"],
        data_type=DataType.ENTRY,
    )
    df = return_data_as_dataframe(response, DataType.ENTRY, ["4HHB", "1A0O"])
    # shared "cell." prefix is stripped
    assert list(df.columns) == ["ID", "length_a", "length_b"]
    assert df.loc["4HHB", "length_b"] == 83.59
    assert pd.isna(df.loc["1A0O", "length_b"])


def test_prefix_kept_when_groups_differ():
    response = FetchResponse(
        data={"4HHB": {"cell": {"length_a": 63.15}, "exptl": [{"method": "X-RAY DIFFRACTION"}]}},
        ids=["4HHB"],
        data_type=DataType.ENTRY,
    )
    df = return_data_as_dataframe(response, "ENTRY", ["4HHB"])
    assert list(df.columns) == ["ID", "cell.length_a", "exptl.method"]


def test_empty_response_returns_none():
    assert return_data_as_dataframe(None, "ENTRY", ["4HHB"]) is None
    assert return_data_as_dataframe({}, "ENTRY", ["4HHB"]) is None


def test_records_without_fields_are_malformed():
    response = FetchResponse(data={"4HHB": {}}, ids=["4HHB"], data_type=DataType.ENTRY)
    with pytest.raises(MalformedResponseError):
        return_data_as_dataframe(response, "ENTRY", ["4HHB"])
