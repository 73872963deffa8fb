import logging

import pytest
import requests

from rcsb_biokit import (
    APIRequestError,
    InvalidInputError,
    MalformedResponseError,
    RCSBEndpoints,
    UnsupportedMappingError,
)
from rcsb_biokit.search import (
    ExactMatchOperator,
    QueryGroup,
    RequestOptions,
    ScoredResult,
    perform_search,
    query_search,
    walk_nested_dict,
)

SEARCH_URL = "https://search.rcsb.org/rcsbsearch/v2/query"

HITS = {
    "query_id": "abc",
    "result_type": "entry",
    "total_count": 3,
    "result_set": [
        {"identifier": "4HHB", "score": 1.0},
        {"identifier": "2HHB", "score": 0.9},
        {"identifier": "4HHB", "score": 0.5},
    ],
}


def test_perform_search_returns_identifiers_in_order(fake_api):
    fake_api.add(HITS)
    ids = perform_search(ExactMatchOperator("rcsb_id", "4HHB"))
    assert ids == ["4HHB", "2HHB", "4HHB"]

    call = fake_api.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == SEARCH_URL
    assert call["json"] == {
        "query": {
            "type": "terminal",
            "service": "text",
            "parameters": {"attribute": "rcsb_id", "operator": "exact_match", "value": "4HHB"},
        },
        "request_options": {"return_all_hits": True},
        "return_type": "entry",
    }


def test_perform_search_with_scores_and_options(fake_api):
    fake_api.add(HITS)
    results = perform_search(
        QueryGroup([ExactMatchOperator("rcsb_id", "4HHB")], "OR"),
        return_type="POLYMER_ENTITY",
        request_options=RequestOptions(result_start_index=0, num_results=3),
        return_with_scores=True,
    )
    assert results[0] == ScoredResult("4HHB", 1.0)
    body = fake_api.calls[0]["json"]
    assert body["return_type"] == "polymer_entity"
    assert body["request_options"]["paginate"] == {"start": 0, "rows": 3}
    assert body["query"]["type"] == "group"


def test_perform_search_raw_json(fake_api):
    fake_api.add(HITS)
    assert perform_search(ExactMatchOperator("rcsb_id", "4HHB"), return_raw_json_dict=True) == HITS


@pytest.mark.parametrize("return_type,wire", [
    ("ENTRY", "entry"),
    ("ASSEMBLY", "assembly"),
    ("POLYMER_ENTITY", "polymer_entity"),
    ("NONPOLYMER_ENTITY", "non_polymer_entity"),
    ("NON_POLYMER_ENTITY", "non_polymer_entity"),
    ("POLYMER_INSTANCE", "polymer_instance"),
    ("MOL_DEFINITION", "mol_definition"),
    ("CHEMICAL_COMPONENT", "mol_definition"),
])
def test_perform_search_return_type_mapping(fake_api, return_type, wire):
    fake_api.add(HITS)
    perform_search(ExactMatchOperator("rcsb_id", "4HHB"), return_type=return_type)
    assert fake_api.calls[0]["json"]["return_type"] == wire


@pytest.mark.parametrize("return_type", ["NONPOLYMER_INSTANCE", "BANANA"])
def test_perform_search_rejects_return_type_before_request(fake_api, return_type):
    with pytest.raises(UnsupportedMappingError):
        perform_search(ExactMatchOperator("rcsb_id", "4HHB"), return_type=return_type)
    assert fake_api.calls == []


def test_perform_search_malformed_result_set(fake_api):
    fake_api.add({"total_count": 0})
    with pytest.raises(MalformedResponseError):
        perform_search(ExactMatchOperator("rcsb_id", "4HHB"))


def test_perform_search_http_error_is_not_malformed(fake_api):
    fake_api.add({"status": 400, "message": "bad attribute"}, status_code=400)
    with pytest.raises(APIRequestError) as excinfo:
        perform_search(ExactMatchOperator("nope", "4HHB"))
    assert not isinstance(excinfo.value, MalformedResponseError)
    assert excinfo.value.status_code == 400
    assert "bad attribute" in str(excinfo.value)
    assert SEARCH_URL in str(excinfo.value)


def test_perform_search_no_content_is_malformed(fake_api):
    fake_api.add(b"", status_code=204)
    with pytest.raises(MalformedResponseError, match="204"):
        perform_search(ExactMatchOperator("rcsb_id", "0000"))
    fake_api.add(b"", status_code=204)
    with pytest.raises(MalformedResponseError):
        perform_search(ExactMatchOperator("rcsb_id", "0000"), return_raw_json_dict=True)


def test_perform_search_logs_query_when_verbose(fake_api, caplog):
    fake_api.add(HITS)
    with caplog.at_level(logging.INFO, logger="rcsb_biokit.search.client"):
        perform_search(ExactMatchOperator("rcsb_id", "4HHB"), verbosity=True)
    assert "exact_match" in caplog.text


def test_perform_search_endpoint_override(fake_api):
    fake_api.add(HITS)
    perform_search(ExactMatchOperator("rcsb_id", "4HHB"), endpoints=RCSBEndpoints(search_url="http://localhost/q"))
    assert fake_api.calls[0]["url"] == "http://localhost/q"


def test_query_search_full_text(fake_api):
    fake_api.add({"result_set": [{"identifier": "4HHB"}]})
    assert query_search("hemoglobin") == ["4HHB"]
    assert fake_api.calls[0]["json"] == {
        "query": {"type": "terminal", "service": "full_text", "parameters": {"value": "hemoglobin"}},
        "return_type": "entry",
        "request_options": {"results_verbosity": "verbose", "return_all_hits": True},
    }


@pytest.mark.parametrize("query_type,attribute", [
    ("PubmedIdQuery", "rcsb_pubmed_container_identifiers.pubmed_id"),
    ("TreeEntityQuery", "rcsb_entity_source_organism.taxonomy_lineage.id"),
    ("AdvancedAuthorQuery", "rcsb_primary_citation.rcsb_authors"),
    ("OrganismQuery", "rcsb_entity_source_organism.taxonomy_lineage.name"),
    ("pfam", "rcsb_polymer_entity_annotation.annotation_id"),
    ("uniprot", "rcsb_polymer_entity_container_identifiers.reference_sequence_identifiers.database_accession"),
])
def test_query_search_specialized_attributes(fake_api, query_type, attribute):
    fake_api.add({"result_set": [{"identifier": "1ABC"}]})
    query_search("term", query_type=query_type)
    query = fake_api.calls[0]["json"]["query"]
    assert query["service"] == "text"
    assert query["parameters"]["attribute"] == attribute
    assert query["parameters"]["operator"] == "exact_match"


def test_query_search_experiment_type_is_uppercased(fake_api):
    fake_api.add({"result_set": [{"identifier": "1ABC"}]})
    query_search("x-ray diffraction", query_type="ExpTypeQuery")
    assert fake_api.calls[0]["json"]["query"]["parameters"]["value"] == "X-RAY DIFFRACTION"


def test_query_search_rejects_unknown_experiment_type(fake_api):
    with pytest.raises(InvalidInputError):
        query_search("telepathy", query_type="ExpTypeQuery")
    assert fake_api.calls == []


def test_query_search_rejects_unknown_query_type(fake_api):
    with pytest.raises(UnsupportedMappingError):
        query_search("term", query_type="VibesQuery")


def test_query_search_sequence_and_structure(fake_api):
    fake_api.add({"result_set": [{"identifier": "4HHB"}]}).add({"result_set": [{"identifier": "4HHB"}]})
    query_search("MVLSPADKTNVKAAW", query_type="sequence")
    query_search("4HHB", query_type="structure")
    assert fake_api.calls[0]["json"]["query"]["parameters"] == {
        "target": "pdb_protein_sequence", "value": "MVLSPADKTNVKAAW",
    }
    assert fake_api.calls[1]["json"]["query"]["parameters"] == {
        "operator": "relaxed_shape_match", "value": {"entry_id": "4HHB", "assembly_id": "1"},
    }


def test_query_search_scan_params_deep_merge(fake_api):
    fake_api.add({"result_set": [{"identifier": "4HHB"}]})
    query_search("hemoglobin", scan_params={"request_options": {"paginate": {"start": 0, "rows": 1}}})
    body = fake_api.calls[0]["json"]
    assert body["query"]["parameters"] == {"value": "hemoglobin"}
    assert body["request_options"] == {
        "results_verbosity": "verbose",
        "return_all_hits": True,
        "paginate": {"start": 0, "rows": 1},
    }


@pytest.mark.parametrize("scan_params", ["not a mapping", ["query"], 5])
def test_query_search_invalid_scan_params(fake_api, scan_params):
    with pytest.raises(InvalidInputError, match="Invalid scan_params"):
        query_search("hemoglobin", scan_params=scan_params)
    assert fake_api.calls == []


def test_query_search_retries_status_failures(fake_api):
    fake_api.add({"message": "busy"}, status_code=503).add({"result_set": [{"identifier": "4HHB"}]})
    assert query_search("hemoglobin", num_attempts=2, sleep_time=0) == ["4HHB"]
    assert len(fake_api.calls) == 2


def test_query_search_retries_transport_failures_then_raises(fake_api):
    fake_api.add_error(requests.exceptions.ConnectionError("down"))
    fake_api.add_error(requests.exceptions.Timeout("slow"))
    with pytest.raises(APIRequestError):
        query_search("hemoglobin", num_attempts=2)
    assert len(fake_api.calls) == 2


def test_query_search_parse_failure_is_not_retried(fake_api):
    fake_api.add(b"<html>oops</html>").add({"result_set": [{"identifier": "4HHB"}]})
    with pytest.raises(MalformedResponseError):
        query_search("hemoglobin", num_attempts=3)
    assert len(fake_api.calls) == 1


def test_query_search_empty_result_is_malformed(fake_api):
    fake_api.add({"result_set": []})
    with pytest.raises(MalformedResponseError):
        query_search("hemoglobin")


def test_query_search_no_content_is_malformed(fake_api):
    fake_api.add(b"", status_code=204)
    with pytest.raises(MalformedResponseError, match="No identifiers found"):
        query_search("zzzz")
    assert len(fake_api.calls) == 1


def test_query_search_ignores_identifiers_outside_result_set(fake_api):
    fake_api.add({
        "identifier": "query-echo",
        "result_set": [{"identifier": "4HHB", "services": [{"nodes": []}]}],
    })
    assert query_search("hemoglobin") == ["4HHB"]


def test_query_search_non_entry_returns_json(fake_api):
    payload = {"result_set": [{"identifier": "4HHB_1"}]}
    fake_api.add(payload)
    assert query_search("hemoglobin", return_type="polymer_entity") == payload


def test_walk_nested_dict_collects_in_order():
    data = {"a": [{"identifier": "X"}, {"b": {"identifier": ["Y", "Z"]}}], "identifier_list": 1}
    assert walk_nested_dict(data, "identifier") == ["X", "Y", "Z"]


def test_walk_nested_dict_depth_limit(caplog):
    deep = {"identifier": "too deep"}
    for _ in range(5):
        deep = {"next": deep}
    with caplog.at_level(logging.WARNING):
        assert walk_nested_dict(deep, "identifier", maxdepth=2) == []
    assert "Maximum recursion depth" in caplog.text
    assert walk_nested_dict(deep, "identifier", maxdepth=10) == ["too deep"]
