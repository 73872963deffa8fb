import logging

import pytest

from rcsb_biokit import (
    APIRequestError,
    InvalidInputError,
    NotFoundError,
    get_pdb_api_url,
)
from rcsb_biokit.connectors import (
    FastaSequence,
    describe_chemical,
    find_papers,
    find_results,
    get_fasta_from_rcsb_entry,
    get_info,
    parse_fasta_text_to_list,
)

FASTA_4HHB = """>4HHB_1|Chains A, C|Hemoglobin subunit alpha|Homo sapiens (9606)
VLSPADKTNVKAAWGKVGAHAGEYGAEALERMFLSFPTTKTYFPHF
DLSHGSAQVKGHGKKVADALTNAVAHVDDMPNALSALSDLHAHKL
>4HHB_2|Chains B, D|Hemoglobin subunit beta|Homo sapiens (9606)
VHLTPEEKSAVTALWGKVNVDEVGGEALGRLLVVYPWTQRFFESFGDLST
"""


def test_get_pdb_api_url():
    assert get_pdb_api_url("entry", "4HHB") == "https://data.rcsb.org/rest/v1/core/entry/4HHB"
    assert get_pdb_api_url("chemcomp", "ATP", base_url="http://localhost/core/") == "http://localhost/core/chemcomp/ATP"


def test_get_info(fake_api):
    fake_api.add({"rcsb_id": "4HHB", "struct": {"title": "THE CRYSTAL STRUCTURE OF HUMAN DEOXYHAEMOGLOBIN"}})
    info = get_info("4HHB")
    assert info["rcsb_id"] == "4HHB"
    assert fake_api.calls[0]["url"] == "https://data.rcsb.org/rest/v1/core/entry/4HHB"
    assert fake_api.calls[0]["method"] == "GET"


def test_get_info_rewrites_legacy_ids(fake_api):
    fake_api.add({"rcsb_id": "4HHB"})
    get_info("4HHB:1", url_root="https://data.rcsb.org/rest/v1/core/polymer_entity/")
    assert fake_api.calls[0]["url"] == "https://data.rcsb.org/rest/v1/core/polymer_entity/4HHB/1"


def test_get_info_not_found_carries_upstream_message(fake_api):
    fake_api.add({"status": 404, "message": "No data found for entry XXXX"}, status_code=404)
    with pytest.raises(APIRequestError, match="No data found for entry XXXX") as excinfo:
        get_info("XXXX")
    assert excinfo.value.status_code == 404
    assert excinfo.value.url.endswith("/entry/XXXX")


def test_describe_chemical(fake_api):
    fake_api.add({"chem_comp": {"id": "NAG", "name": "2-acetamido-2-deoxy-beta-D-glucopyranose"}})
    assert describe_chemical("NAG")["chem_comp"]["id"] == "NAG"
    assert fake_api.calls[0]["url"] == "https://data.rcsb.org/rest/v1/core/chemcomp/NAG"


def test_describe_chemical_rejects_long_ids(fake_api):
    with pytest.raises(InvalidInputError, match="more than 3 characters"):
        describe_chemical("NAGX")
    assert fake_api.calls == []


def test_find_papers(fake_api):
    fake_api.add({"result_set": [{"identifier": "5F9R"}, {"identifier": "4OO8"}, {"identifier": "1XYZ"}]})
    fake_api.add({"citation": [{"title": "Crystal structure of Cas9"}, {"title": "Other"}]})
    fake_api.add({"rcsb_id": "4OO8"})
    papers = find_papers("crispr", max_results=2)
    assert papers == {"5F9R": "Crystal structure of Cas9"}
    assert len(fake_api.calls) == 3


def test_find_results_skips_failed_lookups(fake_api, caplog):
    fake_api.add({"result_set": [{"identifier": "5F9R"}, {"identifier": "0BAD"}]})
    fake_api.add({"citation": [{"title": "Crystal structure of Cas9"}]})
    fake_api.add({"message": "No data found"}, status_code=404)
    with caplog.at_level(logging.WARNING):
        results = find_results("crispr")
    assert results == {"5F9R": [{"title": "Crystal structure of Cas9"}]}
    assert "0BAD" in caplog.text


def test_find_results_failed_search_returns_empty(fake_api, caplog):
    fake_api.add({"message": "down"}, status_code=503)
    with caplog.at_level(logging.WARNING):
        assert find_results("crispr") == {}
    assert "Failed to fetch search results" in caplog.text


def test_parse_fasta_text_to_list():
    records = parse_fasta_text_to_list(FASTA_4HHB)
    assert len(records) == 2
    assert records[0] == FastaSequence(
        entity_id="4HHB_1",
        chains=["A", "C"],
        sequence="VLSPADKTNVKAAWGKVGAHAGEYGAEALERMFLSFPTTKTYFPHFDLSHGSAQVKGHGKKVADALTNAVAHVDDMPNALSALSDLHAHKL",
        fasta_header="4HHB_1|Chains A, C|Hemoglobin subunit alpha|Homo sapiens (9606)",
    )
    assert records[1].chains == ["B", "D"]


def test_parse_fasta_single_chain_label():
    records = parse_fasta_text_to_list(">1ABC_1|Chain A|Lysozyme|Gallus gallus (9031)\nKVFGRCELAAAMKRHGLDNYRGYSLGNWVCAAKFESNFNTQATNRNTDGSTDYGILQINSRWWCNDGRTPGSRNLCNIPCSALLSSDITASVNCAKKIVSDGNGMNAWVAWRNRCKGTDVQAWIRGCRL\n")
    assert records[0].chains == ["A"]


def test_get_fasta_from_rcsb_entry(fake_api):
    fake_api.add(FASTA_4HHB)
    records = get_fasta_from_rcsb_entry("4HHB")
    assert [record.entity_id for record in records] == ["4HHB_1", "4HHB_2"]
    assert fake_api.calls[0]["url"] == "https://www.rcsb.org/fasta/entry/4HHB"


def test_get_fasta_from_rcsb_entry_by_chain(fake_api):
    fake_api.add(FASTA_4HHB)
    result = get_fasta_from_rcsb_entry("4HHB", chain_id="D")
    assert result == {"D": "VHLTPEEKSAVTALWGKVNVDEVGGEALGRLLVVYPWTQRFFESFGDLST"}


def test_get_fasta_chain_match_is_whole_word(fake_api):
    fake_api.add(">9XYZ_1|Chains AB, AC|Something|Homo sapiens (9606)\nMKV\n")
    with pytest.raises(NotFoundError, match="Chain A not found in entry 9XYZ"):
        get_fasta_from_rcsb_entry("9XYZ", chain_id="A")


def test_get_fasta_chain_match_ignores_author_labels(fake_api):
    fake_api.add(
        ">7ABC_1|Chains A[auth B]|Alpha|Homo sapiens (9606)\nMVLS\n"
        ">7ABC_2|Chain B[auth D]|Beta|Homo sapiens (9606)\nGGGG\n"
    )
    assert get_fasta_from_rcsb_entry("7ABC", chain_id="B") == {"B": "GGGG"}


def test_get_fasta_http_failure(fake_api):
    fake_api.add("Not Found", status_code=404)
    with pytest.raises(APIRequestError):
        get_fasta_from_rcsb_entry("XXXX")
