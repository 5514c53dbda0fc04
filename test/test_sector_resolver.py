import pytest

from conftest import make_client, make_grant
from services.errors import SectorLookupError, StoreError
from services.matching.classification import ClassificationTable
from services.matching.sector_resolver import SectorCompatibilityResolver


def test_exact_code_match_scores_one(single_code_table):
    resolver = SectorCompatibilityResolver(single_code_table)
    grant = make_grant(sectors=["62.01.00"])

    result = resolver.score(["Tecnologia"], grant)

    assert result.score == 1.0
    assert result.method == "codes"
    assert result.matched_codes == ["62.01.00"]


def test_partial_code_overlap_is_a_ratio_of_client_codes(single_code_table):
    resolver = SectorCompatibilityResolver(single_code_table)
    grant = make_grant(sectors=["35.11.00", "62.01.00"])
    assert resolver.score(["Energia"], grant).score == 0.5


def test_grant_sector_names_expand_through_the_table(classification):
    resolver = SectorCompatibilityResolver(classification)
    grant = make_grant(sectors=["tecnologia"])
    assert resolver.score(["Tecnologia"], grant).score == 1.0


def test_lookup_is_case_insensitive(single_code_table):
    resolver = SectorCompatibilityResolver(single_code_table)
    grant = make_grant(sectors=["62.01.00"])
    assert resolver.score(["  TECNOLOGIA "], grant).score == 1.0


def test_unknown_sector_falls_back_to_text_match(classification):
    resolver = SectorCompatibilityResolver(classification)
    grant = make_grant(description="Contributi alle PMI del comparto Aerospazio lombardo")

    result = resolver.score(["Aerospazio"], grant)

    assert result.score == pytest.approx(0.3)
    assert result.method == "fallback"


def test_unknown_sector_without_text_match_is_zero(classification):
    resolver = SectorCompatibilityResolver(classification)
    grant = make_grant(description="Contributi per il turismo")
    result = resolver.score(["Aerospazio"], grant)
    assert result.score == 0.0
    assert result.method == "none"


def test_client_ateco_code_counts(classification):
    resolver = SectorCompatibilityResolver(classification)
    client = make_client(sector=None, ateco_code="62.01.00")
    grant = make_grant(sectors=["62.01.00"])
    assert resolver.score_client(client, grant).score == 1.0


def test_no_codes_on_grant_scores_zero_not_fallback(single_code_table):
    resolver = SectorCompatibilityResolver(single_code_table)
    grant = make_grant(sectors=[], description="software Tecnologia")
    result = resolver.score(["Tecnologia"], grant)
    assert result.score == 0.0
    assert result.method == "codes"


def test_table_lookup_raises_for_unknown(single_code_table):
    with pytest.raises(SectorLookupError):
        single_code_table.codes_for("Aerospazio")
    assert isinstance(SectorLookupError(message="x"), LookupError)
    assert single_code_table.resolve(["Aerospazio", "Tecnologia"]) == frozenset({"62.01.00"})


def test_table_is_read_only(classification):
    assert len(classification) == 8
    assert classification.describe("62.01.00").startswith("Produzione di software")
    with pytest.raises(TypeError):
        classification._by_key["nuovo"] = ("Nuovo", ())


def test_bad_table_file_is_a_store_error(tmp_path):
    path = tmp_path / "ateco.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StoreError):
        ClassificationTable.load(path)
