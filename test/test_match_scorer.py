import pytest

from config import EngineConfig
from conftest import make_client, make_grant
from services.matching.keyword_overlap import keyword_overlap, tokenize
from services.matching.match_scorer import (
    MatchScorer,
    budget_satisfaction,
    composite_score,
    geography_satisfaction,
)


def test_tokenize_strips_stop_words_short_and_numeric_tokens():
    assert tokenize("Il bando per la Digitalizzazione delle PMI, 2024 e AI") == {"digitalizzazione", "pmi"}


def test_keyword_overlap_is_jaccard():
    score, common = keyword_overlap("software cloud sicurezza", "software cloud formazione")
    assert score == pytest.approx(2 / 4)
    assert common == frozenset({"software", "cloud"})


def test_empty_requirements_give_zero_overlap():
    assert keyword_overlap("", "software")[0] == 0.0


def test_score_is_deterministic(classification, now):
    scorer = MatchScorer(classification)
    client = make_client(requirements="software gestionale cloud", region="Lombardia")
    grant = make_grant(sectors=["Tecnologia"], description="Software gestionale in cloud per PMI", grant_type="statale")

    assert scorer.score(client, grant, now=now) == scorer.score(client, grant, now=now)


def test_full_signal_scores_hundred(single_code_table, now):
    scorer = MatchScorer(single_code_table)
    client = make_client(requirements="software gestionale")
    grant = make_grant(sectors=["62.01.00"], title="Software gestionale", description="")

    result = scorer.score(client, grant, now=now)

    assert result.score == 100
    assert result.breakdown.sector_method == "codes"
    assert result.breakdown.matched_keywords == ["gestionale", "software"]


def test_no_signal_scores_zero(single_code_table, now):
    scorer = MatchScorer(single_code_table)
    client = make_client(sector="Aerospazio", requirements="")
    grant = make_grant(description="Turismo rurale")

    result = scorer.score(client, grant, now=now)

    assert result.score == 0
    assert result.breakdown.sector == 0.0
    assert result.breakdown.constraint == 1.0
    assert result.breakdown.budget is None
    assert result.breakdown.geography is None


def test_no_sector_and_no_requirements_scores_zero(single_code_table, now):
    scorer = MatchScorer(single_code_table)
    result = scorer.score(make_client(sector=None, requirements=""), make_grant(sectors=[]), now=now)
    assert result.score == 0


def test_constraints_still_weigh_on_real_signal(single_code_table, now):
    scorer = MatchScorer(single_code_table)
    grant = make_grant(sectors=["62.01.00"], description="", grant_type="statale")

    assert scorer.score(make_client(), grant, now=now).score == 70
    assert scorer.score(make_client(region="Lombardia"), grant, now=now).score == 70
    assert scorer.score(make_client(budget_max=1), make_grant(sectors=["62.01.00"], amount_min=10_000), now=now).score == 60


def test_failed_constraints_and_no_signal_scores_zero(single_code_table, now):
    scorer = MatchScorer(single_code_table)
    client = make_client(sector="Aerospazio", region="Sicilia", budget_min=1_000_000)
    grant = make_grant(description="Turismo", grant_type="regionale", regions=["Lombardia"], amount_max=50_000)
    assert scorer.score(client, grant, now=now).score == 0


@pytest.mark.parametrize(
    "sector, keyword, constraint, expected",
    [
        (0.0, 0.0, 0.0, 0),
        (1.0, 1.0, 1.0, 100),
        (1.0, 0.0, 1.0, 70),
        (0.5, 0.0, 1.0, 40),
        (0.3, 0.0, 1.0, 28),
        (1.0, 0.1, 0.0, 63),
    ],
)
def test_composite_score(sector, keyword, constraint, expected):
    assert composite_score(sector, keyword, constraint, EngineConfig()) == expected


def test_composite_score_is_bounded():
    cfg = EngineConfig(sector_weight=1.0, keyword_weight=1.0, constraint_weight=1.0)
    assert composite_score(1.0, 1.0, 1.0, cfg) == 100
    assert composite_score(0.0, 0.0, 0.0, cfg) == 0


def test_scores_stay_in_range(classification, now):
    scorer = MatchScorer(classification)
    clients = [
        make_client("c1", requirements="energia solare fotovoltaico"),
        make_client("c2", sector="Aerospazio", region="Puglia", budget_min=5_000, budget_max=10_000),
        make_client("c3", sector=None, requirements=""),
    ]
    grants = [
        make_grant("g1", sectors=["Energia", "62.01.00"], description="Impianti fotovoltaici e solare"),
        make_grant("g2", sectors=[], description="", grant_type="regionale", amount_min=50_000),
        make_grant("g3", sectors=["Tecnologia"], title="Aerospazio e software", grant_type="europeo"),
    ]
    for c in clients:
        for r in scorer.score_many(c, grants, now=now):
            assert 0 <= r.score <= 100


def test_success_threshold_is_inclusive():
    cfg = EngineConfig()
    assert cfg.is_successful(71)
    assert cfg.is_successful(70)
    assert not cfg.is_successful(69)


def test_budget_overlap():
    grant = make_grant(amount_min=10_000, amount_max=100_000)
    assert budget_satisfaction(make_client(), grant) is None
    assert budget_satisfaction(make_client(budget_min=50_000, budget_max=200_000), grant) == 1.0
    assert budget_satisfaction(make_client(budget_max=5_000), grant) == 0.0
    assert budget_satisfaction(make_client(budget_min=5_000), make_grant()) == 1.0


def test_geography():
    client = make_client(region="Lombardia", province="Milano")
    assert geography_satisfaction(make_client(), make_grant()) is None
    assert geography_satisfaction(client, make_grant(grant_type="europeo", regions=["Sicilia"])) == 1.0
    assert geography_satisfaction(client, make_grant(regions=["lombardia"])) == 1.0
    assert geography_satisfaction(client, make_grant(regions=["Sicilia"])) == 0.0
    assert geography_satisfaction(client, make_grant(grant_type="regionale", source="Regione Lombardia")) == 1.0
    assert geography_satisfaction(client, make_grant(grant_type="regionale", source="Regione Puglia")) == 0.0
    assert geography_satisfaction(client, make_grant(grant_type="altro")) == 1.0
