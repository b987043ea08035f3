"""
Tests for the comp engine JSON API.

Each test gets an analyzer with a fresh in-memory repository, so nothing
is written to the data directory.
"""

import pytest
from datetime import date, timedelta
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fastapi.testclient import TestClient

from deal_engine import AnalysisRepository, ComparableRepository, DealAnalyzer
from web.app import create_app
from web.comps_routes import get_analyzer


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def reference_date():
    """Fixed reference date for deterministic tests."""
    return date(2024, 6, 1)


@pytest.fixture
def analyzer(reference_date):
    return DealAnalyzer(
        reference_date=reference_date,
        repository=AnalysisRepository(),
        comp_repository=ComparableRepository(),
    )


@pytest.fixture
def client(analyzer):
    app = create_app()
    app.dependency_overrides[get_analyzer] = lambda: analyzer
    return TestClient(app)


@pytest.fixture
def subject_payload():
    return {
        "address": "100 Main St, Springfield, IL 62701",
        "latitude": 39.7817,
        "longitude": -89.6501,
        "beds": 3,
        "baths": 2,
        "square_footage": 1500,
        "property_type": "single_family",
        "asking_price": 250000,
        "days_on_market": 30,
        "property_id": "subj-1",
    }


@pytest.fixture
def comps_payload(reference_date):
    def comp(n, price, days_ago, **overrides):
        data = {
            "address": f"{n} Oak St, Springfield, IL 62701",
            "latitude": 39.7817 + 0.002 * n,
            "longitude": -89.6501,
            "beds": 3,
            "baths": 2,
            "square_footage": 1500,
            "property_type": "Single Family",
            "sale_date": (reference_date - timedelta(days=days_ago)).isoformat(),
            "sale_price": price,
            "days_on_market": 40,
            "data_source": "mls",
            "source_id": f"MLS-{n}",
        }
        data.update(overrides)
        return data

    return [
        comp(1, 300000, 60),
        comp(2, 305000, 90),
        comp(3, 295000, 30),
        comp(4, 310000, 120),
    ]


# =============================================================================
# Test: Health and Search Parameters
# =============================================================================

class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestSearchParams:
    """Tests for POST /api/comps/search-params."""

    def test_explicit_area_type(self, client):
        response = client.post(
            "/api/comps/search-params",
            json={"area_type": "urban", "square_footage": 1500},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["area_type"] == "urban"
        assert data["radius"] == 0.5
        assert data["matching_criteria"]["lot_tolerance"] is None

    def test_classified_from_place_types(self, client):
        response = client.post(
            "/api/comps/search-params",
            json={"place_types": ["administrative_area_level_2", "political"]},
        )
        assert response.json()["area_type"] == "rural"

    def test_default_is_suburban(self, client):
        response = client.post("/api/comps/search-params", json={})
        assert response.json()["area_type"] == "suburban"

    def test_invalid_area_type(self, client):
        response = client.post("/api/comps/search-params", json={"area_type": "lunar"})
        assert response.status_code == 400


# =============================================================================
# Test: Scoring
# =============================================================================

class TestScore:
    """Tests for POST /api/comps/score."""

    def test_ranked_comps(self, client, subject_payload, comps_payload):
        response = client.post(
            "/api/comps/score",
            json={"subject": subject_payload, "comps": comps_payload},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["subject_id"] == "subj-1"
        assert data["eligible_count"] == 4
        assert not data["all_filtered_out"]
        scores = [c["comp_score"] for c in data["comps"]]
        assert scores == sorted(scores, reverse=True)
        assert all(c["distance_miles"] is not None for c in data["comps"])

    def test_all_filtered_out(self, client, subject_payload, comps_payload):
        for comp in comps_payload:
            comp["beds"] = 6

        data = client.post(
            "/api/comps/score",
            json={"subject": subject_payload, "comps": comps_payload},
        ).json()

        assert data["all_filtered_out"]
        assert len(data["comps"]) == 4
        assert all(c["filtered_out"] and c["comp_score"] == 0.0 for c in data["comps"])

    def test_comp_photos_set_condition(self, client, subject_payload, comps_payload):
        comps_payload[0]["image_analyses"] = [
            {"room_type": "kitchen", "condition_score": 5.0, "confidence": 80},
        ]
        data = client.post(
            "/api/comps/score",
            json={"subject": subject_payload, "comps": comps_payload[:1]},
        ).json()

        assert data["comps"][0]["image_confidence"] == 80.0
        assert data["comps"][0]["condition_rating"] is not None

    def test_negative_value_rejected(self, client, subject_payload, comps_payload):
        subject_payload["square_footage"] = -10
        response = client.post(
            "/api/comps/score",
            json={"subject": subject_payload, "comps": comps_payload},
        )
        assert response.status_code == 400


# =============================================================================
# Test: Analysis
# =============================================================================

class TestAnalyze:
    """Tests for POST /api/comps/analyze and GET /api/comps/{id}/analysis."""

    def test_full_analysis(self, client, subject_payload, comps_payload):
        response = client.post("/api/comps/analyze", json={
            "subject": subject_payload,
            "comps": comps_payload,
            "inputs": {"estimatedRepairs": 30000, "maoRule": "70%"},
        })

        assert response.status_code == 200
        data = response.json()
        assert data["subject_id"] == "subj-1"
        assert 295000 <= data["arv"] <= 310000
        assert data["mao"]["mao"] > 0
        assert data["recommendation"] in {"strong-deal", "good-negotiate", "weak-lowball", "pass"}
        assert data["recommendation_reason"]
        assert 0 <= data["deal_score"]["deal_score"] <= 100
        assert data["version"] == 1

    def test_stored_and_retrievable(self, client, subject_payload, comps_payload):
        client.post("/api/comps/analyze", json={"subject": subject_payload, "comps": comps_payload})

        response = client.get("/api/comps/subj-1/analysis")
        assert response.status_code == 200
        assert response.json()["subject_id"] == "subj-1"

    def test_reanalysis_bumps_version(self, client, subject_payload, comps_payload):
        payload = {"subject": subject_payload, "comps": comps_payload}
        client.post("/api/comps/analyze", json=payload)
        data = client.post("/api/comps/analyze", json=payload).json()
        assert data["version"] == 2

    def test_no_prices_still_returns_comps(self, client, subject_payload, comps_payload):
        for comp in comps_payload:
            comp["sale_price"] = None

        data = client.post(
            "/api/comps/analyze",
            json={"subject": subject_payload, "comps": comps_payload},
        ).json()

        assert data["arv"] is None
        assert data["mao"] is None
        assert data["recommendation"] is None
        assert len(data["comps"]) == 4

    @pytest.mark.parametrize("inputs", [
        {"maoRule": "80%"},
        {"maoRule": "custom"},
        {"estimatedRepairs": -1},
        {"holdingCost": "lots"},
    ])
    def test_invalid_inputs(self, client, subject_payload, comps_payload, inputs):
        response = client.post("/api/comps/analyze", json={
            "subject": subject_payload,
            "comps": comps_payload,
            "inputs": inputs,
        })
        assert response.status_code == 400

    def test_missing_analysis(self, client):
        assert client.get("/api/comps/nowhere/analysis").status_code == 404


# =============================================================================
# Test: MAO Recalculation
# =============================================================================

class TestRecalculateMao:
    """Tests for POST /api/comps/{id}/mao."""

    def test_recalculates_mao_only(self, client, subject_payload, comps_payload):
        original = client.post("/api/comps/analyze", json={
            "subject": subject_payload,
            "comps": comps_payload,
            "inputs": {"estimatedRepairs": 30000},
        }).json()

        response = client.post(
            "/api/comps/subj-1/mao",
            json={"inputs": {"estimatedRepairs": 30000, "maoRule": "65%"}},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["arv"] == original["arv"]
        assert data["inputs"]["mao_rule"] == "65%"
        assert data["mao"]["mao"] < original["mao"]["mao"]
        assert data["version"] == 2

        stored = client.get("/api/comps/subj-1/analysis").json()
        assert stored["deal_score"] == original["deal_score"]
        assert stored["recommendation"] == original["recommendation"]

    def test_omitted_costs_kept(self, client, subject_payload, comps_payload):
        client.post("/api/comps/analyze", json={
            "subject": subject_payload,
            "comps": comps_payload,
            "inputs": {"estimatedRepairs": 30000, "holdingCost": 5000},
        })

        data = client.post(
            "/api/comps/subj-1/mao",
            json={"inputs": {"maoRule": "65%"}},
        ).json()

        assert data["inputs"]["estimated_repairs"] == 30000
        assert data["inputs"]["holding_cost"] == 5000
        assert data["inputs"]["mao_rule"] == "65%"
        assert data["mao"]["total_fees"] == 35000
        assert data["mao"]["mao"] == data["mao"]["base_mao"] - 35000

    def test_custom_percent_kept(self, client, subject_payload, comps_payload):
        client.post("/api/comps/analyze", json={
            "subject": subject_payload,
            "comps": comps_payload,
            "inputs": {"maoRule": "custom", "maoRulePercent": 60},
        })

        data = client.post(
            "/api/comps/subj-1/mao",
            json={"inputs": {"estimatedRepairs": 20000}},
        ).json()

        assert data["inputs"]["mao_rule"] == "custom"
        assert data["inputs"]["mao_rule_percent"] == 60
        assert data["inputs"]["estimated_repairs"] == 20000

    def test_unknown_subject(self, client):
        response = client.post("/api/comps/nowhere/mao", json={"inputs": {}})
        assert response.status_code == 404

    def test_invalid_inputs(self, client, subject_payload, comps_payload):
        client.post("/api/comps/analyze", json={"subject": subject_payload, "comps": comps_payload})
        response = client.post(
            "/api/comps/subj-1/mao",
            json={"inputs": {"maoRule": "custom", "maoRulePercent": 95}},
        )
        assert response.status_code == 400


# =============================================================================
# Test: Stored Comps and Hand-picked Analysis
# =============================================================================

class TestStoredComps:
    """Tests for GET /api/comps/{id}/comps."""

    def test_comps_from_latest_search(self, client, subject_payload, comps_payload):
        scored = client.post(
            "/api/comps/score",
            json={"subject": subject_payload, "comps": comps_payload},
        ).json()

        response = client.get("/api/comps/subj-1/comps")

        assert response.status_code == 200
        data = response.json()
        assert data["subject_id"] == "subj-1"
        assert [c["comp_id"] for c in data["comps"]] == [c["comp_id"] for c in scored["comps"]]
        assert "mls:MLS-1" in {c["comp_id"] for c in data["comps"]}

    def test_no_comps(self, client):
        assert client.get("/api/comps/nowhere/comps").status_code == 404


class TestAnalyzeSelected:
    """Tests for POST /api/comps/analyze-selected."""

    @pytest.fixture
    def scored(self, client, subject_payload, comps_payload):
        client.post(
            "/api/comps/score",
            json={"subject": subject_payload, "comps": comps_payload},
        )

    def test_values_from_picked_comps(self, client, scored, subject_payload):
        response = client.post("/api/comps/analyze-selected", json={
            "subject": subject_payload,
            "comp_ids": ["mls:MLS-1", "mls:MLS-3"],
            "inputs": {"estimatedRepairs": 10000},
        })

        assert response.status_code == 200
        data = response.json()
        assert {c["comp_id"] for c in data["comps"]} == {"mls:MLS-1", "mls:MLS-3"}
        assert 295000 <= data["arv"] <= 300000
        assert data["inputs"]["estimated_repairs"] == 10000
        assert "Only 2 comps selected (3-5 recommended)" in data["notes"]

        stored = client.get("/api/comps/subj-1/analysis").json()
        assert stored["arv"] == data["arv"]

    def test_unknown_comp(self, client, scored, subject_payload):
        response = client.post("/api/comps/analyze-selected", json={
            "subject": subject_payload,
            "comp_ids": ["mls:MLS-1", "mls:MLS-99"],
        })
        assert response.status_code == 404
        assert "mls:MLS-99" in response.json()["detail"]

    @pytest.mark.parametrize("comp_ids", [
        [],
        ["mls:MLS-1"] * 2,
        [f"mls:MLS-{n}" for n in range(1, 7)],
    ])
    def test_invalid_selection(self, client, scored, subject_payload, comp_ids):
        response = client.post("/api/comps/analyze-selected", json={
            "subject": subject_payload,
            "comp_ids": comp_ids,
        })
        assert response.status_code == 400

    def test_invalid_inputs(self, client, scored, subject_payload):
        response = client.post("/api/comps/analyze-selected", json={
            "subject": subject_payload,
            "comp_ids": ["mls:MLS-1"],
            "inputs": {"maoRule": "80%"},
        })
        assert response.status_code == 400
