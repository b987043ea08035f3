"""
Tests for analysis and comparable storage.

Verifies:
- One authoritative analysis per subject, version bumped on replacement
- Read-modify-write under the subject's lock
- JSON persistence survives a restart
- Comps unique by (subject, data source, source id)
"""

import json
import threading
import pytest
from datetime import date
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dataclasses import replace

from deal_engine.comp_engine import (
    AnalysisResult,
    ArvMethod,
    ComparableSale,
    DataSource,
    MaoRule,
    Recommendation,
    ValuationInputs,
    calculate_mao,
)
from deal_engine.errors import AnalysisNotFoundError
from deal_engine.repository import AnalysisRepository, ComparableRepository


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def create_analysis():
    """Factory fixture for stored analyses."""
    def _create(subject_id="100 main st", arv=300000.0, **overrides) -> AnalysisResult:
        inputs = ValuationInputs(estimated_repairs=30000)
        values = dict(
            subject_id=subject_id,
            arv=arv,
            arv_method=ArvMethod.WEIGHTED,
            comps=[
                ComparableSale(
                    address="1 Oak St",
                    latitude=39.78,
                    longitude=-89.65,
                    sale_price=300000,
                    sale_date=date(2024, 3, 1),
                    data_source=DataSource.MLS,
                    source_id="A1",
                    comp_score=82.5,
                ),
            ],
            inputs=inputs,
            mao=calculate_mao(arv, inputs),
            recommendation=Recommendation.GOOD_NEGOTIATE,
            confidence=64,
            notes=["Searched within 1.00 mi over 6 months"],
        )
        values.update(overrides)
        return AnalysisResult(**values)
    return _create


@pytest.fixture
def repository():
    return AnalysisRepository()


def make_comp(address="1 Oak St", source=DataSource.MLS, source_id="A1", price=300000):
    return ComparableSale(
        address=address,
        latitude=39.78,
        longitude=-89.65,
        sale_price=price,
        data_source=source,
        source_id=source_id,
    )


# =============================================================================
# Test: Analysis Repository
# =============================================================================

class TestAnalysisRepository:
    """Tests for AnalysisRepository."""

    def test_upsert_and_get(self, repository, create_analysis):
        stored = repository.upsert(create_analysis())

        assert stored.version == 1
        assert repository.get("100 main st") is stored
        assert len(repository) == 1

    def test_upsert_replaces_and_bumps_version(self, repository, create_analysis):
        repository.upsert(create_analysis(arv=300000.0))
        stored = repository.upsert(create_analysis(arv=310000.0))

        assert stored.version == 2
        assert len(repository) == 1
        assert repository.get("100 main st").arv == 310000.0

    def test_get_missing(self, repository):
        assert repository.get("nowhere") is None

    def test_update(self, repository, create_analysis):
        repository.upsert(create_analysis())
        inputs = ValuationInputs(mao_rule=MaoRule.SIXTY_FIVE)

        updated = repository.update(
            "100 main st",
            lambda a: replace(a, inputs=inputs, mao=calculate_mao(a.arv, inputs)),
        )

        assert updated.version == 2
        assert updated.mao.mao == 195000
        assert updated.recommendation == Recommendation.GOOD_NEGOTIATE

    def test_update_missing_raises(self, repository):
        with pytest.raises(AnalysisNotFoundError):
            repository.update("nowhere", lambda a: a)

    def test_delete(self, repository, create_analysis):
        repository.upsert(create_analysis())
        assert repository.delete("100 main st")
        assert not repository.delete("100 main st")
        assert len(repository) == 0

    def test_iterates_analyses(self, repository, create_analysis):
        repository.upsert(create_analysis("a"))
        repository.upsert(create_analysis("b"))
        assert sorted(a.subject_id for a in repository) == ["a", "b"]

    def test_concurrent_upserts_keep_one_record(self, repository, create_analysis):
        threads = [
            threading.Thread(target=repository.upsert, args=(create_analysis(arv=300000.0 + i),))
            for i in range(20)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(repository) == 1
        assert repository.get("100 main st").version == 20


class TestPersistence:
    """Tests for JSON file persistence."""

    def test_round_trip(self, tmp_path, create_analysis):
        path = tmp_path / "analyses.json"
        AnalysisRepository(str(path)).upsert(create_analysis())

        reloaded = AnalysisRepository(str(path)).get("100 main st")

        assert reloaded is not None
        assert reloaded.arv == 300000.0
        assert reloaded.arv_method == ArvMethod.WEIGHTED
        assert reloaded.mao.mao == 180000
        assert reloaded.recommendation == Recommendation.GOOD_NEGOTIATE
        assert reloaded.comps[0].source_id == "A1"
        assert reloaded.comps[0].sale_date == date(2024, 3, 1)
        assert reloaded.notes == ["Searched within 1.00 mi over 6 months"]

    def test_delete_persisted(self, tmp_path, create_analysis):
        path = tmp_path / "analyses.json"
        repository = AnalysisRepository(str(path))
        repository.upsert(create_analysis())
        repository.delete("100 main st")

        assert json.loads(path.read_text())["analyses"] == {}

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "analyses.json"
        path.write_text("{not json")
        assert len(AnalysisRepository(str(path))) == 0


# =============================================================================
# Test: Comparable Repository
# =============================================================================

class TestComparableRepository:
    """Tests for ComparableRepository."""

    def test_unique_by_source_and_id(self):
        repository = ComparableRepository()
        repository.upsert("s1", make_comp(price=300000))
        repository.upsert("s1", make_comp(price=305000))

        comps = repository.for_subject("s1")
        assert len(comps) == 1
        assert comps[0].sale_price == 305000

    def test_same_id_different_source(self):
        repository = ComparableRepository()
        repository.upsert("s1", make_comp(source=DataSource.MLS))
        repository.upsert("s1", make_comp(source=DataSource.ZILLOW))
        assert len(repository.for_subject("s1")) == 2

    def test_address_key_without_source_id(self):
        repository = ComparableRepository()
        repository.upsert("s1", make_comp(address="1 Oak St", source=None, source_id=""))
        repository.upsert("s1", make_comp(address="1  oak st", source=None, source_id=""))
        assert len(repository.for_subject("s1")) == 1

    def test_subjects_are_separate(self):
        repository = ComparableRepository()
        repository.upsert("s1", make_comp())
        repository.upsert("s2", make_comp())
        assert len(repository.for_subject("s1")) == 1
        assert len(repository.for_subject("s2")) == 1

    def test_replace_all_supersedes(self):
        repository = ComparableRepository()
        repository.upsert("s1", make_comp(source_id="OLD"))
        repository.replace_all("s1", [make_comp(source_id="N1"), make_comp(source_id="N2")])

        assert {c.source_id for c in repository.for_subject("s1")} == {"N1", "N2"}

    def test_get(self):
        repository = ComparableRepository()
        repository.upsert("s1", make_comp())
        assert repository.get("s1", "mls", "A1").sale_price == 300000
        assert repository.get("s1", "zillow", "A1") is None

    def test_get_by_comp_id(self):
        repository = ComparableRepository()
        comp = repository.upsert("s1", make_comp())

        assert comp.comp_id == "mls:A1"
        assert repository.get_by_id("s1", comp.comp_id) is comp
        assert repository.get_by_id("s2", comp.comp_id) is None
        assert repository.get_by_id("s1", "A1") is None

    def test_comp_id_from_address(self):
        repository = ComparableRepository()
        comp = repository.upsert("s1", make_comp(address="1 Oak St", source=None, source_id=""))

        assert comp.comp_id == ":1 oak st"
        assert repository.get_by_id("s1", ":1 oak st") is comp
