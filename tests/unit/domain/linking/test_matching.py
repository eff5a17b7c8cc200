import pytest

from apsync.domain.linking.model.value import MatchMethod, ResolutionMethod
from apsync.domain.linking.service.matching import CONTAINS_SCORE, MatchingEngine
from apsync.infrastructure.registry.memory import InMemorySiteRegistry


@pytest.fixture
def sites(site_factory):
    return [
        site_factory("s1", "Joes Pizza", devices=("aa:bb:cc:dd:ee:01",), emails=("joe@example.com",)),
        site_factory("s2", "The Crown Inn", devices=("aa:bb:cc:dd:ee:02",)),
        site_factory("s3", "Joe's Pizza Express", devices=("aa:bb:cc:dd:ee:03",)),
        site_factory("s4", "Harbour Cafe", emails=("owner@harbour.test", "joe@example.com")),
    ]


@pytest.fixture
def engine(sites):
    return MatchingEngine(registry=InMemorySiteRegistry(sites), similarity_threshold=0.3)


class TestMatchingEngine:
    @pytest.mark.asyncio
    async def test_email_match_wins_over_name(self, engine):
        resolution = await engine.resolve_candidates("The Crown Inn", "JOE@example.com")

        assert resolution.method == ResolutionMethod.EMAIL
        assert [s.site_id for s in resolution.sites] == ["s1", "s4"]
        assert all(m.score == 1.0 and m.method == MatchMethod.EXACT for m in resolution.matches)

    @pytest.mark.asyncio
    async def test_exact_name_scores_one_and_comes_first(self, engine):
        resolution = await engine.resolve_candidates("the crown inn", None)

        assert resolution.method == ResolutionMethod.NAME
        first = resolution.matches[0]
        assert first.site.site_id == "s2"
        assert first.score == 1.0
        assert first.method == MatchMethod.EXACT

    @pytest.mark.asyncio
    async def test_fuzzy_name_matches_apostrophe_variant(self, engine):
        resolution = await engine.resolve_candidates("Joe's Pizza", "nobody@example.com")

        assert resolution.method == ResolutionMethod.NAME
        assert resolution.sites[0].site_id == "s1"
        assert resolution.matches[0].method == MatchMethod.FUZZY
        assert resolution.matches[0].score == pytest.approx(9 / 14)

    @pytest.mark.asyncio
    async def test_each_site_listed_once_and_sorted(self, engine):
        # "Joe's Pizza" is a substring of s3 and fuzzy-similar to it as well
        resolution = await engine.resolve_candidates("Joe's Pizza", None)

        ids = [s.site_id for s in resolution.sites]
        assert len(ids) == len(set(ids))
        scores = [m.score for m in resolution.matches]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.asyncio
    async def test_substring_only_match_scores_contains(self, site_factory):
        registry = InMemorySiteRegistry([site_factory("s9", "Crown")])
        engine = MatchingEngine(registry=registry, similarity_threshold=0.99)

        resolution = await engine.resolve_candidates("The Crown Inn Richmond", None)

        assert len(resolution.matches) == 1
        assert resolution.matches[0].method == MatchMethod.CONTAINS
        assert resolution.matches[0].score == CONTAINS_SCORE

    @pytest.mark.asyncio
    async def test_nothing_found_is_not_an_error(self, engine):
        resolution = await engine.resolve_candidates("Zzyzx Laundromat", "x@y.test")

        assert resolution.method == ResolutionMethod.NONE
        assert resolution.matches == ()

    @pytest.mark.asyncio
    async def test_blank_inputs(self, engine):
        resolution = await engine.resolve_candidates("  ", "")
        assert resolution.method == ResolutionMethod.NONE
