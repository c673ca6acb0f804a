"""Tests for multi-tier entity resolution."""

import pytest

from vaultlink.config import ALIAS_MATCH_CONFIDENCE, MAX_SUGGESTIONS, ResolverConfig
from vaultlink.models import KnownEntity, MatchType
from vaultlink.resolver import EntityResolver, ResolverNotInitializedError


@pytest.fixture
def resolver(known_people) -> EntityResolver:
    resolver = EntityResolver()
    resolver.load_entities(known_people)
    return resolver


class TestTiers:
    """Exact, alias, fuzzy and new decisions."""

    def test_exact_match_is_case_and_space_insensitive(self, resolver):
        decision = resolver.resolve("  clare   ATTWELL", "Person")

        assert decision.match_type is MatchType.EXACT
        assert decision.confidence == 1.0
        assert decision.matched_target == "People/Clare Attwell"
        assert decision.suggestions == []
        assert decision.is_resolved

    def test_alias_match(self, resolver):
        decision = resolver.resolve("C. Attwell", "Person")

        assert decision.match_type is MatchType.ALIAS
        assert decision.confidence == ALIAS_MATCH_CONFIDENCE
        assert decision.matched_target == "People/Clare Attwell"

    def test_exact_wins_over_alias_of_another_entity(self):
        resolver = EntityResolver()
        resolver.load_entities(
            [
                KnownEntity(name="DFO", type="Organization", path="Organizations/DFO"),
                KnownEntity(
                    name="Fisheries and Oceans Canada",
                    type="Organization",
                    path="Organizations/Fisheries and Oceans Canada",
                    aliases=["DFO"],
                ),
            ]
        )

        decision = resolver.resolve("DFO", "Organization")

        assert decision.match_type is MatchType.EXACT
        assert decision.matched_target == "Organizations/DFO"

    def test_fuzzy_match_on_misspelling(self, resolver):
        decision = resolver.resolve("Clare Atwell", "Person")

        assert decision.match_type is MatchType.FUZZY
        assert decision.matched_target == "People/Clare Attwell"
        assert decision.confidence >= resolver.config.threshold_for("Person")
        assert decision.suggestions[0].path == "People/Clare Attwell"

    def test_fuzzy_considers_aliases(self):
        resolver = EntityResolver()
        resolver.load_entities(
            [KnownEntity(name="Robert Tables", type="Person", path="People/Bobby", aliases=["Bobby Tables"])]
        )

        decision = resolver.resolve("Bobby Table", "Person")

        assert decision.match_type is MatchType.FUZZY
        assert decision.matched_target == "People/Bobby"

    def test_unrelated_name_is_new(self, resolver):
        decision = resolver.resolve("Zbigniew Quorx", "Person")

        assert decision.match_type is MatchType.NEW
        assert decision.confidence == 0.0
        assert decision.matched_target is None
        assert not decision.is_resolved

    def test_empty_corpus_is_new_without_suggestions(self):
        resolver = EntityResolver()
        resolver.load_entities([])

        decision = resolver.resolve("Anyone", "Person")

        assert decision.match_type is MatchType.NEW
        assert decision.suggestions == []


class TestFuzzyScoring:
    """Candidate pools, thresholds and suggestions."""

    def test_unknown_type_searches_whole_corpus(self, resolver):
        # No Researcher entities exist, so every entity is a candidate and the
        # global confidence floor is the threshold.
        decision = resolver.resolve("Clare Atwel", "Researcher")

        assert decision.match_type is MatchType.FUZZY
        assert decision.matched_target == "People/Clare Attwell"

    def test_same_type_pool_excludes_other_types(self, resolver):
        decision = resolver.resolve("Salmon Habitats", "Person")

        # The only Person is Clare Attwell; the Concept is never compared
        assert all(s.path != "Concepts/Salmon Habitat" for s in decision.suggestions)

    def test_threshold_is_per_type(self, known_people):
        strict = EntityResolver(ResolverConfig(thresholds={"Person": 1.0}))
        strict.load_entities(known_people)

        decision = strict.resolve("Clare Atwell", "Person")

        assert decision.match_type is MatchType.NEW
        assert decision.suggestions[0].path == "People/Clare Attwell"

    def test_suggestions_sorted_and_capped(self):
        resolver = EntityResolver()
        resolver.load_entities(
            [KnownEntity(name=f"Alex Example {i}", type="Concept", path=f"Concepts/Alex {i}") for i in range(8)]
        )

        decision = resolver.resolve("Alex Example", "Concept")

        assert len(decision.suggestions) == MAX_SUGGESTIONS
        scores = [s.confidence for s in decision.suggestions]
        assert scores == sorted(scores, reverse=True)
        assert all(s.confidence >= resolver.config.min_confidence for s in decision.suggestions)

    def test_tie_keeps_first_candidate(self):
        resolver = EntityResolver()
        resolver.load_entities(
            [
                KnownEntity(name="Sam Jones", type="Person", path="People/Sam Jones"),
                KnownEntity(name="Sam Jones", type="Person", path="Archive/Sam Jones"),
            ]
        )

        decision = resolver.resolve("Sam Jone", "Person")

        assert decision.match_type is MatchType.FUZZY
        assert decision.matched_target == "People/Sam Jones"


class TestLifecycle:
    """Loading, reloading and batch resolution."""

    def test_resolve_before_load_raises(self):
        resolver = EntityResolver()

        assert not resolver.is_loaded
        with pytest.raises(ResolverNotInitializedError):
            resolver.resolve("Clare Attwell", "Person")

    def test_reload_replaces_index(self, resolver):
        assert resolver.entity_count == 3

        resolver.load_entities([KnownEntity(name="Ada Lovelace", type="Person", path="People/Ada")])

        assert resolver.entity_count == 1
        assert resolver.resolve("Clare Attwell", "Person").match_type is not MatchType.EXACT
        assert resolver.resolve("Ada Lovelace", "Person").matched_target == "People/Ada"

    def test_resolve_all_keys_by_name_last_wins(self, resolver):
        results = resolver.resolve_all(
            [
                {"name": "Clare Attwell", "type": "Person"},
                {"name": "DFO", "type": "Organization"},
                {"name": "Clare Attwell", "type": "Concept"},
            ]
        )

        assert set(results) == {"Clare Attwell", "DFO"}
        assert results["DFO"].match_type is MatchType.ALIAS
        assert results["Clare Attwell"].queried_type == "Concept"


class TestSuggestedPath:
    """Tests for get_suggested_path()."""

    @pytest.mark.parametrize(
        ("name", "entity_type", "expected"),
        [
            ("Clare Attwell", "Person", "People/Clare Attwell"),
            ("AT&T: Labs", "Organization", "Organizations/AT&T Labs"),
            ("Fraser  River", "Location", "Locations/Fraser River"),
            ("Salmon/Trout?", "Concept", "Concepts/SalmonTrout"),
            ("Board Sync", "Meeting", "Concepts/Board Sync"),
        ],
    )
    def test_folder_and_sanitizing(self, resolver, name, entity_type, expected):
        assert resolver.get_suggested_path(name, entity_type) == expected
