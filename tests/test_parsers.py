import pytest

from claimgraph.schemas.extraction import FlatTriple
from claimgraph.services.markers import needs_decomposition, needs_relation_linking
from claimgraph.services.parsers import (
    parse_conditional,
    parse_meta_claim,
    try_decompose_subject,
    try_decompose_value,
)


class TestMarkers:
    """Tests for the marker gates that skip unnecessary model calls."""

    @pytest.mark.parametrize("sentence", [
        "Solar is cheap but intermittent.",
        "Prices rose because demand grew.",
        "Open source increases transparency and public trust.",
        "Taxes rose, which hurt consumers.",
        "WHEN it rains, it pours.",
    ])
    def test_needs_decomposition(self, sentence):
        assert needs_decomposition(sentence)

    def test_no_marker_no_decomposition(self):
        assert not needs_decomposition("Social media should be banned for children under 16.")

    def test_marker_must_be_whole_word(self):
        assert not needs_decomposition("Android phones sell well.")

    def test_relation_linking_modal_lead_to(self):
        assert needs_relation_linking("Automation could lead to job losses.")

    def test_relation_linking_or(self):
        assert needs_relation_linking("We tax carbon or we subsidize solar.")
        assert not needs_decomposition("We tax carbon or we subsidize solar.")

    def test_no_relation_marker(self):
        assert not needs_relation_linking("Nuclear energy is safe.")


class TestParseMetaClaim:
    """Tests for attribution detection."""

    def test_reporting_verb(self):
        meta = parse_meta_claim("Researchers found that remote work increases productivity.")

        assert meta.source == "Researchers"
        assert meta.verb == "found"
        assert meta.proposition == "remote work increases productivity"

    def test_verb_is_case_insensitive(self):
        assert parse_meta_claim("The IPCC Reported that emissions are rising.") is not None

    def test_other_verb(self):
        assert parse_meta_claim("He knows that emissions are rising.") is None

    def test_no_that(self):
        assert parse_meta_claim("Researchers found evidence.") is None


class TestParseConditional:
    """Tests for if/unless/when parsing."""

    def test_leading_condition(self):
        cond = parse_conditional("If the government raises taxes, consumers spend less money.")

        assert cond.keyword == "if"
        assert cond.condition_text == "the government raises taxes"
        assert cond.main_text == "consumers spend less money"

    def test_trailing_condition(self):
        cond = parse_conditional("Crops fail when rain is scarce.")

        assert cond.keyword == "when"
        assert cond.condition_text == "rain is scarce"
        assert cond.main_text == "Crops fail"

    def test_keyword_is_lower_cased(self):
        assert parse_conditional("Unless prices drop, demand stays low.").keyword == "unless"

    def test_no_conditional(self):
        assert parse_conditional("Nuclear energy is safe.") is None


class TestDecomposition:
    """Tests for modifier value and subject decomposition."""

    def test_value_with_preposition(self):
        assert try_decompose_value("children under 16") == FlatTriple(
            subject="children", predicate="under", object="16"
        )

    def test_short_value(self):
        assert try_decompose_value("under 16") is None

    def test_value_without_preposition(self):
        assert try_decompose_value("very large numbers") is None

    def test_subject(self):
        core = FlatTriple(subject="Carbon emissions from aviation", predicate="are", object="rising")
        decomposition = try_decompose_subject(core)

        assert decomposition.prep == "from"
        assert decomposition.sub_triple == FlatTriple(
            subject="Carbon emissions", predicate="from", object="aviation"
        )
        assert core.subject == "Carbon emissions from aviation"

    def test_simple_subject(self):
        assert try_decompose_subject(FlatTriple(subject="Nuclear energy", predicate="is", object="safe")) is None
