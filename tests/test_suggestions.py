from claimgraph.services.suggestions import filter_atom_suggestions, filter_triple_suggestions, is_displayable_label


def component(label, term_id=None):
    return {"label": label, "term_id": term_id}


class TestAtomSuggestions:
    """Tests for atom search hit filtering."""

    def test_hex_and_empty_labels_are_dropped(self):
        hits = [
            {"term_id": "0x1", "label": " Nuclear energy "},
            {"term_id": "0x2", "label": "0xdeadbeef"},
            {"term_id": "0x5", "label": "0XDEADBEEF"},
            {"term_id": "0x3", "label": ""},
            {"term_id": "0x4"},
            {"term_id": None, "label": "Coal"},
        ]
        suggestions = filter_atom_suggestions(hits)

        assert [(s.id, s.label, s.source) for s in suggestions] == [("0x1", "Nuclear energy", "global")]

    def test_source_is_passed_through(self):
        assert filter_atom_suggestions([{"term_id": "0x1", "label": "Coal"}], source="mine")[0].source == "mine"

    def test_is_displayable_label(self):
        assert is_displayable_label("Coal")
        assert not is_displayable_label("0xabc")
        assert not is_displayable_label("0XABC")
        assert not is_displayable_label("")


class TestTripleSuggestions:
    """Tests for triple search hit filtering."""

    def test_keeps_readable_triples(self):
        hits = [{
            "term_id": "0xt",
            "subject": component("Coal", "0xs"),
            "predicate": component("is"),
            "object": component("dirty", "0xo"),
        }]
        [suggestion] = filter_triple_suggestions(hits)

        assert (suggestion.subject, suggestion.predicate, suggestion.object) == ("Coal", "is", "dirty")
        assert (suggestion.subject_id, suggestion.predicate_id, suggestion.object_id) == ("0xs", None, "0xo")

    def test_drops_unreadable_triples(self):
        hits = [
            {"term_id": "0xt1", "subject": component("Coal"), "predicate": component("0x99"), "object": component("dirty")},
            {"term_id": "0xt2", "subject": component("Coal"), "predicate": component("is")},
            {"subject": component("Coal"), "predicate": component("is"), "object": component("dirty")},
        ]

        assert filter_triple_suggestions(hits) == []
