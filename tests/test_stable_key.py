import pytest

from claimgraph.schemas.extraction import AtomRef, FlatTriple, TripleRef
from claimgraph.services.stable_key import (
    atom_key_from_label,
    keyed_triple,
    normalize_key_part,
    stable_key_from_edge,
    stable_key_from_triple,
    term_atom,
    term_ref_id,
    term_triple,
)


class TestNormalization:
    """Tests for key normalization."""

    def test_collapses_and_lowercases(self):
        assert normalize_key_part("  Nuclear \t  ENERGY ") == "nuclear energy"

    def test_nfkc(self):
        assert normalize_key_part("ﬁsh") == "fish"

    def test_atom_key_ignores_case_and_spacing(self):
        assert atom_key_from_label("Nuclear energy") == atom_key_from_label("  nuclear   Energy")


class TestTripleKeys:
    """Tests for content-addressed triple and edge keys."""

    def test_same_content_same_key(self):
        a = FlatTriple(subject="Nuclear energy", predicate="is", object="safe")
        b = FlatTriple(subject=" nuclear  ENERGY", predicate="IS", object="Safe ")

        assert stable_key_from_triple(a) == stable_key_from_triple(b)

    def test_order_sensitive(self):
        a = FlatTriple(subject="coal", predicate="is worse than", object="gas")
        b = FlatTriple(subject="gas", predicate="is worse than", object="coal")

        assert stable_key_from_triple(a) != stable_key_from_triple(b)

    def test_key_is_sha256_hex(self):
        key = stable_key_from_triple(FlatTriple(subject="a", predicate="b", object="c"))

        assert len(key) == 64
        int(key, 16)

    def test_edge_never_collides_with_triple(self):
        subject, obj = term_atom("a"), term_atom("c")

        assert stable_key_from_edge(subject, "b", obj) != stable_key_from_triple(
            FlatTriple(subject="a", predicate="b", object="c")
        )

    def test_keyed_triple(self):
        flat = FlatTriple(subject="Nuclear energy", predicate="is", object="safe")
        keyed = keyed_triple(flat)

        assert keyed.stable_key == stable_key_from_triple(flat)
        assert keyed.subject == "Nuclear energy"


class TestTermRefs:
    """Tests for TermRef helpers."""

    def test_term_atom_normalizes_label(self):
        ref = term_atom("  children   under 16 ")

        assert ref == AtomRef(atom_key=atom_key_from_label("children under 16"), label="children under 16")

    def test_term_triple_label(self):
        keyed = keyed_triple(FlatTriple(subject="Nuclear energy", predicate="is", object="safe"))
        ref = term_triple(keyed)

        assert ref.triple_key == keyed.stable_key
        assert ref.label == "Nuclear energy · is · safe"

    def test_term_ref_id(self):
        assert term_ref_id(AtomRef(atom_key="k1", label="x")) == "atom:k1"
        assert term_ref_id(TripleRef(triple_key="k2")) == "triple:k2"

    def test_term_ref_id_rejects_unknown(self):
        with pytest.raises(TypeError):
            term_ref_id("atom:k1")
