"""Content-addressed keys for atoms, triples and nested edges.

Keys are SHA-256 digests over NFKC-normalized, trimmed, whitespace-collapsed,
lower-cased text. Two items with the same normalized content always share a key,
which is the only deduplication mechanism during extraction.
"""
import hashlib
import re
import unicodedata

from claimgraph.schemas.extraction import AtomRef, FlatTriple, KeyedTriple, TermRef, TripleRef


def normalize_key_part(s: str) -> str:
    text = unicodedata.normalize("NFKC", s or "")
    return re.sub(r"\s+", " ", text.strip()).lower()


def normalize_atom_value(s: str) -> str:
    return re.sub(r"\s+", " ", (s or "").strip())


def _hash_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def atom_key_from_label(label: str) -> str:
    return _hash_text(f"atom:{normalize_key_part(label)}")


def term_ref_id(ref: TermRef) -> str:
    if isinstance(ref, AtomRef):
        return f"atom:{ref.atom_key}"
    if isinstance(ref, TripleRef):
        return f"triple:{ref.triple_key}"
    raise TypeError(f"Unknown term reference: {ref!r}")


def term_atom(value: str) -> AtomRef:
    label = normalize_atom_value(value)
    return AtomRef(atom_key=atom_key_from_label(label), label=label)


def term_triple(triple: KeyedTriple) -> TripleRef:
    return TripleRef(
        triple_key=triple.stable_key,
        label=f"{triple.subject} · {triple.predicate} · {triple.object}",
    )


def stable_key_from_triple(triple: FlatTriple) -> str:
    s = term_ref_id(term_atom(triple.subject))
    p = term_ref_id(term_atom(triple.predicate))
    o = term_ref_id(term_atom(triple.object))
    return _hash_text(f"triple:{s}|{p}|{o}")


def stable_key_from_edge(subject: TermRef, predicate: str, obj: TermRef) -> str:
    s = term_ref_id(subject)
    p = term_ref_id(term_atom(predicate))
    o = term_ref_id(obj)
    return _hash_text(f"edge:{s}|{p}|{o}")


def keyed_triple(triple: FlatTriple) -> KeyedTriple:
    return KeyedTriple(
        subject=triple.subject,
        predicate=triple.predicate,
        object=triple.object,
        stable_key=stable_key_from_triple(triple),
    )
