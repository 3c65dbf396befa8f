import re
from typing import NamedTuple, Optional

from claimgraph.schemas.extraction import FlatTriple

REPORTING_VERBS = frozenset({
    "said", "says",
    "suggest", "suggests", "suggested",
    "find", "finds", "found",
    "report", "reports", "reported",
    "estimate", "estimates", "estimated",
    "predict", "predicts", "predicted",
    "argue", "argues", "argued",
    "promise", "promises", "promised",
})

META_RE = re.compile(r"^(.+?)\s+([a-z]+)\s+that\s+(.+)$", re.IGNORECASE | re.DOTALL)
LEADING_CONDITIONAL_RE = re.compile(r"^(if|unless|when)\s+(.+?),\s+(.+)$", re.IGNORECASE | re.DOTALL)
TRAILING_CONDITIONAL_RE = re.compile(r"^(.+?)\s+(if|unless|when)\s+(.+)$", re.IGNORECASE | re.DOTALL)
DECOMPOSE_PREPS_RE = re.compile(
    r"^(.+?)\s+(under|over|above|below|before|after|between|within|of|for|in|at|from|to|with|without|against)\s+(.+)$",
    re.IGNORECASE | re.DOTALL,
)


class Conditional(NamedTuple):
    keyword: str
    condition_text: str
    main_text: str


class MetaClaim(NamedTuple):
    source: str
    verb: str
    proposition: str


class SubjectDecomposition(NamedTuple):
    prep: str
    sub_triple: FlatTriple


def _strip_period(text: str) -> str:
    s = (text or "").strip()
    return s[:-1] if s.endswith(".") else s


def parse_meta_claim(claim: str) -> Optional[MetaClaim]:
    """Detects "SOURCE VERB that PROPOSITION" for a fixed set of reporting verbs."""
    match = META_RE.match(_strip_period(claim))
    if not match:
        return None

    source, verb, proposition = (g.strip() for g in match.groups())
    if verb.lower() not in REPORTING_VERBS or not proposition:
        return None
    return MetaClaim(source=source, verb=verb, proposition=proposition)


def parse_conditional(text: str) -> Optional[Conditional]:
    """Detects "If COND, MAIN" and "MAIN if COND" (also unless/when)."""
    s = _strip_period(text)

    match = LEADING_CONDITIONAL_RE.match(s)
    if match:
        keyword, cond, main = match.groups()
        return Conditional(keyword.lower(), cond.strip(), main.strip())

    match = TRAILING_CONDITIONAL_RE.match(s)
    if match:
        main, keyword, cond = match.groups()
        return Conditional(keyword.lower(), cond.strip(), main.strip())

    return None


def _split_on_preposition(value: str) -> Optional[FlatTriple]:
    trimmed = (value or "").strip()
    if len(trimmed.split()) < 3:
        return None

    match = DECOMPOSE_PREPS_RE.match(trimmed)
    if not match:
        return None

    subject, prep, obj = (g.strip() for g in match.groups())
    if not subject or not prep or not obj:
        return None
    return FlatTriple(subject=subject, predicate=prep, object=obj)


def try_decompose_value(value: str) -> Optional[FlatTriple]:
    """Splits a modifier value like "children under 16" into a sub-triple."""
    return _split_on_preposition(value)


def try_decompose_subject(core: FlatTriple) -> Optional[SubjectDecomposition]:
    """Splits a compound subject like "Carbon emissions from aviation" into a sub-triple."""
    sub_triple = _split_on_preposition(core.subject)
    if sub_triple is None:
        return None
    return SubjectDecomposition(prep=sub_triple.predicate, sub_triple=sub_triple)
