import re

DECOMPOSE_MARKERS = re.compile(
    r"\b(but|however|although|though|yet|because|therefore|so|if|unless|when|whenever|and)\b|,\s*which\b",
    re.IGNORECASE,
)
RELATION_MARKERS = re.compile(
    r"\b(but|however|although|because|therefore|so|if|unless|when|and|or)\b|\b(could|may|might|will)\s+lead\s+to\b",
    re.IGNORECASE,
)


def needs_decomposition(sentence: str) -> bool:
    """True when the sentence has a coordinating/discourse marker or a ", which" clause."""
    return bool(DECOMPOSE_MARKERS.search(sentence or ""))


def needs_relation_linking(sentence: str) -> bool:
    """True when the sentence has a discourse marker or a causal modal phrase."""
    return bool(RELATION_MARKERS.search(sentence or ""))
