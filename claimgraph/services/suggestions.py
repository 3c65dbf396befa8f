"""Filters external term search hits into atom and triple suggestions.

Called by the term search consumer behind the proposal editor; the extraction pipeline does not use it.
"""
import logging
from typing import Any, Dict, List, Optional

from claimgraph.schemas.proposal import AtomSuggestion, TripleSuggestion

logger = logging.getLogger(__name__)

HEX_PREFIX = "0x"


def _clean_label(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def is_displayable_label(label: str) -> bool:
    """Raw hex payloads are never shown as labels."""
    return bool(label) and not label.lower().startswith(HEX_PREFIX)


def filter_atom_suggestions(hits: List[Dict[str, Any]], source: str = "global") -> List[AtomSuggestion]:
    """Turns raw atom search hits into suggestions, dropping hits without a readable label.

    The term id is never used as a fallback label.
    """
    out = []
    for hit in hits:
        label = _clean_label(hit.get("label"))
        term_id = hit.get("term_id")
        if not is_displayable_label(label) or not isinstance(term_id, str) or not term_id:
            continue
        out.append(AtomSuggestion(id=term_id, label=label, source=source))

    if len(out) < len(hits):
        logger.debug("Dropped %d/%d atom suggestions without a readable label", len(hits) - len(out), len(hits))
    return out


def _component(hit: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = hit.get(name)
    return value if isinstance(value, dict) else {}


def _optional_id(component: Dict[str, Any]) -> Optional[str]:
    value = component.get("term_id")
    return value if isinstance(value, str) else None


def filter_triple_suggestions(hits: List[Dict[str, Any]], source: str = "global") -> List[TripleSuggestion]:
    out = []
    for hit in hits:
        term_id = hit.get("term_id")
        subject = _component(hit, "subject")
        predicate = _component(hit, "predicate")
        obj = _component(hit, "object")
        labels = [_clean_label(c.get("label")) for c in (subject, predicate, obj)]

        if not isinstance(term_id, str) or not term_id:
            continue
        if not all(is_displayable_label(label) for label in labels):
            continue

        out.append(TripleSuggestion(
            id=term_id,
            subject=labels[0],
            predicate=labels[1],
            object=labels[2],
            subject_id=_optional_id(subject),
            predicate_id=_optional_id(predicate),
            object_id=_optional_id(obj),
            source=source,
        ))
    return out
