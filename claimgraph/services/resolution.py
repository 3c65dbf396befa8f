"""Maps resolved graph terms back to the drafts they will be published with.

Called by the publish consumer once graph terms are resolved; nothing inside the extraction pipeline uses it.

Core triples are resolved first. Nested edges are resolved afterwards because a nested
edge may point at a core triple, whose term id only exists once core resolution is done.
"""
import logging
from typing import Dict, List, Optional

from claimgraph.schemas.extraction import AtomRef, TermRef, TripleRef
from claimgraph.schemas.proposal import (
    STANCE_PREFIX,
    ApprovedProposal,
    DraftPost,
    DraftPublishPayload,
    NestedEndpoints,
    NestedProposalDraft,
    ProposalDraft,
    PublishedNestedTriple,
    PublishedTriple,
    ResolvedNestedTriple,
    ResolvedTriple,
)
from claimgraph.services.stable_key import normalize_atom_value

logger = logging.getLogger(__name__)


class DraftMappingError(RuntimeError):
    pass


class NestedResolutionError(RuntimeError):
    pass


def group_resolved_by_draft(
    resolved_by_index: List[Optional[ResolvedTriple]],
    resolved_nested: List[ResolvedNestedTriple],
    drafts: List[DraftPost],
    proposals: List[ProposalDraft],
    nested_proposals: List[NestedProposalDraft],
) -> List[DraftPublishPayload]:
    """Groups resolved core, stance and nested triples into one publish payload per draft.

    Args:
        resolved_by_index (List[Optional[ResolvedTriple]]): Resolved core and stance triples; None entries are skipped.
        resolved_nested (List[ResolvedNestedTriple]): Resolved nested edges.
        drafts (List[DraftPost]): Drafts in publish order.
        proposals (List[ProposalDraft]): Proposals, used to map triple stable keys to proposal ids.
        nested_proposals (List[NestedProposalDraft]): Nested proposals, used to find each edge's endpoints.

    Raises:
        DraftMappingError: If a core or stance triple does not belong to any draft.

    Returns:
        List[DraftPublishPayload]: One payload per draft in draft order, empty drafts included.
    """
    proposal_to_draft: Dict[str, str] = {}
    for draft in drafts:
        for pid in draft.proposal_ids:
            proposal_to_draft[pid] = draft.id

    key_to_proposal = {p.stable_key: p.id for p in proposals if p.stable_key}

    payloads: Dict[str, DraftPublishPayload] = {
        draft.id: DraftPublishPayload(draft_id=draft.id, body=draft.body, stance=draft.stance)
        for draft in drafts
    }

    for triple in resolved_by_index:
        if triple is None:
            continue

        lookup_id = triple.proposal_id
        if lookup_id.startswith(STANCE_PREFIX):
            lookup_id = lookup_id[len(STANCE_PREFIX):]

        draft_id = proposal_to_draft.get(lookup_id)
        if draft_id is None:
            raise DraftMappingError(f'Cannot assign triple "{triple.proposal_id}" to any draft: mapping missing')

        payloads[draft_id].triples.append(PublishedTriple(
            proposal_id=triple.proposal_id,
            triple_term_id=triple.triple_term_id,
            is_existing=triple.is_existing,
            role=triple.role,
        ))

    edges = {n.id: n for n in nested_proposals}
    for resolved in resolved_nested:
        draft_id = _nested_draft_id(edges.get(resolved.nested_proposal_id), key_to_proposal, proposal_to_draft)
        if draft_id is None and drafts:
            # Atom-only edges go with the first draft.
            draft_id = drafts[0].id
        if draft_id is None:
            logger.warning("No draft available for nested triple %s", resolved.nested_proposal_id)
            continue

        payloads[draft_id].nested_triples.append(PublishedNestedTriple(
            nested_proposal_id=resolved.nested_proposal_id,
            triple_term_id=resolved.triple_term_id,
            is_existing=resolved.is_existing,
        ))

    return [payloads[d.id] for d in drafts]


def _nested_draft_id(
    edge: Optional[NestedProposalDraft], key_to_proposal: Dict[str, str], proposal_to_draft: Dict[str, str]
) -> Optional[str]:
    if edge is None:
        return None
    for ref in (edge.subject, edge.object):
        if isinstance(ref, TripleRef):
            pid = key_to_proposal.get(ref.triple_key)
            if pid and pid in proposal_to_draft:
                return proposal_to_draft[pid]
    return None


def build_resolved_triple_map(
    resolved_by_index: List[Optional[ResolvedTriple]], approved: List[ApprovedProposal]
) -> Dict[str, str]:
    """Maps each approved proposal's stable key to its resolved triple term id (index-aligned)."""
    out: Dict[str, str] = {}
    for entry, resolved in zip(approved, resolved_by_index):
        if resolved is not None and entry.proposal.stable_key:
            out[entry.proposal.stable_key] = resolved.triple_term_id
    return out


def collect_nested_atom_labels(nested: List[NestedProposalDraft]) -> List[str]:
    """Labels that must exist as atoms before nested edges can be resolved: predicates and atom endpoints."""
    labels: Dict[str, None] = {}
    for edge in nested:
        if edge.predicate:
            labels[edge.predicate] = None
        for ref in (edge.subject, edge.object):
            if isinstance(ref, AtomRef) and ref.label:
                labels[ref.label] = None
    return list(labels)


def _resolve_ref(ref: TermRef, atom_map: Dict[str, str], resolved_triple_map: Dict[str, str]) -> Optional[str]:
    if isinstance(ref, AtomRef):
        return atom_map.get(normalize_atom_value(ref.label))
    if isinstance(ref, TripleRef):
        return resolved_triple_map.get(ref.triple_key)
    raise TypeError(f"Unknown term reference: {ref!r}")


def resolve_nested_endpoints(
    nested: List[NestedProposalDraft], atom_map: Dict[str, str], resolved_triple_map: Dict[str, str]
) -> List[NestedEndpoints]:
    """Resolves the term ids of every nested edge.

    Args:
        nested (List[NestedProposalDraft]): Nested proposals to resolve.
        atom_map (Dict[str, str]): Normalized atom label to atom term id.
        resolved_triple_map (Dict[str, str]): Core triple stable key to triple term id, from core resolution.

    Raises:
        NestedResolutionError: If any endpoint or the predicate cannot be resolved.

    Returns:
        List[NestedEndpoints]: Term ids per nested edge, in input order.
    """
    out = []
    for edge in nested:
        subject_id = _resolve_ref(edge.subject, atom_map, resolved_triple_map)
        predicate_id = atom_map.get(normalize_atom_value(edge.predicate))
        object_id = _resolve_ref(edge.object, atom_map, resolved_triple_map)

        if not subject_id or not predicate_id or not object_id:
            missing = [
                name for name, value in (("subject", subject_id), ("predicate", predicate_id), ("object", object_id))
                if not value
            ]
            raise NestedResolutionError(
                f'Unable to resolve {", ".join(missing)} for context link "{edge.predicate}"'
            )

        out.append(NestedEndpoints(
            nested_proposal_id=edge.id,
            subject_term_id=subject_id,
            predicate_term_id=predicate_id,
            object_term_id=object_id,
        ))
    return out
