import logging
import uuid
from typing import Dict, List, Optional, Tuple

from claimgraph.schemas.extraction import ExtractionResult, NestedEdge, Stance
from claimgraph.schemas.proposal import (
    MANUAL_PREFIX,
    ApprovedProposal,
    DraftPost,
    NestedProposalDraft,
    NestedProposalStatus,
    ProposalDraft,
    ProposalSeed,
    ProposalStatus,
    SavedSnapshot,
    TripleField,
    TripleRole,
)
from claimgraph.services.drafts import (
    check_partition,
    create_initial_draft,
    find_draft_index,
    merge_drafts,
    normalize_main,
    split_into_drafts,
)
from claimgraph.services.stable_key import normalize_atom_value

logger = logging.getLogger(__name__)

TERM_ID_FIELDS: Dict[str, str] = {
    "s_text": "subject_term_id",
    "p_text": "predicate_term_id",
    "o_text": "object_term_id",
}

ProposalsAndDrafts = Tuple[List[ProposalDraft], List[DraftPost]]


class ProposalValidationError(ValueError):
    pass


# --- Seeding from extraction output ---

def _seed_key(s_text: str, p_text: str, o_text: str) -> str:
    return "|".join(normalize_atom_value(t).lower() for t in (s_text, p_text, o_text))


def collect_proposal_seeds(result: ExtractionResult) -> List[ProposalSeed]:
    """Collects one proposal seed per distinct triple text, in claim order.

    When the same triple appears more than once, a misaligned stance verdict wins over
    an aligned one.
    """
    seen: Dict[str, ProposalSeed] = {}
    seeds: List[ProposalSeed] = []

    for segment_index, segment in enumerate(result.per_segment):
        for claim in segment.claims:
            if claim.triple is None:
                continue

            s_text = normalize_atom_value(claim.triple.subject)
            p_text = normalize_atom_value(claim.triple.predicate)
            o_text = normalize_atom_value(claim.triple.object)
            if not s_text or not p_text or not o_text:
                continue

            key = _seed_key(s_text, p_text, o_text)
            existing = seen.get(key)
            if existing is not None:
                if claim.stance_aligned is False:
                    if existing.stance_aligned is not False:
                        existing.suggested_stance = claim.suggested_stance
                        existing.stance_aligned = False
                        existing.stance_reason = claim.stance_reason
                    else:
                        existing.stance_reason = existing.stance_reason or claim.stance_reason
                        existing.suggested_stance = existing.suggested_stance or claim.suggested_stance
                continue

            seed = ProposalSeed(
                s_text=s_text,
                p_text=p_text,
                o_text=o_text,
                key=key,
                stable_key=claim.triple.stable_key,
                suggested_stance=claim.suggested_stance,
                stance_aligned=claim.stance_aligned,
                stance_reason=claim.stance_reason,
                segment_index=segment_index,
                sentence_text=segment.sentence or "",
            )
            seen[key] = seed
            seeds.append(seed)

    return seeds


def collect_nested_seeds(nested: List[NestedEdge]) -> List[NestedEdge]:
    seen = set()
    out = []
    for edge in nested:
        if edge.stable_key in seen:
            continue
        seen.add(edge.stable_key)
        out.append(edge)
    return out


def build_proposal_drafts(seeds: List[ProposalSeed]) -> List[ProposalDraft]:
    return [
        ProposalDraft(
            id=f"proposal-{i}",
            stable_key=seed.stable_key or "",
            s_text=seed.s_text,
            p_text=seed.p_text,
            o_text=seed.o_text,
            status=ProposalStatus.APPROVED,
            suggested_stance=seed.suggested_stance,
            stance_aligned=seed.stance_aligned,
            stance_reason=seed.stance_reason,
            sentence_text=seed.sentence_text,
            saved=SavedSnapshot(s_text=seed.s_text, p_text=seed.p_text, o_text=seed.o_text),
        )
        for i, seed in enumerate(seeds)
    ]


def build_nested_drafts(seeds: List[NestedEdge]) -> List[NestedProposalDraft]:
    return [
        NestedProposalDraft(
            id=f"nested-{i}",
            edge_kind=edge.kind,
            predicate=edge.predicate,
            subject=edge.subject,
            object=edge.object,
            stable_key=edge.stable_key,
        )
        for i, edge in enumerate(seeds)
    ]


# --- Pure transitions ---

def _find(proposals: List[ProposalDraft], proposal_id: str) -> Optional[ProposalDraft]:
    return next((p for p in proposals if p.id == proposal_id), None)


def _replace(proposals: List[ProposalDraft], proposal_id: str, **changes) -> List[ProposalDraft]:
    return [p.model_copy(update=changes) if p.id == proposal_id else p for p in proposals]


def update_proposal_field(
    proposals: List[ProposalDraft], proposal_id: str, field: TripleField, value: str
) -> List[ProposalDraft]:
    """Edits one triple field. Any term locked on that field is released."""
    return _replace(proposals, proposal_id, **{field: value, TERM_ID_FIELDS[field]: None})


def lock_proposal_term(
    proposals: List[ProposalDraft], proposal_id: str, field: TripleField, term_id: str, label: str
) -> List[ProposalDraft]:
    return _replace(proposals, proposal_id, **{field: label, TERM_ID_FIELDS[field]: term_id})


def unlock_proposal_term(proposals: List[ProposalDraft], proposal_id: str, field: TripleField) -> List[ProposalDraft]:
    return _replace(proposals, proposal_id, **{TERM_ID_FIELDS[field]: None})


def set_matched_triple(
    proposals: List[ProposalDraft], proposal_id: str, term_id: Optional[str]
) -> List[ProposalDraft]:
    return _replace(proposals, proposal_id, matched_triple_term_id=term_id)


def save_proposal(
    proposals: List[ProposalDraft], drafts: List[DraftPost], proposal_id: str, new_id: str
) -> ProposalsAndDrafts:
    """Saves a proposal.

    A manual proposal is validated and replaced by an approved proposal under ``new_id``,
    and every draft reference is rewritten. An extracted proposal has its current fields
    snapshotted when dirty.

    Raises:
        ProposalValidationError: If a manual proposal has an empty subject, predicate or object.
    """
    proposal = _find(proposals, proposal_id)
    if proposal is None:
        return proposals, drafts

    if not proposal.is_manual:
        if not proposal.is_dirty:
            return proposals, drafts
        return _replace(proposals, proposal_id, saved=proposal.snapshot()), drafts

    s_text = normalize_atom_value(proposal.s_text)
    p_text = normalize_atom_value(proposal.p_text)
    o_text = normalize_atom_value(proposal.o_text)
    missing = [name for name, text in (("subject", s_text), ("predicate", p_text), ("object", o_text)) if not text]
    if missing:
        raise ProposalValidationError(f"Fill {', '.join(missing)} before saving")

    saved = ProposalDraft(
        id=new_id,
        s_text=s_text,
        p_text=p_text,
        o_text=o_text,
        status=ProposalStatus.APPROVED,
        subject_term_id=proposal.subject_term_id,
        predicate_term_id=proposal.predicate_term_id,
        object_term_id=proposal.object_term_id,
    )
    saved = saved.model_copy(update={"saved": saved.snapshot()})

    next_proposals = [saved if p.id == proposal_id else p for p in proposals]
    next_drafts = [
        d.model_copy(update={
            "proposal_ids": [new_id if pid == proposal_id else pid for pid in d.proposal_ids],
            "main_proposal_id": new_id if d.main_proposal_id == proposal_id else d.main_proposal_id,
        })
        for d in drafts
    ]
    return next_proposals, next_drafts


def reject_proposal(
    proposals: List[ProposalDraft], drafts: List[DraftPost], proposal_id: str
) -> ProposalsAndDrafts:
    """Rejects a proposal.

    Manual proposals are deleted. Extracted proposals are marked rejected. In either case,
    when it was its draft's main, the next non-rejected proposal of that draft becomes
    main, or None. Other drafts' mains are left alone.
    """
    proposal = _find(proposals, proposal_id)
    if proposal is None:
        return proposals, drafts

    if proposal.is_manual:
        next_proposals = [p for p in proposals if p.id != proposal_id]
    else:
        next_proposals = _replace(proposals, proposal_id, status=ProposalStatus.REJECTED)
    status_by_id = {p.id: p.status for p in next_proposals}

    next_drafts = []
    for draft in drafts:
        update = {}
        if proposal.is_manual and proposal_id in draft.proposal_ids:
            update["proposal_ids"] = [pid for pid in draft.proposal_ids if pid != proposal_id]
        # Main only moves off the rejected proposal, never onto a rejected one.
        if draft.main_proposal_id == proposal_id:
            update["main_proposal_id"] = next(
                (
                    pid for pid in draft.proposal_ids
                    if pid != proposal_id and status_by_id.get(pid) not in (None, ProposalStatus.REJECTED)
                ),
                None,
            )
        next_drafts.append(draft.model_copy(update=update) if update else draft)
    return next_proposals, next_drafts


def select_main(proposals: List[ProposalDraft], drafts: List[DraftPost], proposal_id: str) -> List[DraftPost]:
    proposal = _find(proposals, proposal_id)
    if proposal is None or proposal.status == ProposalStatus.REJECTED or proposal.is_manual:
        return drafts

    draft_index = find_draft_index(drafts, proposal_id)
    if draft_index == -1 or drafts[draft_index].main_proposal_id == proposal_id:
        return drafts

    draft = drafts[draft_index]
    update = {"main_proposal_id": proposal_id}
    # Only an untouched body follows the main proposal.
    if draft.body == draft.body_default:
        body_default = proposal.sentence_text or draft.body_default
        update["body"] = body_default
        update["body_default"] = body_default

    next_drafts = list(drafts)
    next_drafts[draft_index] = draft.model_copy(update=update)
    return next_drafts


def add_manual_proposal(
    proposals: List[ProposalDraft],
    drafts: List[DraftPost],
    new_id: str,
    target_draft_id: Optional[str] = None,
) -> ProposalsAndDrafts:
    if not new_id.startswith(MANUAL_PREFIX):
        raise ProposalValidationError(f"Manual proposal ids must start with {MANUAL_PREFIX!r}")

    next_proposals = proposals + [ProposalDraft(id=new_id)]

    target_found = target_draft_id is not None and any(d.id == target_draft_id for d in drafts)
    next_drafts = [
        d.model_copy(update={"proposal_ids": d.proposal_ids + [new_id]})
        if (d.id == target_draft_id if target_found else i == 0)
        else d
        for i, d in enumerate(drafts)
    ]
    return next_proposals, next_drafts


def _set_nested_status(
    nested: List[NestedProposalDraft], nested_id: str, status: NestedProposalStatus
) -> List[NestedProposalDraft]:
    return [n.model_copy(update={"status": status}) if n.id == nested_id else n for n in nested]


def reject_nested(nested: List[NestedProposalDraft], nested_id: str) -> List[NestedProposalDraft]:
    return _set_nested_status(nested, nested_id, NestedProposalStatus.REJECTED)


def restore_nested(nested: List[NestedProposalDraft], nested_id: str) -> List[NestedProposalDraft]:
    return _set_nested_status(nested, nested_id, NestedProposalStatus.APPROVED)


def _update_draft(drafts: List[DraftPost], draft_id: str, **changes) -> List[DraftPost]:
    return [d.model_copy(update=changes) if d.id == draft_id else d for d in drafts]


def update_draft_stance(drafts: List[DraftPost], draft_id: str, stance: Stance) -> List[DraftPost]:
    return _update_draft(drafts, draft_id, stance=stance)


def update_draft_body(drafts: List[DraftPost], draft_id: str, body: str) -> List[DraftPost]:
    return _update_draft(drafts, draft_id, body=body)


def reset_draft_body(drafts: List[DraftPost], draft_id: str) -> List[DraftPost]:
    return [d.model_copy(update={"body": d.body_default}) if d.id == draft_id else d for d in drafts]


def sync_draft_bodies(drafts: List[DraftPost], proposals: List[ProposalDraft]) -> List[DraftPost]:
    """In split mode, recomputes each draft's default body from its main triple.

    A body that was edited by the user is left alone.
    """
    if not is_split(drafts):
        return drafts

    by_id = {p.id: p for p in proposals}
    out = []
    for draft in drafts:
        main = by_id.get(draft.main_proposal_id) if draft.main_proposal_id else None
        if main is None:
            out.append(draft)
            continue

        body_default = f"{main.s_text} {main.p_text} {main.o_text}"
        if body_default == draft.body_default:
            out.append(draft)
            continue

        body = body_default if draft.body == draft.body_default else draft.body
        out.append(draft.model_copy(update={"body": body, "body_default": body_default}))
    return out


# --- Derived views ---

def all_drafts_have_main(drafts: List[DraftPost], proposals: List[ProposalDraft]) -> bool:
    """True when every draft with an active proposal has an approved main."""
    by_id = {p.id: p for p in proposals}
    for draft in drafts:
        active = [
            pid for pid in draft.proposal_ids
            if pid in by_id and by_id[pid].status != ProposalStatus.REJECTED
        ]
        if not active:
            continue
        main = by_id.get(draft.main_proposal_id) if draft.main_proposal_id else None
        if main is None or main.status != ProposalStatus.APPROVED:
            return False
    return True


def is_split(drafts: List[DraftPost]) -> bool:
    return len(drafts) > 1


def approved_proposals_with_roles(
    proposals: List[ProposalDraft], drafts: List[DraftPost]
) -> List[ApprovedProposal]:
    by_id = {p.id: p for p in proposals}
    out = []
    for draft in drafts:
        for pid in draft.proposal_ids:
            proposal = by_id.get(pid)
            if proposal is None or proposal.status != ProposalStatus.APPROVED:
                continue
            role = TripleRole.MAIN if pid == draft.main_proposal_id else TripleRole.SUPPORTING
            out.append(ApprovedProposal(proposal=proposal, role=role))
    return out


# --- Store ---

class ProposalStore:
    """Mutable holder of proposals, nested proposals and drafts for one submission.

    Every mutation goes through the pure transitions above. Single writer.
    """

    def __init__(
        self,
        proposals: List[ProposalDraft],
        nested_proposals: List[NestedProposalDraft],
        drafts: List[DraftPost],
        input_text: str = "",
        user_stance: Optional[Stance] = None,
    ):
        self.proposals = proposals
        self.nested_proposals = nested_proposals
        self.drafts = drafts
        self.input_text = input_text
        self.user_stance = user_stance

    @classmethod
    def from_extraction(
        cls, result: ExtractionResult, input_text: str, user_stance: Optional[Stance] = None
    ) -> "ProposalStore":
        proposals = build_proposal_drafts(collect_proposal_seeds(result))
        nested_proposals = build_nested_drafts(collect_nested_seeds(result.nested))
        ids = [p.id for p in proposals]
        draft = normalize_main(create_initial_draft("draft-0", user_stance, ids, ids[0] if ids else None, input_text))

        logger.info(
            "Built %d proposals and %d nested proposals from extraction",
            len(proposals), len(nested_proposals),
        )
        return cls(proposals, nested_proposals, [draft], input_text=input_text, user_stance=user_stance)

    def _set_drafts(self, drafts: List[DraftPost]) -> None:
        self.drafts = drafts
        check_partition(self.drafts)

    def get(self, proposal_id: str) -> Optional[ProposalDraft]:
        return _find(self.proposals, proposal_id)

    def update_field(self, proposal_id: str, field: TripleField, value: str) -> None:
        self.proposals = update_proposal_field(self.proposals, proposal_id, field, value)
        self._sync_bodies()

    def lock_term(self, proposal_id: str, field: TripleField, term_id: str, label: str) -> None:
        self.proposals = lock_proposal_term(self.proposals, proposal_id, field, term_id, label)
        self._autosave(proposal_id)

    def unlock_term(self, proposal_id: str, field: TripleField) -> None:
        self.proposals = unlock_proposal_term(self.proposals, proposal_id, field)
        self._autosave(proposal_id)

    def _autosave(self, proposal_id: str) -> None:
        proposal = self.get(proposal_id)
        if proposal is not None and not proposal.is_manual:
            self.save(proposal_id)
        else:
            self._sync_bodies()

    def save(self, proposal_id: str) -> str:
        """Saves a proposal and returns its id, which changes for manual proposals."""
        proposal = self.get(proposal_id)
        new_id = f"proposal-{uuid.uuid4()}" if proposal is not None and proposal.is_manual else proposal_id
        self.proposals, drafts = save_proposal(self.proposals, self.drafts, proposal_id, new_id)
        self._set_drafts(drafts)
        self._sync_bodies()
        return new_id

    def reject(self, proposal_id: str) -> None:
        self.proposals, drafts = reject_proposal(self.proposals, self.drafts, proposal_id)
        self._set_drafts(drafts)

    def select_main(self, proposal_id: str) -> None:
        self._set_drafts(select_main(self.proposals, self.drafts, proposal_id))

    def add_manual(self, target_draft_id: Optional[str] = None) -> str:
        new_id = f"{MANUAL_PREFIX}{uuid.uuid4()}"
        self.proposals, drafts = add_manual_proposal(self.proposals, self.drafts, new_id, target_draft_id)
        self._set_drafts(drafts)
        return new_id

    def set_matched_triple(self, proposal_id: str, term_id: Optional[str]) -> None:
        self.proposals = set_matched_triple(self.proposals, proposal_id, term_id)

    def reject_nested(self, nested_id: str) -> None:
        self.nested_proposals = reject_nested(self.nested_proposals, nested_id)

    def restore_nested(self, nested_id: str) -> None:
        self.nested_proposals = restore_nested(self.nested_proposals, nested_id)

    def split(self) -> None:
        self._set_drafts(split_into_drafts(self.drafts, self.proposals, self.user_stance))

    def merge(self) -> None:
        self._set_drafts([merge_drafts(self.drafts, self.user_stance, self.input_text, self.proposals)])

    def update_draft_stance(self, draft_id: str, stance: Stance) -> None:
        self.drafts = update_draft_stance(self.drafts, draft_id, stance)

    def update_draft_body(self, draft_id: str, body: str) -> None:
        self.drafts = update_draft_body(self.drafts, draft_id, body)

    def reset_draft_body(self, draft_id: str) -> None:
        self.drafts = reset_draft_body(self.drafts, draft_id)

    def _sync_bodies(self) -> None:
        self.drafts = sync_draft_bodies(self.drafts, self.proposals)

    @property
    def visible_nested_proposals(self) -> List[NestedProposalDraft]:
        return [n for n in self.nested_proposals if n.status != NestedProposalStatus.REJECTED]

    @property
    def all_drafts_have_main(self) -> bool:
        return all_drafts_have_main(self.drafts, self.proposals)

    @property
    def is_split(self) -> bool:
        return is_split(self.drafts)

    def approved_with_roles(self) -> List[ApprovedProposal]:
        return approved_proposals_with_roles(self.proposals, self.drafts)
