import logging
from collections import Counter
from typing import Dict, List, Optional

from claimgraph.schemas.extraction import Stance
from claimgraph.schemas.proposal import DraftPost, ProposalDraft, ProposalStatus

logger = logging.getLogger(__name__)


def create_initial_draft(
    draft_id: str,
    stance: Optional[Stance],
    proposal_ids: List[str],
    main_proposal_id: Optional[str] = None,
    body_default: str = "",
) -> DraftPost:
    return DraftPost(
        id=draft_id,
        stance=stance,
        main_proposal_id=main_proposal_id,
        proposal_ids=list(proposal_ids),
        body=body_default,
        body_default=body_default,
    )


def normalize_main(draft: DraftPost) -> DraftPost:
    """Keeps the main proposal inside the draft: an absent main falls back to the first id (or None)."""
    if draft.main_proposal_id and draft.main_proposal_id in draft.proposal_ids:
        return draft
    main = draft.proposal_ids[0] if draft.proposal_ids else None
    return draft.model_copy(update={"main_proposal_id": main})


def find_draft_index(drafts: List[DraftPost], proposal_id: str) -> int:
    for i, draft in enumerate(drafts):
        if proposal_id in draft.proposal_ids:
            return i
    return -1


def check_partition(drafts: List[DraftPost]) -> bool:
    """Checks that no proposal id belongs to more than one draft. Violations are logged, not raised."""
    counts = Counter(pid for draft in drafts for pid in draft.proposal_ids)
    duplicates = sorted(pid for pid, n in counts.items() if n > 1)
    if duplicates:
        logger.error("Draft partition violated: proposal ids in several drafts: %s", ", ".join(duplicates))
        return False
    return True


def _unique(ids: List[str]) -> List[str]:
    return list(dict.fromkeys(ids))


def _active_ids(ids: List[str], by_id: Dict[str, ProposalDraft]) -> List[str]:
    return [pid for pid in ids if pid in by_id and by_id[pid].status != ProposalStatus.REJECTED]


def split_into_drafts(
    source_drafts: List[DraftPost], proposals: List[ProposalDraft], user_stance: Optional[Stance]
) -> List[DraftPost]:
    """Turns every active proposal into its own draft.

    Args:
        source_drafts (List[DraftPost]): The current drafts.
        proposals (List[ProposalDraft]): All proposals, used to skip rejected or unknown ids.
        user_stance (Optional[Stance]): Stance used when a proposal has no suggested stance.

    Returns:
        List[DraftPost]: One draft per active proposal, ``draft-<i>``, with the proposal as main.
    """
    by_id = {p.id: p for p in proposals}
    active = _active_ids(_unique([pid for d in source_drafts for pid in d.proposal_ids]), by_id)

    drafts = []
    for i, pid in enumerate(active):
        proposal = by_id[pid]
        body_default = f"{proposal.s_text} {proposal.p_text} {proposal.o_text}"
        drafts.append(DraftPost(
            id=f"draft-{i}",
            stance=proposal.suggested_stance or user_stance,
            main_proposal_id=pid,
            proposal_ids=[pid],
            body=body_default,
            body_default=body_default,
        ))
    return drafts


def merge_drafts(
    drafts: List[DraftPost],
    user_stance: Optional[Stance],
    input_text: str = "",
    proposals: Optional[List[ProposalDraft]] = None,
) -> DraftPost:
    """Collapses all drafts into a single ``draft-0`` whose body is the original input text."""
    ids = _unique([pid for d in drafts for pid in d.proposal_ids])
    if proposals is not None:
        ids = _active_ids(ids, {p.id: p for p in proposals})

    first = drafts[0] if drafts else None
    main = first.main_proposal_id if first else None
    if main not in ids:
        main = ids[0] if ids else None

    stance = first.stance if first and first.stance else user_stance
    return DraftPost(
        id="draft-0",
        stance=stance,
        main_proposal_id=main,
        proposal_ids=ids,
        body=input_text or "",
        body_default=input_text or "",
    )
