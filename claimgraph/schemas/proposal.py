from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel

from claimgraph.schemas.extraction import EdgeKind, Stance, TermRef

MANUAL_PREFIX = "manual-"
STANCE_PREFIX = "stance_"

TripleField = Literal["s_text", "p_text", "o_text"]


class ProposalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class NestedProposalStatus(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class TripleRole(str, Enum):
    MAIN = "MAIN"
    SUPPORTING = "SUPPORTING"


class SavedSnapshot(BaseModel):
    s_text: str = ""
    p_text: str = ""
    o_text: str = ""
    subject_term_id: Optional[str] = None
    predicate_term_id: Optional[str] = None
    object_term_id: Optional[str] = None


class ProposalDraft(BaseModel):
    id: str
    stable_key: str = ""
    s_text: str = ""
    p_text: str = ""
    o_text: str = ""
    status: ProposalStatus = ProposalStatus.PENDING
    subject_term_id: Optional[str] = None
    predicate_term_id: Optional[str] = None
    object_term_id: Optional[str] = None
    matched_triple_term_id: Optional[str] = None
    suggested_stance: Optional[Stance] = None
    stance_aligned: Optional[bool] = None
    stance_reason: Optional[str] = None
    sentence_text: str = ""
    saved: SavedSnapshot = SavedSnapshot()

    @property
    def is_manual(self) -> bool:
        return self.id.startswith(MANUAL_PREFIX)

    @property
    def is_dirty(self) -> bool:
        return self.snapshot() != self.saved

    def snapshot(self) -> SavedSnapshot:
        return SavedSnapshot(
            s_text=self.s_text,
            p_text=self.p_text,
            o_text=self.o_text,
            subject_term_id=self.subject_term_id,
            predicate_term_id=self.predicate_term_id,
            object_term_id=self.object_term_id,
        )


class NestedProposalDraft(BaseModel):
    id: str
    edge_kind: EdgeKind
    predicate: str
    subject: TermRef
    object: TermRef
    stable_key: str
    status: NestedProposalStatus = NestedProposalStatus.APPROVED


class DraftPost(BaseModel):
    id: str
    stance: Optional[Stance] = None
    main_proposal_id: Optional[str] = None
    proposal_ids: List[str] = []
    body: str = ""
    body_default: str = ""


class ProposalSeed(BaseModel):
    s_text: str
    p_text: str
    o_text: str
    key: str
    stable_key: Optional[str] = None
    suggested_stance: Optional[Stance] = None
    stance_aligned: Optional[bool] = None
    stance_reason: Optional[str] = None
    segment_index: int
    sentence_text: str


class ApprovedProposal(BaseModel):
    proposal: ProposalDraft
    role: TripleRole


class ResolvedTriple(BaseModel):
    proposal_id: str
    role: TripleRole
    subject_term_id: str
    predicate_term_id: str
    object_term_id: str
    triple_term_id: str
    is_existing: bool


class ResolvedNestedTriple(BaseModel):
    nested_proposal_id: str
    subject_term_id: str
    predicate_term_id: str
    object_term_id: str
    triple_term_id: str
    is_existing: bool


class NestedEndpoints(BaseModel):
    nested_proposal_id: str
    subject_term_id: str
    predicate_term_id: str
    object_term_id: str


class PublishedTriple(BaseModel):
    proposal_id: str
    triple_term_id: str
    is_existing: bool
    role: TripleRole


class PublishedNestedTriple(BaseModel):
    nested_proposal_id: str
    triple_term_id: str
    is_existing: bool


class DraftPublishPayload(BaseModel):
    draft_id: str
    body: str
    stance: Optional[Stance]
    triples: List[PublishedTriple] = []
    nested_triples: List[PublishedNestedTriple] = []


class AtomSuggestion(BaseModel):
    id: str
    label: str
    source: str


class TripleSuggestion(BaseModel):
    id: str
    subject: str
    predicate: str
    object: str
    subject_id: Optional[str] = None
    predicate_id: Optional[str] = None
    object_id: Optional[str] = None
    source: str
