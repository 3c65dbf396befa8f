from .extraction import (
    AtomRef,
    ClaimRecord,
    EdgeKind,
    EdgeOrigin,
    ExtractionOptions,
    ExtractionResult,
    FlatTriple,
    KeyedTriple,
    NestedEdge,
    SegmentResult,
    SentenceData,
    Stance,
    TermRef,
    TripleRef,
)
from .proposal import (
    DraftPost,
    DraftPublishPayload,
    NestedProposalDraft,
    NestedProposalStatus,
    ProposalDraft,
    ProposalStatus,
    ResolvedNestedTriple,
    ResolvedTriple,
    TripleRole,
)

__all__ = [
    "AtomRef",
    "ClaimRecord",
    "EdgeKind",
    "EdgeOrigin",
    "ExtractionOptions",
    "ExtractionResult",
    "FlatTriple",
    "KeyedTriple",
    "NestedEdge",
    "SegmentResult",
    "SentenceData",
    "Stance",
    "TermRef",
    "TripleRef",
    "DraftPost",
    "DraftPublishPayload",
    "NestedProposalDraft",
    "NestedProposalStatus",
    "ProposalDraft",
    "ProposalStatus",
    "ResolvedNestedTriple",
    "ResolvedTriple",
    "TripleRole",
]
