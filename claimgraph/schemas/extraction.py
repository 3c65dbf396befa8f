from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class Stance(str, Enum):
    SUPPORTS = "SUPPORTS"
    REFUTES = "REFUTES"


class SentenceData(BaseModel):
    index: int
    heading_path: List[str]
    sentence: str


class FlatTriple(BaseModel):
    subject: str = Field(min_length=1)
    predicate: str = Field(min_length=1)
    object: str = Field(min_length=1)


class KeyedTriple(FlatTriple):
    stable_key: str


class AtomRef(BaseModel):
    type: Literal["atom"] = "atom"
    atom_key: str
    label: str


class TripleRef(BaseModel):
    type: Literal["triple"] = "triple"
    triple_key: str
    label: Optional[str] = None


TermRef = Annotated[Union[AtomRef, TripleRef], Field(discriminator="type")]


class EdgeKind(str, Enum):
    MODIFIER = "modifier"
    CONDITIONAL = "conditional"
    RELATION = "relation"
    META = "meta"


class EdgeOrigin(str, Enum):
    AGENT = "agent"
    USER = "user"


class NestedEdge(BaseModel):
    kind: EdgeKind
    origin: EdgeOrigin
    predicate: str
    subject: TermRef
    object: TermRef
    stable_key: str


# --- Model outputs ---

class SelectionKeep(BaseModel):
    keep: Literal[True]
    sentence: str = Field(min_length=1)
    kind: Literal["factual", "normative", "preference", "question", "meta", "other"]
    needs_context: bool = False
    missing: List[str] = []


class SelectionDrop(BaseModel):
    keep: Literal[False]
    reason: str = Field(min_length=1)


SelectionResult = Union[SelectionKeep, SelectionDrop]


class ClaimsResult(BaseModel):
    claims: List[str] = Field(min_length=1)


class Modifier(BaseModel):
    prep: str = Field(min_length=1)
    value: str = Field(min_length=1)


class GraphOut(BaseModel):
    core: FlatTriple
    modifiers: List[Modifier] = []


class GraphResult(BaseModel):
    core: FlatTriple
    modifiers: List[Modifier]


class Relation(BaseModel):
    from_index: int = Field(alias="from", ge=0)
    to_index: int = Field(alias="to", ge=0)
    predicate: str = Field(min_length=1)


class RelationsResult(BaseModel):
    relations: List[Relation] = []


class StanceVerdict(BaseModel):
    stable_key: str = Field(alias="stableKey")
    aligns_with_stance: Optional[bool] = Field(default=None, alias="alignsWithStance")
    suggested_stance: Stance = Field(alias="suggestedStance")
    reason: Optional[str] = None


class StanceVerificationResult(BaseModel):
    verifications: List[StanceVerdict]


# --- Pipeline output ---

class ClaimRecord(BaseModel):
    index: int
    claim: str
    triple: Optional[KeyedTriple]
    suggested_stance: Optional[Stance] = None
    stance_aligned: Optional[bool] = None
    stance_reason: Optional[str] = None


class SegmentResult(BaseModel):
    heading_path: List[str]
    sentence: str
    selected_sentence: Optional[str]
    claims: List[ClaimRecord]


class ExtractionResult(BaseModel):
    per_segment: List[SegmentResult]
    nested: List[NestedEdge]


class ExtractionOptions(BaseModel):
    theme_title: Optional[str] = None
    parent_claim_text: Optional[str] = None
    user_stance: Optional[Stance] = None


class StanceClaim(BaseModel):
    stable_key: str
    text: str
    triple: str


StanceVerdicts = Dict[str, StanceVerdict]
