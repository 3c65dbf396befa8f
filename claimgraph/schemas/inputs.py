from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from claimgraph.schemas.extraction import ExtractionResult, Stance
from claimgraph.schemas.proposal import DraftPost, NestedProposalDraft, ProposalDraft


class ExtractionInputSchema(BaseModel):
    text: str = Field(min_length=1)
    theme_title: Optional[str] = None
    parent_claim_text: Optional[str] = None
    stance: Optional[Stance] = None

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must not be blank")
        return value.strip()


class ExtractionResponse(BaseModel):
    extraction: ExtractionResult
    proposals: List[ProposalDraft]
    nested_proposals: List[NestedProposalDraft]
    drafts: List[DraftPost]
