from claimgraph.schemas.extraction import Stance
from claimgraph.schemas.proposal import DraftPost, ProposalDraft, ProposalStatus
from claimgraph.services.drafts import (
    check_partition,
    create_initial_draft,
    find_draft_index,
    merge_drafts,
    normalize_main,
    split_into_drafts,
)


def proposal(pid, s, p, o, status=ProposalStatus.APPROVED, stance=None):
    return ProposalDraft(id=pid, s_text=s, p_text=p, o_text=o, status=status, suggested_stance=stance)


PROPOSALS = [
    proposal("proposal-0", "Nuclear", "is", "safe"),
    proposal("proposal-1", "Coal", "is", "dirty", stance=Stance.REFUTES),
    proposal("proposal-2", "Gas", "is", "cheap", status=ProposalStatus.REJECTED),
]


class TestInitialDraft:
    """Tests for creating and normalizing drafts."""

    def test_create_initial_draft(self):
        draft = create_initial_draft("draft-0", Stance.SUPPORTS, ["proposal-0"], "proposal-0", "Some text")

        assert draft.body == draft.body_default == "Some text"
        assert draft.proposal_ids == ["proposal-0"]

    def test_normalize_main_keeps_valid_main(self):
        draft = DraftPost(id="draft-0", main_proposal_id="proposal-1", proposal_ids=["proposal-0", "proposal-1"])

        assert normalize_main(draft).main_proposal_id == "proposal-1"

    def test_normalize_main_falls_back_to_first(self):
        draft = DraftPost(id="draft-0", main_proposal_id="proposal-9", proposal_ids=["proposal-0", "proposal-1"])

        assert normalize_main(draft).main_proposal_id == "proposal-0"

    def test_normalize_main_empty_draft(self):
        draft = DraftPost(id="draft-0", main_proposal_id="proposal-0", proposal_ids=[])

        assert normalize_main(draft).main_proposal_id is None

    def test_find_draft_index(self):
        drafts = [DraftPost(id="draft-0", proposal_ids=["a"]), DraftPost(id="draft-1", proposal_ids=["b"])]

        assert find_draft_index(drafts, "b") == 1
        assert find_draft_index(drafts, "c") == -1


class TestPartition:
    """Tests for the one-draft-per-proposal check."""

    def test_valid_partition(self):
        drafts = [DraftPost(id="draft-0", proposal_ids=["a", "b"]), DraftPost(id="draft-1", proposal_ids=["c"])]

        assert check_partition(drafts)

    def test_violation_is_logged_not_raised(self, caplog):
        drafts = [DraftPost(id="draft-0", proposal_ids=["a", "b"]), DraftPost(id="draft-1", proposal_ids=["b"])]

        assert not check_partition(drafts)
        assert "b" in caplog.text


class TestSplitAndMerge:
    """Tests for switching between one draft and one draft per proposal."""

    def test_split_skips_rejected(self):
        source = [DraftPost(id="draft-0", stance=Stance.SUPPORTS, main_proposal_id="proposal-0",
                            proposal_ids=["proposal-0", "proposal-1", "proposal-2"])]
        drafts = split_into_drafts(source, PROPOSALS, Stance.SUPPORTS)

        assert [d.id for d in drafts] == ["draft-0", "draft-1"]
        assert [d.proposal_ids for d in drafts] == [["proposal-0"], ["proposal-1"]]
        assert [d.main_proposal_id for d in drafts] == ["proposal-0", "proposal-1"]
        assert drafts[0].body == drafts[0].body_default == "Nuclear is safe"

    def test_split_uses_suggested_stance_then_user_stance(self):
        source = [DraftPost(id="draft-0", proposal_ids=["proposal-0", "proposal-1"])]
        drafts = split_into_drafts(source, PROPOSALS, Stance.SUPPORTS)

        assert [d.stance for d in drafts] == [Stance.SUPPORTS, Stance.REFUTES]

    def test_merge_uses_input_text(self):
        drafts = [
            DraftPost(id="draft-0", stance=Stance.REFUTES, main_proposal_id="proposal-1", proposal_ids=["proposal-1"]),
            DraftPost(id="draft-1", stance=Stance.SUPPORTS, main_proposal_id="proposal-0", proposal_ids=["proposal-0"]),
        ]
        merged = merge_drafts(drafts, Stance.SUPPORTS, "Original post.", PROPOSALS)

        assert merged.id == "draft-0"
        assert merged.proposal_ids == ["proposal-1", "proposal-0"]
        assert merged.main_proposal_id == "proposal-1"
        assert merged.stance == Stance.REFUTES
        assert merged.body == merged.body_default == "Original post."

    def test_merge_drops_rejected_main(self):
        drafts = [
            DraftPost(id="draft-0", main_proposal_id="proposal-2", proposal_ids=["proposal-2"]),
            DraftPost(id="draft-1", main_proposal_id="proposal-0", proposal_ids=["proposal-0"]),
        ]
        merged = merge_drafts(drafts, Stance.SUPPORTS, proposals=PROPOSALS)

        assert merged.proposal_ids == ["proposal-0"]
        assert merged.main_proposal_id == "proposal-0"
        assert merged.stance == Stance.SUPPORTS

    def test_split_then_merge_keeps_every_active_proposal(self):
        source = [DraftPost(id="draft-0", main_proposal_id="proposal-0",
                            proposal_ids=["proposal-0", "proposal-1", "proposal-2"])]
        merged = merge_drafts(split_into_drafts(source, PROPOSALS, None), None, "text", PROPOSALS)

        assert merged.proposal_ids == ["proposal-0", "proposal-1"]
        assert check_partition([merged])
