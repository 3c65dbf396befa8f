import logging
import re
from typing import Dict, List, Optional, Set

from claimgraph.schemas.extraction import (
    ClaimRecord,
    EdgeKind,
    EdgeOrigin,
    ExtractionOptions,
    ExtractionResult,
    KeyedTriple,
    Modifier,
    NestedEdge,
    SegmentResult,
    SelectionDrop,
    StanceClaim,
    TermRef,
)
from claimgraph.services import llm
from claimgraph.services.llm import ModelChain
from claimgraph.services.markers import needs_decomposition, needs_relation_linking
from claimgraph.services.parsers import parse_conditional, parse_meta_claim, try_decompose_subject, try_decompose_value
from claimgraph.services.segmenter import split_markdown_into_sentences
from claimgraph.services.stable_key import keyed_triple, stable_key_from_edge, term_atom, term_triple

logger = logging.getLogger(__name__)

CONDITIONAL_KEYWORDS = frozenset({"if", "unless", "when"})
OUTER_QUOTES_RE = re.compile(r"^[\s\"'“”‘’]+|[\s\"'“”‘’]+$")
TERMINAL_PUNCTUATION_RE = re.compile(r"[.!?]$")


def _safe_trim(value: Optional[str]) -> str:
    return (value or "").strip()


def strip_outer_quotes(text: str) -> str:
    return OUTER_QUOTES_RE.sub("", _safe_trim(text)).strip()


def ensure_period(text: str) -> str:
    t = _safe_trim(text)
    if not t or TERMINAL_PUNCTUATION_RE.search(t):
        return t
    return t + "."


def dedupe_strings(items: List[str]) -> List[str]:
    """Case-insensitive de-duplication keeping the first occurrence, trimmed. Blank items are dropped."""
    seen: Set[str] = set()
    out: List[str] = []
    for item in items:
        key = _safe_trim(item).lower()
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(item.strip())
    return out


def build_header_context(heading_path: List[str], theme_title: str, parent_claim: str) -> str:
    header_path = " > ".join(heading_path)
    if theme_title:
        header_context = f"{theme_title} > {header_path}" if header_path else theme_title
    else:
        header_context = header_path

    if parent_claim:
        reply = f'In reply to: "{parent_claim}"'
        header_context = f"{header_context} | {reply}" if header_context else reply
    return header_context


def push_edge(
    nested: List[NestedEdge],
    existing: Set[str],
    kind: EdgeKind,
    predicate: str,
    subject: TermRef,
    obj: TermRef,
) -> Optional[NestedEdge]:
    """Appends an agent edge unless one with the same stable key was already emitted.

    Raises:
        ValueError: If the predicate is empty.
    """
    pred = _safe_trim(predicate)
    if not pred:
        raise ValueError(f"Nested edge missing predicate ({kind.value} edge)")

    key = stable_key_from_edge(subject, pred, obj)
    if key in existing:
        return None

    edge = NestedEdge(
        kind=kind,
        origin=EdgeOrigin.AGENT,
        predicate=pred,
        subject=subject,
        object=obj,
        stable_key=key,
    )
    existing.add(key)
    nested.append(edge)
    return edge


def push_modifier_edges(
    nested: List[NestedEdge], existing: Set[str], core: KeyedTriple, modifiers: List[Modifier]
) -> None:
    for mod in modifiers:
        decomposed = try_decompose_value(mod.value)
        # Sub-triples only live as edge endpoints, never as claim records.
        obj = term_triple(keyed_triple(decomposed)) if decomposed else term_atom(mod.value)
        push_edge(nested, existing, EdgeKind.MODIFIER, mod.prep, term_triple(core), obj)


def push_subject_edge(nested: List[NestedEdge], existing: Set[str], core: KeyedTriple) -> None:
    decomposition = try_decompose_subject(core)
    if decomposition is None:
        return
    sub_triple = keyed_triple(decomposition.sub_triple)
    push_edge(nested, existing, EdgeKind.MODIFIER, decomposition.prep, term_triple(core), term_triple(sub_triple))


def _attach_graph_edges(nested: List[NestedEdge], existing: Set[str], core: KeyedTriple, modifiers: List[Modifier]):
    push_modifier_edges(nested, existing, core, modifiers)
    push_subject_edge(nested, existing, core)


async def _extract_claim(
    claim: str,
    sentence_context: str,
    nested: List[NestedEdge],
    existing: Set[str],
    chain: Optional[ModelChain],
) -> List[ClaimRecord]:
    """Extracts one claim into one or two claim records (index assigned by the caller)."""
    meta = parse_meta_claim(claim)
    if meta:
        graph = await llm.graph_from_claim(meta.proposition, sentence_context, chain=chain)
        if graph is None:
            return [ClaimRecord(index=-1, claim=claim, triple=None)]

        proposition = keyed_triple(graph.core)
        push_edge(nested, existing, EdgeKind.META, meta.verb, term_atom(meta.source), term_triple(proposition))
        _attach_graph_edges(nested, existing, proposition, graph.modifiers)
        return [ClaimRecord(index=-1, claim=claim, triple=proposition)]

    conditional = parse_conditional(claim)
    if conditional:
        main_graph = await llm.graph_from_claim(conditional.main_text, sentence_context, chain=chain)
        condition_graph = await llm.graph_from_claim(conditional.condition_text, sentence_context, chain=chain)
        if main_graph is None:
            return [ClaimRecord(index=-1, claim=claim, triple=None)]

        main = keyed_triple(main_graph.core)
        records = [ClaimRecord(index=-1, claim=claim, triple=main)]
        _attach_graph_edges(nested, existing, main, main_graph.modifiers)

        if condition_graph is not None:
            condition = keyed_triple(condition_graph.core)
            records.append(ClaimRecord(index=-1, claim=conditional.condition_text, triple=condition))
            _attach_graph_edges(nested, existing, condition, condition_graph.modifiers)
            push_edge(
                nested, existing, EdgeKind.CONDITIONAL, conditional.keyword, term_triple(main), term_triple(condition)
            )
        return records

    graph = await llm.graph_from_claim(claim, sentence_context, chain=chain)
    if graph is None:
        return [ClaimRecord(index=-1, claim=claim, triple=None)]

    core = keyed_triple(graph.core)
    _attach_graph_edges(nested, existing, core, graph.modifiers)
    return [ClaimRecord(index=-1, claim=claim, triple=core)]


async def _link_segment_relations(
    selected_sentence: str,
    records: List[ClaimRecord],
    nested: List[NestedEdge],
    existing: Set[str],
    chain: Optional[ModelChain],
) -> int:
    idx_to_triple: Dict[int, KeyedTriple] = {r.index: r.triple for r in records if r.triple is not None}
    if len(idx_to_triple) < 2 or not needs_relation_linking(selected_sentence):
        return 0

    claims = [
        {
            "index": r.index,
            "text": r.claim,
            "core_triple": f"({r.triple.subject} | {r.triple.predicate} | {r.triple.object})",
        }
        for r in records
        if r.triple is not None
    ]
    relations = await llm.link_relations(selected_sentence, claims, chain=chain)

    linked = 0
    for relation in relations:
        source = idx_to_triple.get(relation.from_index)
        target = idx_to_triple.get(relation.to_index)
        if source is None or target is None or relation.from_index == relation.to_index:
            continue

        subject, obj = term_triple(source), term_triple(target)
        if relation.predicate in CONDITIONAL_KEYWORDS:
            if stable_key_from_edge(subject, relation.predicate, obj) in existing:
                continue

        if push_edge(nested, existing, EdgeKind.RELATION, relation.predicate, subject, obj):
            linked += 1
    return linked


async def _apply_stances(
    per_segment: List[SegmentResult], options: ExtractionOptions, chain: Optional[ModelChain]
) -> None:
    seen: Set[str] = set()
    claims: List[StanceClaim] = []
    for segment in per_segment:
        for record in segment.claims:
            if record.triple is None or record.triple.stable_key in seen:
                continue
            seen.add(record.triple.stable_key)
            claims.append(StanceClaim(
                stable_key=record.triple.stable_key,
                text=record.claim,
                triple=f"{record.triple.subject} | {record.triple.predicate} | {record.triple.object}",
            ))

    try:
        verdicts = await llm.verify_stances(
            _safe_trim(options.parent_claim_text), options.user_stance, claims, chain=chain
        )
    except Exception as e:
        logger.warning("Stance verification failed, continuing without stances: %s", e)
        return

    for segment in per_segment:
        for record in segment.claims:
            if record.triple is None:
                continue
            verdict = verdicts.get(record.triple.stable_key)
            if verdict is None:
                continue
            record.suggested_stance = verdict.suggested_stance
            record.stance_aligned = verdict.suggested_stance == options.user_stance
            record.stance_reason = verdict.reason

    logger.info("Stance verification complete: %d/%d claims classified", len(verdicts), len(claims))


async def run_extraction(
    text: str, options: Optional[ExtractionOptions] = None, chain: Optional[ModelChain] = None
) -> ExtractionResult:
    """Runs the claim extraction pipeline over a free-form post.

    Args:
        text (str): The post text, optionally with markdown headings and list markers.
        options (ExtractionOptions, optional): Theme title, parent claim and the user's stance.
        chain (ModelChain, optional): Model providers to use. Defaults to the configured chain.

    Returns:
        ExtractionResult: One result per segment plus every nested edge, deduplicated by stable key.

    Raises:
        Exception: Non-transient provider errors propagate and abort the run.
    """
    options = options or ExtractionOptions()
    segments = split_markdown_into_sentences(text)
    logger.info("Extracted %d sentences from input", len(segments))

    per_segment: List[SegmentResult] = []
    nested: List[NestedEdge] = []
    theme_title = _safe_trim(options.theme_title)
    parent_claim = _safe_trim(options.parent_claim_text)
    kept = 0
    linked = 0

    for i, segment in enumerate(segments):
        header_context = build_header_context(segment.heading_path, theme_title, parent_claim)
        previous = segments[i - 1].sentence if i > 0 else ""

        raw = strip_outer_quotes(segment.sentence)
        selection = await llm.select_sentence(header_context, previous, raw, chain=chain)

        if isinstance(selection, SelectionDrop):
            logger.debug("Dropped sentence %d: %s", segment.index, selection.reason)
            per_segment.append(SegmentResult(
                heading_path=segment.heading_path,
                sentence=segment.sentence,
                selected_sentence=None,
                claims=[],
            ))
            continue

        kept += 1
        selected_sentence = _safe_trim(selection.sentence) or raw
        sentence_context = " ".join(part for part in (parent_claim, previous, selected_sentence) if part)

        if parse_meta_claim(ensure_period(selected_sentence)):
            raw_claims = [ensure_period(selected_sentence)]
        elif needs_decomposition(selected_sentence):
            raw_claims = await llm.decompose_to_claims(header_context, selected_sentence, chain=chain)
        else:
            raw_claims = [ensure_period(selected_sentence)]
        claims = dedupe_strings([ensure_period(c) for c in raw_claims])

        existing = {edge.stable_key for edge in nested}
        records: List[ClaimRecord] = []
        for claim in claims:
            for record in await _extract_claim(claim, sentence_context, nested, existing, chain):
                record.index = len(records)
                records.append(record)

        linked += await _link_segment_relations(selected_sentence, records, nested, existing, chain)

        per_segment.append(SegmentResult(
            heading_path=segment.heading_path,
            sentence=segment.sentence,
            selected_sentence=selected_sentence or None,
            claims=records,
        ))

    total_claims = sum(len(s.claims) for s in per_segment)
    resolved = sum(1 for s in per_segment for c in s.claims if c.triple is not None)
    logger.info("Selection complete: %d/%d sentences kept", kept, len(segments))
    logger.info(
        "Extraction complete: %d/%d claims resolved, %d nested edges (%d relations)",
        resolved, total_claims, len(nested), linked,
    )

    if parent_claim and options.user_stance:
        await _apply_stances(per_segment, options, chain)

    return ExtractionResult(per_segment=per_segment, nested=nested)
