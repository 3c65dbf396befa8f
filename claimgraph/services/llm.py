import json
import logging
import re
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

import httpx
import ollama
from pydantic import TypeAdapter, ValidationError

from claimgraph.core.config import Settings, settings
from claimgraph.core.prompts import (
    DecompositionPrompts,
    GraphExtractionPrompts,
    RelationPrompts,
    SelectionPrompts,
    StancePrompts,
)
from claimgraph.schemas.extraction import (
    ClaimsResult,
    FlatTriple,
    GraphOut,
    GraphResult,
    Modifier,
    Relation,
    RelationsResult,
    SelectionKeep,
    SelectionResult,
    Stance,
    StanceClaim,
    StanceVerdicts,
    StanceVerificationResult,
)

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = frozenset({404, 408, 429})
NETWORK_ERROR_MARKERS = (
    "Not Found",
    "fetch failed",
    "ECONNREFUSED",
    "ETIMEDOUT",
    "ENOTFOUND",
    "Connection refused",
)
BARE_PREPOSITIONS = frozenset({"for", "in", "of", "to", "by", "with"})
ALLOWED_RELATION_PREDICATES = frozenset({
    "but", "however", "although", "because", "therefore", "so",
    "if", "unless", "when", "and", "or",
    "could lead to", "may lead to", "might lead to", "will lead to",
})

FENCED_JSON_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)

_selection_adapter = TypeAdapter(SelectionResult)


class Provider(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"


class ChainState(NamedTuple):
    provider: Provider
    attempt: int


def _status_code(error: BaseException) -> Optional[int]:
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def is_transient_error(error: BaseException) -> bool:
    """Decides whether a provider error should trigger the fallback provider.

    Transient: not-found, timeout, rate-limit and 5xx status codes, plus connection
    and timeout errors. Everything else propagates.
    """
    status = _status_code(error)
    if status is not None and (status in TRANSIENT_STATUS_CODES or status >= 500):
        return True
    if isinstance(error, (httpx.TimeoutException, httpx.ConnectError, ConnectionError, TimeoutError)):
        return True
    message = str(error)
    return any(marker in message for marker in NETWORK_ERROR_MARKERS)


def next_state(state: ChainState, error: BaseException) -> Optional[ChainState]:
    """Returns the state to try after ``error``, or None when the error must propagate."""
    if state.provider is Provider.PRIMARY and is_transient_error(error):
        return ChainState(Provider.FALLBACK, state.attempt)
    return None


class ModelProviderError(RuntimeError):
    """Raised when no model provider could serve a request."""


class ModelChain:
    """Primary model provider with a single fallback on transient failures."""

    def __init__(
        self,
        primary: ollama.AsyncClient,
        primary_model: str,
        fallback: ollama.AsyncClient,
        fallback_model: str,
        temperature: float = 0.0,
    ):
        self._slots = {
            Provider.PRIMARY: (primary, primary_model),
            Provider.FALLBACK: (fallback, fallback_model),
        }
        self.temperature = temperature

    @classmethod
    def from_settings(cls, config: Settings) -> "ModelChain":
        headers = {}
        if config.fallback_llm_api_key:
            headers["Authorization"] = f"Bearer {config.fallback_llm_api_key}"

        return cls(
            primary=ollama.AsyncClient(host=config.primary_llm_host),
            primary_model=config.primary_llm_model,
            fallback=ollama.AsyncClient(host=config.fallback_llm_host, headers=headers),
            fallback_model=config.fallback_llm_model,
            temperature=config.llm_temperature,
        )

    async def _chat(self, provider: Provider, instructions: str, payload: str) -> str:
        client, model = self._slots[provider]
        response = await client.chat(
            model=model,
            messages=[
                {"role": "system", "content": instructions},
                {"role": "user", "content": payload},
            ],
            format="json",
            stream=False,
            options={"temperature": self.temperature},
        )
        return response.message.content or ""

    async def generate(self, instructions: str, payload: str, attempt: int = 1) -> str:
        """Sends one request, falling back once when the primary provider fails transiently.

        Raises:
            ModelProviderError: If the error is not transient or the fallback provider also fails.
        """
        state: Optional[ChainState] = ChainState(Provider.PRIMARY, attempt)
        while True:
            try:
                return await self._chat(state.provider, instructions, payload)
            except Exception as e:
                failed = state
                state = next_state(state, e)
                if state is None:
                    logger.error("Model provider %s failed: %s", failed.provider.value, e)
                    raise ModelProviderError(f"Model provider {failed.provider.value} failed: {e}") from e
                logger.warning(
                    "Model provider %s failed on attempt %d (%s), falling back to %s",
                    failed.provider.value, failed.attempt, e, state.provider.value,
                )


default_chain = ModelChain.from_settings(settings)


def extract_json(raw: str) -> str:
    """Pulls the JSON part out of a raw model response.

    Args:
        raw (str): The raw response text.

    Returns:
        str: The fenced block content, else the text from the first brace or bracket,
            else the trimmed input.
    """
    raw = raw or ""
    fenced = FENCED_JSON_RE.search(raw)
    if fenced and fenced.group(1):
        return fenced.group(1).strip()

    starts = [i for i in (raw.find("{"), raw.find("[")) if i != -1]
    if not starts:
        return raw.strip()
    return raw[min(starts):].strip()


def parse_json_or_none(raw: str) -> Any:
    try:
        return json.loads(extract_json(raw))
    except ValueError:
        return None


async def select_sentence(
    header_context: str, previous_sentence: str, sentence: str, chain: Optional[ModelChain] = None
) -> SelectionResult:
    chain = chain or default_chain
    raw = await chain.generate(
        SelectionPrompts.GUIDELINES,
        SelectionPrompts.get_prompt(header_context, previous_sentence, sentence),
    )

    try:
        return _selection_adapter.validate_python(parse_json_or_none(raw))
    except ValidationError as e:
        logger.warning("Selection output rejected, keeping sentence unchanged: %s", e.error_count())
        return SelectionKeep(keep=True, sentence=sentence.strip(), kind="other")


async def decompose_to_claims(header_context: str, sentence: str, chain: Optional[ModelChain] = None) -> List[str]:
    chain = chain or default_chain
    raw = await chain.generate(
        DecompositionPrompts.GUIDELINES,
        DecompositionPrompts.get_prompt(header_context, sentence),
    )

    try:
        result = ClaimsResult.model_validate(parse_json_or_none(raw))
    except ValidationError:
        logger.warning("Decomposition output rejected, treating sentence as one claim")
        return [sentence.strip()]

    claims = [c.strip() for c in result.claims if c.strip()]
    return claims or [sentence.strip()]


def _clean_graph(out: GraphOut) -> Optional[GraphResult]:
    subject = out.core.subject.strip()
    predicate = out.core.predicate.strip()
    obj = out.core.object.strip()
    if not subject or not predicate or not obj:
        return None
    if predicate.lower() in BARE_PREPOSITIONS:
        return None

    modifiers = [
        Modifier(prep=m.prep.strip(), value=m.value.strip())
        for m in out.modifiers
        if m.prep.strip() and m.value.strip()
    ]
    return GraphResult(core=FlatTriple(subject=subject, predicate=predicate, object=obj), modifiers=modifiers)


async def graph_from_claim(
    claim: str, sentence_context: str, chain: Optional[ModelChain] = None, max_attempts: Optional[int] = None
) -> Optional[GraphResult]:
    """Extracts one core triple plus modifiers from a claim.

    Invalid output (unparseable JSON, schema mismatch, empty field or a bare preposition
    as predicate) is retried. Returns None after ``max_attempts`` failures.
    """
    chain = chain or default_chain
    max_attempts = max_attempts or settings.graph_max_attempts
    payload = GraphExtractionPrompts.get_prompt(claim, sentence_context)

    for attempt in range(1, max_attempts + 1):
        raw = await chain.generate(GraphExtractionPrompts.GUIDELINES, payload, attempt=attempt)

        try:
            out = GraphOut.model_validate(parse_json_or_none(raw))
        except ValidationError:
            logger.debug("Graph output rejected on attempt %d for claim: %s", attempt, claim)
            continue

        result = _clean_graph(out)
        if result is not None:
            return result
        logger.debug("Graph output had an invalid predicate on attempt %d for claim: %s", attempt, claim)

    logger.warning("Graph extraction gave up after %d attempts for claim: %s", max_attempts, claim)
    return None


async def link_relations(
    sentence: str, claims: List[Dict[str, Any]], chain: Optional[ModelChain] = None
) -> List[Relation]:
    """Links claims of one sentence with allow-listed discourse predicates.

    Predicates are lower-cased and trimmed. Anything outside the allow-list is logged
    and dropped.
    """
    chain = chain or default_chain
    raw = await chain.generate(RelationPrompts.GUIDELINES, RelationPrompts.get_prompt(sentence, claims))

    try:
        result = RelationsResult.model_validate(parse_json_or_none(raw))
    except ValidationError:
        logger.warning("Relation output rejected, no relations linked")
        return []

    accepted: List[Relation] = []
    for relation in result.relations:
        predicate = relation.predicate.strip().lower()
        if predicate not in ALLOWED_RELATION_PREDICATES:
            logger.warning("Dropping relation with unsupported predicate %r", relation.predicate)
            continue
        accepted.append(relation.model_copy(update={"predicate": predicate}))
    return accepted


async def verify_stances(
    parent_claim: str,
    user_stance: Stance,
    claims: List[StanceClaim],
    chain: Optional[ModelChain] = None,
    max_claims: Optional[int] = None,
) -> StanceVerdicts:
    """Classifies every claim as supporting or refuting the parent claim in one batch.

    The batch is skipped entirely when it exceeds ``max_claims``. Schema failures give
    an empty mapping.
    """
    chain = chain or default_chain
    max_claims = max_claims or settings.max_stance_claims

    if not claims:
        return {}
    if len(claims) > max_claims:
        logger.warning("Stance verification skipped: %d claims exceeds limit of %d", len(claims), max_claims)
        return {}

    payload = StancePrompts.get_prompt(
        parent_claim,
        user_stance.value,
        [{"stableKey": c.stable_key, "text": c.text, "triple": c.triple} for c in claims],
    )
    raw = await chain.generate(StancePrompts.GUIDELINES, payload)

    try:
        result = StanceVerificationResult.model_validate(parse_json_or_none(raw))
    except ValidationError as e:
        logger.warning("Stance verification output rejected: %s", e.error_count())
        return {}

    verdicts = {v.stable_key: v for v in result.verifications}
    matched = sum(1 for c in claims if c.stable_key in verdicts)
    if matched < len(claims):
        logger.warning("Stance verification returned %d/%d verdicts", matched, len(claims))
    return verdicts
