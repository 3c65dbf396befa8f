from fastapi import APIRouter, Request, HTTPException
from claimgraph.core.config import settings
from claimgraph.schemas.extraction import ExtractionOptions
from claimgraph.schemas.inputs import ExtractionInputSchema, ExtractionResponse
from claimgraph.services.extraction import run_extraction
from claimgraph.services.llm import ModelProviderError
from claimgraph.services.proposals import ProposalStore
import logging
from slowapi import Limiter
from slowapi.util import get_remote_address
import asyncio


logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
router = APIRouter(
    prefix='/extraction',
    tags=["extraction"]
)

@router.post("/run", response_model=ExtractionResponse)
@limiter.limit(settings.extraction_rate_limit)
async def extraction_run(request: Request, input: ExtractionInputSchema):
    logger.info("Extraction requested for %d characters of text", len(input.text))

    if await request.is_disconnected():
        logger.info("Client disconnected before extraction started")
        raise HTTPException(status_code=499, detail="Client disconnected")

    options = ExtractionOptions(
        theme_title=input.theme_title,
        parent_claim_text=input.parent_claim_text,
        user_stance=input.stance,
    )

    try:
        task = asyncio.create_task(run_extraction(input.text, options))

        while not task.done():
            if await request.is_disconnected():
                logger.info("Client disconnected during extraction")
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    logger.info("Successfully cancelled extraction")
                raise HTTPException(status_code=499, detail="Client disconnected")

            await asyncio.sleep(0.1)

        result = await task

    except HTTPException:
        raise
    except asyncio.CancelledError:
        logger.info("Extraction cancelled")
        raise HTTPException(status_code=499, detail="Request cancelled")
    except ModelProviderError as e:
        logger.error("Extraction aborted by model provider failure: %s", e)
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.exception("Extraction failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    store = ProposalStore.from_extraction(result, input.text, input.stance)
    return ExtractionResponse(
        extraction=result,
        proposals=store.proposals,
        nested_proposals=store.nested_proposals,
        drafts=store.drafts,
    )
