from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from claimgraph.api.routes import extraction
from claimgraph.core.config import settings
import logging
from slowapi.errors import RateLimitExceeded
from slowapi import _rate_limit_exceeded_handler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%d-%m-%Y %H:%M:%S",
)

app = FastAPI(
    title="Claim Graph",
    description="Extraction of subject-predicate-object claims and their relations from free-form posts",
    version="v1.0"
    )
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.limiter = extraction.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(extraction.router)

@app.get("/")
def check():
    return {"message": "Application is up"}
