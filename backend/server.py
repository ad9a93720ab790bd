from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import uuid
from contextlib import asynccontextmanager
from database import database
from routes import auth, portfolio, ai, billing, webhooks, uploads, profile, users, realtime
from services.portfolio_service import PortfolioValidationError
from services.realtime import content_broadcaster
from services.storage_adapter import GridFSStorageAdapter
from services.stripe_service import StripeGateway
from utils.llm_chat import LlmClient

import os
import logging
from pathlib import Path
from dotenv import load_dotenv

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Workfolio API")

    # Client handles: created once per process, handed to routes via Depends
    app.state.llm = LlmClient.from_env()
    app.state.stripe = StripeGateway.from_env()
    app.state.broadcaster = content_broadcaster

    if os.environ.get("PYTEST_RUNNING"):
        logger.info("PYTEST_RUNNING set; skipping MongoDB connection")
    else:
        await database.connect()
        app.state.storage = GridFSStorageAdapter.from_env(database.get_db())

    yield

    logger.info("Shutting down Workfolio API")
    await database.close()


app = FastAPI(
    title="Workfolio API",
    description="Portfolio builder with AI assist and a Pro plan",
    version=API_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Stripe webhook and realtime feed are unauthenticated; users is admin only
for module in (auth, portfolio, ai, billing, webhooks, uploads, profile, users, realtime):
    app.include_router(module.router)


@app.get("/api")
async def root():
    return {"service": "Workfolio", "version": API_VERSION, "status": "operational"}


@app.get("/api/health")
async def health_check():
    return {
        "status": "healthy",
        "database": "connected" if database.db is not None else "not connected",
        "llm": app.state.llm.available if hasattr(app.state, "llm") else False,
    }


# Deployment stamp; CI sets GIT_COMMIT_SHA
@app.get("/api/version")
async def version_info():
    return {
        "version": API_VERSION,
        "commit_sha": os.getenv("GIT_COMMIT_SHA") or os.getenv("BUILD_SHA") or "unknown",
        "environment": os.getenv("ENVIRONMENT", "development"),
    }


# Whole-document validation failures: 400 with field errors, nothing written
@app.exception_handler(PortfolioValidationError)
async def portfolio_validation_handler(request: Request, exc: PortfolioValidationError):
    logger.info(
        "Portfolio content rejected path=%s errors=%s",
        request.url.path,
        [(e.path, e.reason) for e in exc.errors],
    )
    return JSONResponse(
        status_code=400,
        content={
            "detail": "Invalid portfolio content",
            "errors": [e.model_dump() for e in exc.errors],
        },
    )


# Validation error handler: log request_id + full errors (loc path)
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = str(uuid.uuid4())
    errors = exc.errors()
    logger.warning(
        "Request validation failed request_id=%s path=%s errors=%s",
        request_id,
        request.url.path,
        [(e.get("loc"), e.get("msg"), e.get("type")) for e in errors],
    )
    return JSONResponse(
        status_code=422,
        content={"detail": [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in errors], "request_id": request_id},
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "server:app",
        host="0.0.0.0",
        port=8001,
        reload=os.getenv("ENVIRONMENT") == "development"
    )
