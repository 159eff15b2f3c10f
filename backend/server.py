from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
import uuid
from contextlib import asynccontextmanager
from database import database
from routes import orders, webhooks, admin, ai

import os
import logging
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = "http://localhost:3000,https://mycurriculo.vercel.app"


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting Curriculo API")
    if os.environ.get("PYTEST_RUNNING"):
        logger.info("PYTEST_RUNNING set - skipping MongoDB connection")
    else:
        await database.connect()

    # Stripe config: log mode (test/live) from key prefix (no secret keys)
    stripe_key = (os.environ.get("STRIPE_SECRET_KEY") or os.environ.get("STRIPE_API_KEY") or "").strip()
    if not stripe_key:
        logger.error("STRIPE_API_KEY / STRIPE_SECRET_KEY is not set. Checkout will fail.")
    else:
        stripe_mode = "test" if stripe_key.startswith("sk_test_") else "live"
        logger.info("STRIPE_MODE = %s (from Stripe key prefix)", stripe_mode)
        if stripe_mode == "test" and os.environ.get("ENVIRONMENT", "").lower() == "production":
            logger.warning("STRIPE_API_KEY looks like test key but ENVIRONMENT is production. Verify key.")
    if not os.environ.get("ADMIN_TOKEN"):
        logger.warning("ADMIN_TOKEN is not set - admin order panel is disabled")

    yield

    # Shutdown
    logger.info("Shutting down Curriculo API")
    await database.close()

# Create FastAPI app
app = FastAPI(
    title="Curriculo API",
    description="Resume builder: orders, Stripe checkout and paid PDF download",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=os.environ.get('CORS_ORIGINS', DEFAULT_CORS_ORIGINS).split(','),
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# Include routers
app.include_router(orders.router)
app.include_router(webhooks.router)
app.include_router(admin.router)
app.include_router(ai.router)  # Objective drafting


# Health check
@app.get("/api/health")
async def health_check():
    return {
        "status": "healthy",
        "environment": os.getenv("ENVIRONMENT", "development")
    }


# Version/build stamp for deployment verification (commit SHA set by CI/CD, e.g. GIT_COMMIT_SHA)
@app.get("/api/version")
async def version_info():
    return {
        "commit_sha": os.getenv("GIT_COMMIT_SHA", os.getenv("BUILD_SHA", "unknown")),
        "environment": os.getenv("ENVIRONMENT", "development"),
    }


# Validation error handler: log request_id + full errors (loc path) for order form debugging
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = str(uuid.uuid4())
    errors = exc.errors()
    path = getattr(request, "url", None) and getattr(request.url, "path", "") or ""
    logger.warning(
        "Request validation failed request_id=%s path=%s errors=%s",
        request_id,
        path,
        [(e.get("loc"), e.get("msg"), e.get("type")) for e in errors],
    )
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(errors), "request_id": request_id},
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
        port=int(os.getenv("PORT", "8001")),
        reload=os.getenv("ENVIRONMENT") == "development"
    )
