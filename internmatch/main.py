"""
InternMatch - Main Application

FastAPI backend for the internship marketplace:
- MongoDB for profiles, internships, applications and resume metadata
- Supabase Auth for identity (JWT verification only)
- Supabase Storage for resume files (signed URLs, no bytes through the API)
- SMTP for notification emails

Run: uvicorn internmatch.main:app --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from internmatch.api.routes import api_router
from internmatch.core.config import get_settings
from internmatch.core.errors import InternMatchError
from internmatch.db.mongodb import init_mongo_indexes, test_mongo_connection

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="InternMatch",
    description="""
    Two-sided internship marketplace API.

    ## Features
    - **Profiles**: Student and company profiles tied to Supabase users
    - **Internships**: Post, browse, search and update internships
    - **Applications**: Submit, withdraw and review with a status pipeline
    - **Resumes**: Direct-to-storage uploads, scan gating, signed access URLs
    - **Saved**: Bookmark internships

    ## Errors
    Every error response is `{"error": "<message>"}`, sometimes with extra
    fields such as `missing_fields`.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware (frontend origin plus local development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url] if not settings.debug else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.exception_handler(InternMatchError)
async def internmatch_error_handler(request: Request, exc: InternMatchError):
    if exc.status_code >= 500:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path,
                       exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"error": f"{field}: {message}" if field else message},
    )


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize MongoDB indexes on startup."""
    try:
        init_mongo_indexes()
    except Exception as e:
        logger.warning("MongoDB index initialization failed: %s", e)


@app.get("/health", tags=["Health"])
async def health_check():
    return {
        "status": "healthy",
        "mongodb": "connected" if test_mongo_connection() else "disconnected"
    }
