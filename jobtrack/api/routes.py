"""
FastAPI Routes for JobTrack

REST endpoints for users and their job applications.

Run with: uvicorn jobtrack.api.routes:app --reload
"""

from typing import Optional, List, Dict
from datetime import datetime
import logging

from fastapi import FastAPI, HTTPException, Depends, Body, Request, Response, Security
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from jobtrack import __version__
from jobtrack.core.config import get_settings
from jobtrack.core.database import get_database
from jobtrack.core.errors import JobTrackError
from jobtrack.core.schemas import (
    JobRecord, JobCreate, JobUpdate, UserRegister, UserLogin, UserOut, AuthResponse
)
from jobtrack.services.auth import TokenManager, UserService
from jobtrack.services.job_store import JobStore, OwnerJobs

logger = logging.getLogger(__name__)

settings = get_settings()

# ============================================================================
# FastAPI App Setup
# ============================================================================

app = FastAPI(
    title="JobTrack API",
    description="Personal job application tracker",
    version=__version__
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

bearer = HTTPBearer(auto_error=False)

_token_manager: Optional[TokenManager] = None


# ============================================================================
# Dependencies
# ============================================================================

def get_token_manager() -> TokenManager:
    """Process-wide token manager."""
    global _token_manager
    if _token_manager is None:
        _token_manager = TokenManager()
    return _token_manager


def get_session():
    """One database session per request."""
    yield from get_database().session_scope()


def get_user_service(
    session: Session = Depends(get_session),
    tokens: TokenManager = Depends(get_token_manager),
) -> UserService:
    return UserService(session, tokens)


def get_owner_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer),
    users: UserService = Depends(get_user_service),
) -> str:
    """
    Resolve the bearer token to the owning user's id.

    Raises AuthError (401) if the token is missing, invalid, expired,
    or belongs to a deleted account.
    """
    token = credentials.credentials if credentials else None
    user_id = users.tokens.resolve(token)
    return users.get(user_id).id


def get_owner_jobs(
    owner_id: str = Depends(get_owner_id),
    session: Session = Depends(get_session),
) -> OwnerJobs:
    return JobStore(session).for_owner(owner_id)


# ============================================================================
# Error Handlers
# ============================================================================

@app.exception_handler(JobTrackError)
async def jobtrack_error_handler(request: Request, exc: JobTrackError):
    """Map the error taxonomy onto HTTP statuses."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies are reported as a field error map with status 400."""
    errors: Dict[str, str] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        errors[loc[-1] if loc else "body"] = error.get("msg", "Invalid value")
    logger.warning(f"{request.method} {request.url.path}: invalid request {errors}")
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request", "errors": errors}
    )


# ============================================================================
# Health Check
# ============================================================================

@app.get("/")
async def root():
    return {"message": "Job application API is working!"}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": __version__
    }


# ============================================================================
# User Endpoints
# ============================================================================

@app.post("/users/register", response_model=AuthResponse, status_code=201)
def register(request: UserRegister, users: UserService = Depends(get_user_service)):
    """Create an account and return a session token."""
    user, token = users.register(request)
    return AuthResponse(user=user.to_schema(), token=token)


@app.post("/users/login", response_model=AuthResponse)
def login(request: UserLogin, users: UserService = Depends(get_user_service)):
    """Exchange credentials for a session token."""
    user, token = users.login(request)
    return AuthResponse(user=user.to_schema(), token=token)


@app.get("/users/me", response_model=UserOut)
def get_me(
    owner_id: str = Depends(get_owner_id),
    users: UserService = Depends(get_user_service),
):
    """Current user."""
    return users.get(owner_id).to_schema()


# ============================================================================
# Job Endpoints
# ============================================================================

@app.get("/jobs", response_model=List[JobRecord])
def list_jobs(jobs: OwnerJobs = Depends(get_owner_jobs)):
    """All job applications of the authenticated user."""
    return jobs.list()


@app.post("/jobs", response_model=JobRecord, status_code=201)
def create_job(request: Optional[JobCreate] = Body(None), jobs: OwnerJobs = Depends(get_owner_jobs)):
    """
    Create a job application.

    Position, company and applied date are required; a 400 response
    carries an ``errors`` map naming each missing field.
    """
    try:
        return jobs.create(request or JobCreate())
    except JobTrackError:
        raise
    except Exception as e:
        logger.error(f"Job creation error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/jobs/{job_id}", response_model=JobRecord)
def get_job(job_id: str, jobs: OwnerJobs = Depends(get_owner_jobs)):
    """Get one job application."""
    return jobs.get(job_id)


@app.patch("/jobs/{job_id}", response_model=JobRecord)
def update_job(job_id: str, request: JobUpdate, jobs: OwnerJobs = Depends(get_owner_jobs)):
    """Merge the supplied fields into a job application."""
    try:
        return jobs.update(job_id, request)
    except JobTrackError:
        raise
    except Exception as e:
        logger.error(f"Job update error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.delete("/jobs/{job_id}", status_code=204)
def delete_job(job_id: str, jobs: OwnerJobs = Depends(get_owner_jobs)):
    """Delete a job application. Irreversible."""
    jobs.delete(job_id)
    return Response(status_code=204)


# ============================================================================
# Startup Event
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Initialize on startup."""
    logger.info("JobTrack API starting up...")
    get_database()


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    logger.info("JobTrack API shutting down...")
