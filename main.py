from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

import auth
import crud
import errors
import logic
import models
import schemas
from auth import Identity, get_app_settings, get_current_admin, get_current_user
from database import Database, create_database, get_db
from observability import init_observability, metric_scope
from request_id_middleware import RequestIdMiddleware
from settings import Settings, get_settings

# Initialise observability before creating app
init_observability()
logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api")


def _public(user: models.User) -> schemas.UserPublic:
    # Drops password_hash: UserPublic ignores fields it does not declare
    return schemas.UserPublic.model_validate(user.model_dump())


@router.get("/health", tags=["Health"])
def health_check():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


# --- Auth Endpoints ---
@router.post(
    "/auth/register",
    response_model=schemas.TokenResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Auth"],
)
def register(
    user: schemas.UserCreate,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    # Checked again atomically on insert; this just skips the bcrypt work
    if crud.get_user_by_email(db, user.email):
        raise errors.ConflictError("User already exists")
    password_hash = auth.hash_password(user.password, settings.bcrypt_rounds)
    db_user = crud.create_user(db, user.email, password_hash, user.name)
    logger.info("User registered", user_id=db_user.id)
    return schemas.TokenResponse(
        message="User created successfully",
        token=auth.create_access_token(db_user, settings),
        user=_public(db_user),
    )


@router.post("/auth/login", response_model=schemas.TokenResponse, tags=["Auth"])
def login(
    credentials: schemas.LoginRequest,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    db_user = crud.get_user_by_email(db, credentials.email)
    if not db_user or not auth.verify_password(credentials.password, db_user.password_hash):
        logger.warning("Login failed")
        raise errors.UnauthenticatedError("Invalid credentials")
    return schemas.TokenResponse(
        message="Login successful",
        token=auth.create_access_token(db_user, settings),
        user=_public(db_user),
    )


@router.get("/auth/me", response_model=schemas.UserPublic, tags=["Auth"])
def get_me(identity: Identity = Depends(get_current_user), db: Database = Depends(get_db)):
    """Returns the authenticated user's record without the password hash."""
    db_user = crud.get_user_by_id(db, identity.id)
    if db_user is None:
        raise errors.NotFoundError("User not found")
    return _public(db_user)


@router.patch("/auth/me", response_model=schemas.UserPublic, tags=["Auth"])
def update_me(
    patch: schemas.UserPatch,
    identity: Identity = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    return _public(crud.update_user(db, identity.id, patch))


# --- Job Endpoints ---
@router.get("/jobs", response_model=schemas.JobPage, tags=["Jobs"])
def list_jobs(
    db: Database = Depends(get_db),
    category: Optional[str] = None,
    company_id: Optional[str] = Query(None, alias="companyId"),
    experience_level: Optional[str] = Query(None, alias="experienceLevel"),
    work_mode: Optional[str] = Query(None, alias="workMode"),
    min_salary: Optional[str] = Query(None, alias="minSalary"),
    search: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
):
    filters = logic.JobFilters.from_query(
        category=category,
        company_id=company_id,
        experience_level=experience_level,
        work_mode=work_mode,
        min_salary=min_salary,
        search=search,
        page=page,
        limit=limit,
    )
    return logic.filter_jobs(crud.list_jobs(db), db.companies, filters)


@router.get("/jobs/{job_id}", response_model=models.Job, tags=["Jobs"])
def get_job(job_id: str, db: Database = Depends(get_db)):
    return crud.get_job(db, job_id)


@router.post(
    "/jobs",
    response_model=models.Job,
    status_code=status.HTTP_201_CREATED,
    tags=["Jobs"],
)
def create_job(
    job: schemas.JobCreate,
    admin: Identity = Depends(get_current_admin),
    db: Database = Depends(get_db),
):
    return crud.create_job(db, job)


@router.put("/jobs/{job_id}", response_model=models.Job, tags=["Jobs"])
def update_job(
    job_id: str,
    patch: schemas.JobPatch,
    admin: Identity = Depends(get_current_admin),
    db: Database = Depends(get_db),
):
    return crud.update_job(db, job_id, patch)


@router.delete("/jobs/{job_id}", response_model=schemas.Message, tags=["Jobs"])
def delete_job(
    job_id: str,
    admin: Identity = Depends(get_current_admin),
    db: Database = Depends(get_db),
):
    logger.info("Deleting job", job_id=job_id, admin_id=admin.id)
    crud.delete_job(db, job_id)
    return schemas.Message(message="Job deleted successfully")


# --- Application Endpoints ---
@metric_scope
async def submit_application(
    db: Database,
    identity: Identity,
    payload: schemas.ApplicationCreate,
    metrics=None,
) -> models.Application:
    """Create the application for the caller and count the outcome."""
    metrics.set_property("job_id", payload.job_id)
    try:
        application = crud.create_application(
            db,
            user_id=identity.id,
            job_id=payload.job_id,
            cover_letter=payload.cover_letter,
            resume=payload.resume,
        )
    except errors.ConflictError:
        metrics.put_metric("applications_duplicate", 1, "Count")
        raise
    metrics.put_metric("applications_submitted", 1, "Count")
    return application


@router.post(
    "/applications",
    response_model=models.Application,
    status_code=status.HTTP_201_CREATED,
    tags=["Applications"],
)
async def apply_to_job(
    payload: schemas.ApplicationCreate,
    identity: Identity = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    return await submit_application(db, identity, payload)


@router.get("/applications/my", response_model=List[models.Application], tags=["Applications"])
def list_my_applications(
    identity: Identity = Depends(get_current_user), db: Database = Depends(get_db)
):
    return crud.list_applications_by_user(db, identity.id)


@router.get(
    "/applications/job/{job_id}",
    response_model=List[models.Application],
    tags=["Applications"],
)
def list_job_applications(
    job_id: str,
    admin: Identity = Depends(get_current_admin),
    db: Database = Depends(get_db),
):
    return crud.list_applications_by_job(db, job_id)


@router.patch(
    "/applications/{application_id}/status",
    response_model=models.Application,
    tags=["Applications"],
)
def update_application_status(
    application_id: str,
    update: schemas.ApplicationStatusUpdate,
    admin: Identity = Depends(get_current_admin),
    db: Database = Depends(get_db),
):
    return crud.update_application_status(db, application_id, update.status)


# --- Saved Job Endpoints ---
@router.post("/saved-jobs/{job_id}", response_model=schemas.Message, tags=["Saved Jobs"])
def save_job(
    job_id: str,
    identity: Identity = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    crud.save_job(db, identity.id, job_id)
    return schemas.Message(message="Job saved successfully")


@router.delete("/saved-jobs/{job_id}", response_model=schemas.Message, tags=["Saved Jobs"])
def unsave_job(
    job_id: str,
    identity: Identity = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    crud.unsave_job(db, identity.id, job_id)
    return schemas.Message(message="Job unsaved successfully")


@router.get("/saved-jobs", response_model=List[models.Job], tags=["Saved Jobs"])
def list_saved_jobs(
    identity: Identity = Depends(get_current_user), db: Database = Depends(get_db)
):
    return crud.list_saved_jobs(db, identity.id)


# --- Company Endpoints ---
@router.get("/companies", response_model=List[models.Company], tags=["Companies"])
def list_companies(db: Database = Depends(get_db)):
    return crud.list_companies(db)


@router.get("/companies/{company_id}", response_model=models.Company, tags=["Companies"])
def get_company(company_id: str, db: Database = Depends(get_db)):
    return crud.get_company(db, company_id)


@router.get("/companies/{company_id}/jobs", response_model=schemas.JobPage, tags=["Companies"])
def list_company_jobs(
    company_id: str,
    db: Database = Depends(get_db),
    page: Optional[str] = None,
    limit: Optional[str] = None,
):
    crud.get_company(db, company_id)
    filters = logic.JobFilters.from_query(company_id=company_id, page=page, limit=limit)
    return logic.filter_jobs(crud.list_jobs(db), db.companies, filters)


# --- Analytics Endpoints ---
@router.get("/analytics/overview", response_model=schemas.AnalyticsOverview, tags=["Analytics"])
def analytics_overview(
    admin: Identity = Depends(get_current_admin), db: Database = Depends(get_db)
):
    return logic.analytics_overview(
        jobs=crud.list_jobs(db),
        applications=crud.list_applications(db),
        total_users=len(db.users),
        total_companies=len(db.companies),
    )


# --- Error handling ---
async def job_board_error_handler(request: Request, exc: errors.JobBoardError):
    if exc.status_code >= 500:
        logger.error("Request failed", error=exc.message, path=request.url.path)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"][1:]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "details": details},
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = "Route not found" if exc.status_code == 404 else exc.detail
    return JSONResponse(status_code=exc.status_code, content={"error": message})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error", path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": errors.InternalError.default_message},
    )


def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    # Sync on purpose: SlowAPIMiddleware calls the handler without awaiting
    logger.warning("Rate limit exceeded", client=get_remote_address(request))
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": "Too many requests from this IP, please try again later"},
    )


def create_app(settings: Optional[Settings] = None, db: Optional[Database] = None) -> FastAPI:
    """Build the API around its own settings and store."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Job Board",
        description="Job board API: listings, applications, saved jobs and analytics",
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.db = db if db is not None else create_database(settings)

    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit],
        enabled=settings.rate_limit_enabled,
    )
    app.state.limiter = limiter

    app.add_exception_handler(errors.JobBoardError, job_board_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(router)
    return app


app = create_app()


# --- Main execution --- (for running with uvicorn)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
