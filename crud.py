from typing import List, Optional

import structlog

import errors
import models
import schemas
from database import Database

logger = structlog.get_logger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


# --- User CRUD ---
def get_user_by_id(db: Database, user_id: str) -> Optional[models.User]:
    """Get a user by their primary key ID."""
    return db.users.get(user_id)


def get_user_by_email(db: Database, email: str) -> Optional[models.User]:
    with db.users_lock:
        user_id = db.users_by_email.get(_normalize_email(email))
        return db.users.get(user_id) if user_id else None


def create_user(
    db: Database,
    email: str,
    password_hash: str,
    name: str,
    role: models.Role = models.Role.USER,
    profile: Optional[models.UserProfile] = None,
) -> models.User:
    key = _normalize_email(email)
    with db.users_lock:
        if key in db.users_by_email:
            raise errors.ConflictError("User already exists")
        db_user = models.User(
            id=db.next_id("users"),
            email=email.strip(),
            password_hash=password_hash,
            name=name,
            role=role,
            profile=profile,
        )
        db.users[db_user.id] = db_user
        db.users_by_email[key] = db_user.id
    logger.info("User created", user_id=db_user.id, role=db_user.role.value)
    return db_user


def _patch_changes(patch: schemas.PatchSchema) -> dict:
    """Fields explicitly set on a patch; explicit nulls are rejected."""
    changes = {field: getattr(patch, field) for field in patch.model_fields_set}
    for field, value in changes.items():
        if value is None:
            raise errors.ValidationError(f"{field} cannot be null")
    return changes


def update_user(db: Database, user_id: str, patch: schemas.UserPatch) -> models.User:
    changes = _patch_changes(patch)
    with db.users_lock:
        db_user = db.users.get(user_id)
        if db_user is None:
            raise errors.NotFoundError("User not found")
        for field, value in changes.items():
            setattr(db_user, field, value)
        db_user.updated_at = models.utcnow()
    return db_user


# --- Company CRUD ---
def create_company(
    db: Database, name: str, tier: str, employees: str, founded: int
) -> models.Company:
    with db.companies_lock:
        company = models.Company(
            id=db.next_id("companies"),
            name=name,
            tier=tier,
            employees=employees,
            founded=founded,
        )
        db.companies[company.id] = company
    return company


def get_company(db: Database, company_id: str) -> models.Company:
    company = db.companies.get(company_id)
    if company is None:
        raise errors.NotFoundError("Company not found")
    return company


def list_companies(db: Database) -> List[models.Company]:
    with db.companies_lock:
        return list(db.companies.values())


# --- Job CRUD ---
def get_job(db: Database, job_id: str) -> models.Job:
    job = db.jobs.get(job_id)
    if job is None:
        raise errors.NotFoundError("Job not found")
    return job


def list_jobs(db: Database) -> List[models.Job]:
    with db.jobs_lock:
        return list(db.jobs.values())


def create_job(db: Database, job: schemas.JobCreate) -> models.Job:
    """Creates an active job with no applicants under an existing company."""
    if job.company_id not in db.companies:
        raise errors.ValidationError(f"Unknown company: {job.company_id}")
    with db.jobs_lock:
        db_job = models.Job(id=db.next_id("jobs"), **job.model_dump())
        db.jobs[db_job.id] = db_job
    logger.info("Job created", job_id=db_job.id, company_id=db_job.company_id)
    return db_job


def update_job(db: Database, job_id: str, patch: schemas.JobPatch) -> models.Job:
    changes = _patch_changes(patch)
    with db.jobs_lock:
        db_job = db.jobs.get(job_id)
        if db_job is None:
            raise errors.NotFoundError("Job not found")
        salary_min = changes.get("salary_min", db_job.salary_min)
        salary_max = changes.get("salary_max", db_job.salary_max)
        if salary_min > salary_max:
            raise errors.ValidationError("salaryMin must not exceed salaryMax")
        # Shallow merge; the applicant counter stays with the stored record
        for field, value in changes.items():
            setattr(db_job, field, value)
        db_job.updated_at = models.utcnow()
    logger.info("Job updated", job_id=job_id, fields=sorted(changes))
    return db_job


def delete_job(db: Database, job_id: str) -> None:
    with db.jobs_lock:
        if db.jobs.pop(job_id, None) is None:
            raise errors.NotFoundError("Job not found")
    logger.info("Job deleted", job_id=job_id)


# --- Application CRUD ---
def create_application(
    db: Database,
    user_id: str,
    job_id: str,
    cover_letter: Optional[str] = None,
    resume: Optional[str] = None,
) -> models.Application:
    """Submit an application and bump the job's applicant counter.

    The existence check, the duplicate check, the insert and the counter
    increment run under the applications and jobs locks, so concurrent
    submissions for the same (job, user) pair yield exactly one application.
    """
    key = (job_id, user_id)
    with db.applications_lock, db.jobs_lock:
        job = db.jobs.get(job_id)
        if job is None:
            raise errors.NotFoundError("Job not found")
        if key in db.application_index:
            logger.info("Duplicate application rejected", job_id=job_id, user_id=user_id)
            raise errors.ConflictError("Already applied to this job")

        application = models.Application(
            id=db.next_id("applications"),
            job_id=job_id,
            user_id=user_id,
            cover_letter=cover_letter,
            resume=resume,
        )
        db.applications[application.id] = application
        db.application_index[key] = application.id
        try:
            job.applicants += 1
        except Exception:
            del db.applications[application.id]
            del db.application_index[key]
            raise
    logger.info(
        "Application created",
        application_id=application.id,
        job_id=job_id,
        user_id=user_id,
    )
    return application


def get_application(db: Database, application_id: str) -> models.Application:
    application = db.applications.get(application_id)
    if application is None:
        raise errors.NotFoundError("Application not found")
    return application


def list_applications_by_user(db: Database, user_id: str) -> List[models.Application]:
    with db.applications_lock:
        return [a for a in db.applications.values() if a.user_id == user_id]


def list_applications_by_job(db: Database, job_id: str) -> List[models.Application]:
    with db.applications_lock:
        return [a for a in db.applications.values() if a.job_id == job_id]


def list_applications(db: Database) -> List[models.Application]:
    with db.applications_lock:
        return list(db.applications.values())


def update_application_status(
    db: Database, application_id: str, status: str
) -> models.Application:
    try:
        new_status = models.ApplicationStatus(status)
    except ValueError:
        raise errors.ValidationError("Invalid status")

    with db.applications_lock:
        application = get_application(db, application_id)
        application.status = new_status
        application.updated_at = models.utcnow()
    logger.info(
        "Application status updated",
        application_id=application_id,
        status=new_status.value,
    )
    return application


# --- Saved jobs ---
def save_job(db: Database, user_id: str, job_id: str) -> None:
    get_job(db, job_id)
    with db.saved_jobs_lock:
        db.saved_jobs.setdefault(user_id, {})[job_id] = None


def unsave_job(db: Database, user_id: str, job_id: str) -> None:
    with db.saved_jobs_lock:
        db.saved_jobs.get(user_id, {}).pop(job_id, None)


def list_saved_jobs(db: Database, user_id: str) -> List[models.Job]:
    """Saved jobs in save order; jobs deleted since are skipped."""
    with db.saved_jobs_lock:
        job_ids = list(db.saved_jobs.get(user_id, {}))
    jobs = (db.jobs.get(job_id) for job_id in job_ids)
    return [job for job in jobs if job is not None]
