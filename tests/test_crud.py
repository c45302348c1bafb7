from concurrent.futures import ThreadPoolExecutor

import pydantic
import pytest

import crud
import errors
import models
import schemas
from database import Database


def make_job(db: Database, company: models.Company, **overrides) -> models.Job:
    fields = {
        "company_id": company.id,
        "title": "Backend Engineer",
        "category": "engineering",
        "description": "Own the payments API",
        "salary_min": 100000,
        "salary_max": 150000,
    }
    fields.update(overrides)
    return crud.create_job(db, schemas.JobCreate(**fields))


def make_user(db: Database, email: str = "jane@example.com") -> models.User:
    return crud.create_user(db, email, "hash", "Jane")


# --- Users ---
def test_create_user_assigns_id_and_default_role(empty_db):
    user = make_user(empty_db)
    assert user.id == "1"
    assert user.role is models.Role.USER
    assert crud.get_user_by_id(empty_db, "1") is user


def test_duplicate_email_conflicts_regardless_of_other_fields(empty_db):
    make_user(empty_db, "dup@example.com")
    with pytest.raises(errors.ConflictError):
        crud.create_user(empty_db, "dup@example.com", "other-hash", "Someone Else")
    with pytest.raises(errors.ConflictError):
        crud.create_user(empty_db, " DUP@example.com ", "hash", "Upper")
    assert len(empty_db.users) == 1


def test_get_user_by_email_is_case_insensitive(empty_db):
    user = make_user(empty_db, "Mixed@Example.com")
    assert crud.get_user_by_email(empty_db, "mixed@example.com") is user
    assert crud.get_user_by_email(empty_db, "missing@example.com") is None


def test_update_user_patches_name_and_profile(empty_db):
    user = make_user(empty_db)
    patch = schemas.UserPatch(name="Jane Q", profile=models.UserProfile(skills=["Go"]))
    updated = crud.update_user(empty_db, user.id, patch)
    assert updated.name == "Jane Q"
    assert updated.profile.skills == ["Go"]
    assert updated.updated_at is not None


def test_update_user_rejects_null_name(empty_db):
    user = make_user(empty_db)
    with pytest.raises(errors.ValidationError):
        crud.update_user(empty_db, user.id, schemas.UserPatch(name=None))
    assert crud.get_user_by_id(empty_db, user.id).name == "Jane"


def test_update_missing_user(empty_db):
    with pytest.raises(errors.NotFoundError):
        crud.update_user(empty_db, "404", schemas.UserPatch(name="x"))


# --- Jobs ---
def test_create_job_starts_active_with_no_applicants(empty_db, company):
    job = make_job(empty_db, company)
    assert job.status is models.JobStatus.ACTIVE
    assert job.applicants == 0
    assert crud.get_job(empty_db, job.id) is job


def test_create_job_requires_known_company(empty_db):
    with pytest.raises(errors.ValidationError):
        crud.create_job(
            empty_db,
            schemas.JobCreate(company_id="nope", title="x", category="y"),
        )
    assert empty_db.jobs == {}


def test_update_job_merges_allowed_fields(empty_db, company):
    job = make_job(empty_db, company)
    updated = crud.update_job(
        empty_db, job.id, schemas.JobPatch(title="Staff Engineer", status="closed")
    )
    assert updated.title == "Staff Engineer"
    assert updated.status is models.JobStatus.CLOSED
    assert updated.category == "engineering"
    assert updated.updated_at is not None


def test_update_job_rejects_unknown_fields():
    with pytest.raises(pydantic.ValidationError):
        schemas.JobPatch(applicants=999)


def test_update_job_checks_salary_range_after_merge(empty_db, company):
    job = make_job(empty_db, company)
    with pytest.raises(errors.ValidationError):
        crud.update_job(empty_db, job.id, schemas.JobPatch(salary_min=200000))
    assert crud.get_job(empty_db, job.id).salary_min == 100000


def test_update_and_delete_missing_job(empty_db):
    with pytest.raises(errors.NotFoundError):
        crud.update_job(empty_db, "99", schemas.JobPatch(title="x"))
    with pytest.raises(errors.NotFoundError):
        crud.delete_job(empty_db, "99")


def test_delete_job(empty_db, company):
    job = make_job(empty_db, company)
    crud.delete_job(empty_db, job.id)
    with pytest.raises(errors.NotFoundError):
        crud.get_job(empty_db, job.id)


# --- Applications ---
def test_apply_twice_conflicts_and_counts_once(empty_db, company):
    job = make_job(empty_db, company)
    user = make_user(empty_db)

    application = crud.create_application(empty_db, user.id, job.id, cover_letter="Hi")
    assert application.status is models.ApplicationStatus.PENDING
    assert job.applicants == 1

    with pytest.raises(errors.ConflictError):
        crud.create_application(empty_db, user.id, job.id)
    assert job.applicants == 1
    assert len(empty_db.applications) == 1


def test_apply_to_missing_job_changes_nothing(empty_db, company):
    job = make_job(empty_db, company)
    user = make_user(empty_db)
    with pytest.raises(errors.NotFoundError):
        crud.create_application(empty_db, user.id, "99999")
    assert empty_db.applications == {}
    assert job.applicants == 0


def test_concurrent_duplicate_applications_yield_one(empty_db, company):
    job = make_job(empty_db, company)
    user = make_user(empty_db)

    def attempt(_):
        try:
            crud.create_application(empty_db, user.id, job.id)
            return "created"
        except errors.ConflictError:
            return "conflict"

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(attempt, range(32)))

    assert outcomes.count("created") == 1
    assert outcomes.count("conflict") == 31
    assert job.applicants == 1


def test_list_applications_by_user_and_job_keep_insertion_order(empty_db, company):
    first = make_job(empty_db, company)
    second = make_job(empty_db, company, title="Data Engineer")
    jane = make_user(empty_db)
    joe = make_user(empty_db, "joe@example.com")

    a1 = crud.create_application(empty_db, jane.id, second.id)
    a2 = crud.create_application(empty_db, jane.id, first.id)
    a3 = crud.create_application(empty_db, joe.id, second.id)

    assert crud.list_applications_by_user(empty_db, jane.id) == [a1, a2]
    assert crud.list_applications_by_job(empty_db, second.id) == [a1, a3]
    assert crud.list_applications_by_user(empty_db, "nobody") == []


def test_update_application_status(empty_db, company):
    job = make_job(empty_db, company)
    user = make_user(empty_db)
    application = crud.create_application(empty_db, user.id, job.id)

    updated = crud.update_application_status(empty_db, application.id, "reviewing")
    assert updated.status is models.ApplicationStatus.REVIEWING

    with pytest.raises(errors.ValidationError):
        crud.update_application_status(empty_db, application.id, "hired")
    assert application.status is models.ApplicationStatus.REVIEWING

    with pytest.raises(errors.NotFoundError):
        crud.update_application_status(empty_db, "42", "accepted")


# --- Saved jobs ---
def test_save_is_idempotent_and_unsave_removes(empty_db, company):
    job = make_job(empty_db, company)
    crud.save_job(empty_db, "u1", job.id)
    crud.save_job(empty_db, "u1", job.id)
    assert crud.list_saved_jobs(empty_db, "u1") == [job]

    crud.unsave_job(empty_db, "u1", job.id)
    assert crud.list_saved_jobs(empty_db, "u1") == []


def test_unsave_absent_entry_is_noop(empty_db):
    crud.unsave_job(empty_db, "u1", "7")
    assert crud.list_saved_jobs(empty_db, "u1") == []


def test_save_missing_job_raises(empty_db):
    with pytest.raises(errors.NotFoundError):
        crud.save_job(empty_db, "u1", "404")
    assert crud.list_saved_jobs(empty_db, "u1") == []


def test_saved_jobs_skip_deleted_jobs_and_keep_order(empty_db, company):
    first = make_job(empty_db, company)
    second = make_job(empty_db, company, title="SRE")
    third = make_job(empty_db, company, title="QA")
    for job in (third, first, second):
        crud.save_job(empty_db, "u1", job.id)

    crud.delete_job(empty_db, first.id)
    assert crud.list_saved_jobs(empty_db, "u1") == [third, second]


def test_saved_jobs_are_per_user(empty_db, company):
    job = make_job(empty_db, company)
    crud.save_job(empty_db, "u1", job.id)
    assert crud.list_saved_jobs(empty_db, "u2") == []
