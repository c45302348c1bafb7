from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from models import Job, JobStatus, Role, UserProfile


class Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PatchSchema(Schema):
    # Patches name their mutable fields; anything else is rejected
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )


# --- Auth / users ---
class UserCreate(Schema):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)
    name: str = Field(min_length=1)


class LoginRequest(Schema):
    email: str
    password: str


class UserPublic(Schema):
    """User as returned to clients; never carries the password hash."""

    id: str
    email: str
    name: str
    role: Role
    profile: Optional[UserProfile] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class TokenResponse(Schema):
    message: str
    token: str
    user: UserPublic


class UserPatch(PatchSchema):
    name: Optional[str] = Field(default=None, min_length=1)
    profile: Optional[UserProfile] = None


# --- Jobs ---
class JobCreate(Schema):
    company_id: str
    title: str = Field(min_length=1)
    category: str = Field(min_length=1)
    description: str = ""
    requirements: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    location: str = "Remote"
    experience_level: str = "Mid"
    job_type: str = "Full-time"
    work_mode: str = "Remote"
    salary_min: int = Field(default=0, ge=0)
    salary_max: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_salary_range(self) -> "JobCreate":
        if self.salary_min > self.salary_max:
            raise ValueError("salaryMin must not exceed salaryMax")
        return self


class JobPatch(PatchSchema):
    title: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    requirements: Optional[List[str]] = None
    skills: Optional[List[str]] = None
    location: Optional[str] = None
    experience_level: Optional[str] = None
    job_type: Optional[str] = None
    work_mode: Optional[str] = None
    salary_min: Optional[int] = Field(default=None, ge=0)
    salary_max: Optional[int] = Field(default=None, ge=0)
    status: Optional[JobStatus] = None


class JobPage(Schema):
    items: List[Job] = Field(alias="jobs")
    total: int
    page: int
    page_count: int = Field(alias="pages")


# --- Applications ---
class ApplicationCreate(Schema):
    job_id: str = Field(min_length=1)
    cover_letter: Optional[str] = None
    resume: Optional[str] = None


class ApplicationStatusUpdate(Schema):
    # Checked against ApplicationStatus by the store, not here
    status: str


# --- Misc ---
class Message(Schema):
    message: str


class AnalyticsOverview(Schema):
    total_jobs: int
    total_applications: int
    total_users: int
    total_companies: int
    jobs_by_category: Dict[str, int]
    applications_by_status: Dict[str, int]
    average_applications_per_job: float
