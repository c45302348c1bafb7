from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class JobStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    REVIEWING = "reviewing"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Entity(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserProfile(Entity):
    title: Optional[str] = None
    location: Optional[str] = None
    experience: Optional[int] = None
    skills: List[str] = Field(default_factory=list)


class User(Entity):
    id: str
    email: str
    password_hash: str
    name: str
    role: Role = Role.USER
    profile: Optional[UserProfile] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class Company(Entity):
    id: str
    name: str
    tier: str
    employees: str
    founded: int
    created_at: datetime = Field(default_factory=utcnow)


class Job(Entity):
    id: str
    company_id: str
    title: str
    category: str
    description: str
    requirements: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    location: str
    experience_level: str
    job_type: str
    work_mode: str
    salary_min: int
    salary_max: int
    status: JobStatus = JobStatus.ACTIVE
    applicants: int = 0
    posted_date: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class Application(Entity):
    id: str
    job_id: str
    user_id: str
    status: ApplicationStatus = ApplicationStatus.PENDING
    cover_letter: Optional[str] = None
    resume: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
