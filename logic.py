import math
from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional

import structlog

import errors
import models
import schemas

logger = structlog.get_logger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20


def _positive_int_or_default(value: Any, default: int) -> int:
    """Lenient paging parameter: missing, non-numeric or < 1 means default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


def _non_negative_int(value: Any, field: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise errors.ValidationError(f"{field} must be a whole number")
    if number < 0:
        raise errors.ValidationError(f"{field} must not be negative")
    return number


@dataclass(frozen=True)
class JobFilters:
    category: Optional[str] = None
    company_id: Optional[str] = None
    experience_level: Optional[str] = None
    work_mode: Optional[str] = None
    min_salary: Optional[int] = None
    search: Optional[str] = None
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @classmethod
    def from_query(
        cls,
        category: Optional[str] = None,
        company_id: Optional[str] = None,
        experience_level: Optional[str] = None,
        work_mode: Optional[str] = None,
        min_salary: Any = None,
        search: Optional[str] = None,
        page: Any = None,
        limit: Any = None,
    ) -> "JobFilters":
        """Build filters from raw query-string values.

        Empty strings count as "not given". ``page`` and ``limit`` fall back to
        their defaults when unusable; ``min_salary`` must parse as a
        non-negative integer or a ValidationError is raised.
        """
        return cls(
            category=category or None,
            company_id=company_id or None,
            experience_level=experience_level or None,
            work_mode=work_mode or None,
            min_salary=_non_negative_int(min_salary, "minSalary"),
            search=search or None,
            page=_positive_int_or_default(page, DEFAULT_PAGE),
            limit=_positive_int_or_default(limit, DEFAULT_LIMIT),
        )


def _company_name(companies: Mapping[str, models.Company], job: models.Job) -> str:
    company = companies.get(job.company_id)
    return company.name if company else ""


def _matches_search(job: models.Job, company_name: str, needle: str) -> bool:
    return (
        needle in job.title.lower()
        or needle in company_name.lower()
        or needle in job.description.lower()
    )


def filter_jobs(
    jobs: Iterable[models.Job],
    companies: Mapping[str, models.Company],
    filters: JobFilters,
) -> schemas.JobPage:
    """Apply the filters conjunctively, then paginate the matching jobs.

    Predicates are independent, so the order only affects how early a job
    drops out: category, company, experience level, work mode, minimum
    salary (against the top of the range), then free-text search over title,
    company name and description.
    """
    matching: List[models.Job] = list(jobs)
    if filters.category:
        matching = [j for j in matching if j.category == filters.category]
    if filters.company_id:
        matching = [j for j in matching if j.company_id == filters.company_id]
    if filters.experience_level:
        matching = [j for j in matching if j.experience_level == filters.experience_level]
    if filters.work_mode:
        matching = [j for j in matching if j.work_mode == filters.work_mode]
    if filters.min_salary is not None:
        matching = [j for j in matching if j.salary_max >= filters.min_salary]
    if filters.search:
        needle = filters.search.lower()
        matching = [
            j for j in matching if _matches_search(j, _company_name(companies, j), needle)
        ]

    total = len(matching)
    start = (filters.page - 1) * filters.limit
    logger.debug("Jobs filtered", total=total, page=filters.page, limit=filters.limit)
    return schemas.JobPage(
        items=matching[start : start + filters.limit],
        total=total,
        page=filters.page,
        page_count=math.ceil(total / filters.limit),
    )


def analytics_overview(
    jobs: List[models.Job],
    applications: List[models.Application],
    total_users: int,
    total_companies: int,
) -> schemas.AnalyticsOverview:
    jobs_by_category = Counter(job.category for job in jobs)
    applications_by_status = Counter(app.status.value for app in applications)
    average = len(applications) / len(jobs) if jobs else 0
    return schemas.AnalyticsOverview(
        total_jobs=len(jobs),
        total_applications=len(applications),
        total_users=total_users,
        total_companies=total_companies,
        jobs_by_category=dict(jobs_by_category),
        applications_by_status=dict(applications_by_status),
        average_applications_per_job=average,
    )
