"""Demo data loaded into a fresh store: two accounts, five companies and
three openings per company. Job attributes are drawn from a seeded
``random.Random`` so every start produces the same listings."""
import random
from datetime import timedelta

import structlog

import auth
import crud
import models
import schemas
from database import Database
from settings import Settings

logger = structlog.get_logger(__name__)

COMPANIES = [
    ("Google", "FAANG", "150k+", 1998),
    ("Meta", "FAANG", "77k+", 2004),
    ("Amazon", "FAANG", "1.5M+", 1994),
    ("Apple", "FAANG", "164k+", 1976),
    ("Netflix", "FAANG", "13k+", 1997),
]

JOB_TEMPLATES = [
    {
        "title": "Senior Software Engineer",
        "category": "engineering",
        "description": "Build scalable systems that impact millions of users",
        "requirements": [
            "5+ years experience",
            "Strong CS fundamentals",
            "System design expertise",
        ],
        "skills": ["JavaScript", "Python", "AWS", "Docker", "Kubernetes"],
    },
    {
        "title": "Product Manager",
        "category": "product",
        "description": "Lead product strategy and execution for key initiatives",
        "requirements": [
            "3+ years PM experience",
            "Technical background preferred",
            "Strong analytical skills",
        ],
        "skills": ["Product Strategy", "Analytics", "SQL", "A/B Testing"],
    },
    {
        "title": "Machine Learning Engineer",
        "category": "ai",
        "description": "Develop and deploy ML models at scale",
        "requirements": [
            "MS in CS or related field",
            "3+ years ML experience",
            "Strong Python skills",
        ],
        "skills": ["Python", "TensorFlow", "PyTorch", "Deep Learning", "NLP"],
    },
]

LOCATIONS = ["San Francisco, CA", "New York, NY", "Seattle, WA", "Remote"]
EXPERIENCE_LEVELS = ["Mid", "Senior", "Lead"]
JOB_TYPES = ["Full-time", "Contract"]
WORK_MODES = ["Remote", "Hybrid", "On-site"]


def seed_demo_data(db: Database, settings: Settings) -> None:
    rng = random.Random(settings.demo_seed)

    crud.create_user(
        db,
        email="admin@jobhunt.com",
        password_hash=auth.hash_password("admin123", settings.bcrypt_rounds),
        name="Admin User",
        role=models.Role.ADMIN,
    )
    crud.create_user(
        db,
        email="user@example.com",
        password_hash=auth.hash_password("user123", settings.bcrypt_rounds),
        name="John Doe",
        profile=models.UserProfile(
            title="Senior Software Engineer",
            location="San Francisco, CA",
            experience=5,
            skills=["JavaScript", "React", "Node.js", "Python", "AWS"],
        ),
    )

    now = models.utcnow()
    for name, tier, employees, founded in COMPANIES:
        company = crud.create_company(db, name, tier, employees, founded)
        for template in JOB_TEMPLATES:
            job = crud.create_job(
                db,
                schemas.JobCreate(
                    company_id=company.id,
                    location=rng.choice(LOCATIONS),
                    experience_level=rng.choice(EXPERIENCE_LEVELS),
                    job_type=rng.choice(JOB_TYPES),
                    work_mode=rng.choice(WORK_MODES),
                    salary_min=120000 + rng.randrange(80000),
                    salary_max=200000 + rng.randrange(200000),
                    **template,
                ),
            )
            # Listings start with some history
            job.posted_date = now - timedelta(seconds=rng.uniform(0, 30 * 24 * 3600))
            job.applicants = rng.randrange(50, 550)

    logger.info(
        "Demo data seeded",
        users=len(db.users),
        companies=len(db.companies),
        jobs=len(db.jobs),
    )
