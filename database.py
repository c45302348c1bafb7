"""In-memory stand-in for the relational database.

A ``Database`` owns every entity collection plus the locks guarding them.
One instance is built per application by ``create_database`` and handed to
request handlers through the ``get_db`` dependency; ``crud`` holds the
operations that read and mutate it.
"""
import itertools
import threading
from typing import Dict, Iterator, Tuple

from fastapi import Request

from models import Application, Company, Job, User


class Database:
    def __init__(self) -> None:
        self.users: Dict[str, User] = {}
        self.users_by_email: Dict[str, str] = {}
        self.companies: Dict[str, Company] = {}
        self.jobs: Dict[str, Job] = {}
        self.applications: Dict[str, Application] = {}
        # (job_id, user_id) -> application id
        self.application_index: Dict[Tuple[str, str], str] = {}
        # user_id -> job ids in save order (dict used as an ordered set)
        self.saved_jobs: Dict[str, Dict[str, None]] = {}

        # Lock order when several are held: applications before jobs
        self.users_lock = threading.RLock()
        self.companies_lock = threading.RLock()
        self.jobs_lock = threading.RLock()
        self.applications_lock = threading.RLock()
        self.saved_jobs_lock = threading.RLock()

        self._counters: Dict[str, Iterator[int]] = {}
        self._counters_lock = threading.Lock()

    def next_id(self, collection: str) -> str:
        with self._counters_lock:
            counter = self._counters.setdefault(collection, itertools.count(1))
            return str(next(counter))


def create_database(settings=None) -> Database:
    """Build a fresh store, loading the demo data when enabled."""
    db = Database()
    if settings is not None and settings.seed_demo_data:
        # Imported here; seed depends on crud which depends on this module
        from seed import seed_demo_data

        seed_demo_data(db, settings)
    return db


def get_db(request: Request) -> Database:
    return request.app.state.db
