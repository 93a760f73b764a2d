"""
Test configuration and fixtures for the Access Audit API.

The database URL is fixed before any app module is imported, so the
app's engine, the Celery helper engine and the fixtures below all point
at the same throwaway database.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
import os
import tempfile
from typing import Dict, Generator, List, Optional

from dotenv import load_dotenv

load_dotenv()

test_db_url = os.getenv("TEST_DATABASE_URL")
if test_db_url:
    if "postgresql://" in test_db_url and "asyncpg" not in test_db_url:
        test_db_url = test_db_url.replace("postgresql://", "postgresql+asyncpg://")
else:
    test_db_path = os.path.join(tempfile.mkdtemp(), "access_audit_test.db")
    test_db_url = f"sqlite+aiosqlite:///{test_db_path}"
os.environ["DATABASE_URL"] = test_db_url

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.features.auth.models.user import User
from app.features.scan.models import Scan, Violation  # noqa: F401
from app.features.scan.schemas.page_audit import AffectedNode, PageAuditResult, RuleViolation
from app.platform.db.base import Base

# NullPool: every test runs on its own event loop, connections must not outlive it
test_engine = create_async_engine(test_db_url, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(test_engine, expire_on_commit=False, autoflush=False)


def run_in_fresh_loop(coro):
    """
    Run a coroutine to completion from sync code.

    asyncio.run() on a worker thread leaves the main thread's current
    event loop alone, so sync fixtures can be mixed with async tests.
    """
    with ThreadPoolExecutor(max_workers=1) as executor:
        return executor.submit(asyncio.run, coro).result()


async def _reset_schema():
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture(autouse=True)
def fresh_schema():
    """Every test starts from empty tables."""
    run_in_fresh_loop(_reset_schema())
    yield


async def override_get_db():
    async with TestSessionLocal() as session:
        yield session


@pytest.fixture
async def test_db():
    async with TestSessionLocal() as session:
        yield session


async def _create_user(email: str) -> User:
    async with TestSessionLocal() as session:
        user = User(email=email, name=email.split("@")[0])
        session.add(user)
        await session.commit()
        return user


@pytest.fixture
def test_user() -> User:
    return run_in_fresh_loop(_create_user("auditor@example.com"))


@pytest.fixture
def other_user() -> User:
    return run_in_fresh_loop(_create_user("someone-else@example.com"))


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from app.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app) -> Generator[TestClient, None, None]:
    from app.platform.db.session import get_db

    test_app.dependency_overrides[get_db] = override_get_db
    with TestClient(test_app) as test_client:
        yield test_client
    test_app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def auth_client(client, test_app, test_user):
    """Client with the get_current_user dependency overridden for authenticated tests."""
    from app.features.auth.routes.auth import get_current_user

    test_app.dependency_overrides[get_current_user] = lambda: test_user

    yield client

    test_app.dependency_overrides.pop(get_current_user, None)


# ---------------------------------------------------------------------------
# Page audit builders
# ---------------------------------------------------------------------------

def make_rule(rule_id: str, impact: Optional[str], node_count: int = 1) -> RuleViolation:
    return RuleViolation(
        id=rule_id,
        impact=impact,
        description=f"{rule_id} description",
        help=f"Fix {rule_id}",
        help_url=f"https://dequeuniversity.com/rules/axe/4.8/{rule_id}",
        nodes=[
            AffectedNode(html=f"<div id='{rule_id}-{i}'></div>", target=[f"#{rule_id}-{i}"])
            for i in range(node_count)
        ],
    )


def make_page(url: str, rules: List[RuleViolation]) -> PageAuditResult:
    return PageAuditResult(url=url, violations=rules)


class FakeAuditor:
    """
    Page auditor double. `pages` maps URL -> result, or -> an exception
    instance to raise for that URL.
    """

    def __init__(self, pages: Dict[str, object]):
        self.pages = pages
        self.calls: List[str] = []

    def audit(self, url: str) -> PageAuditResult:
        self.calls.append(url)
        outcome = self.pages[url]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome
