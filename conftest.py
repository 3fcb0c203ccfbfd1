"""Pytest configuration and shared fixtures."""

import os
import pytest

from db.client import Database

# Load env vars
from dotenv import load_dotenv
load_dotenv()


# =============================================================================
# SAFETY CHECK: Prevent tests from running against production database
# =============================================================================

ALLOWED_DB_HOSTS = {"localhost", "127.0.0.1", "host.docker.internal", "db", "postgres"}


def _db_host() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        from urllib.parse import urlparse
        return urlparse(url).hostname or "localhost"
    return os.getenv("HOTELBEDS_DB_HOST", "localhost")


def pytest_configure(config):
    """Register custom markers and check database safety."""
    config.addinivalue_line("markers", "no_db: mark test to skip database setup")
    config.addinivalue_line("markers", "integration: mark test as integration test (hits external services)")
    config.addinivalue_line("markers", "online: mark test as online test (hits external APIs)")

    # Check database host
    db_host = _db_host()

    if db_host not in ALLOWED_DB_HOSTS:
        pytest.exit(
            f"\n\n"
            f"{'=' * 60}\n"
            f"SAFETY CHECK FAILED: Cannot run tests against production DB!\n"
            f"{'=' * 60}\n"
            f"\n"
            f"Current database host: {db_host}\n"
            f"Allowed hosts: {', '.join(sorted(ALLOWED_DB_HOSTS))}\n"
            f"\n"
            f"To run tests, set HOTELBEDS_DB_HOST to 'localhost' in your .env\n"
            f"{'=' * 60}\n",
            returncode=1,
        )


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def database(request):
    """Connected Database handle for tests that need a real pool.

    Tests marked with @pytest.mark.no_db cannot use it.
    """
    if "no_db" in [marker.name for marker in request.node.iter_markers()]:
        pytest.fail("database fixture used by a no_db test")

    db = Database.from_env()
    await db.connect()
    yield db
    await db.close()
