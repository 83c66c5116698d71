"""
Test Configuration and Fixtures

This module provides:
- Test environment (temporary SQLite database, mock payment gateway) set before app imports
- Database reset for integration tests
- A session-scoped TestClient running the test app lifespan

Architecture:
- Unit tests (@pytest.mark.unit): stubbed collaborators, no database
- Integration tests: real SQLite database (aiosqlite), recreated per test
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# Settings are read once at import time (src.platform.config.core_setting)
# =============================================================================
import os
from pathlib import Path
import tempfile


def _early_setup_test_environment() -> None:
    """Set test environment variables before any module imports."""
    worker_id = os.environ.get('PYTEST_XDIST_WORKER', 'master')
    db_dir = Path(tempfile.mkdtemp(prefix=f'checkout_test_{worker_id}_'))
    os.environ['DATABASE_URL'] = f'sqlite+aiosqlite:///{db_dir / "checkout_test.db"}'

    # Create test log directory
    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)

    os.environ['PAYMENT_GATEWAY'] = 'mock'
    os.environ['MPESA_SHORTCODE'] = '174379'
    os.environ['MPESA_CALLBACK_SECRET'] = 'test-callback-secret'
    os.environ['SECRET_KEY'] = 'test-session-secret'
    os.environ['STALE_ORDER_SWEEP_ENABLED'] = 'false'
    os.environ.setdefault('RATE_LIMIT_MAX_ATTEMPTS', '5')

    # Anything not forced above comes from the developer's env file
    from dotenv import load_dotenv

    env_file = Path(__file__).parent.parent / '.env'
    load_dotenv(env_file if env_file.exists() else env_file.with_name('.env.example'))


# Call immediately to set env vars before any imports
_early_setup_test_environment()

import asyncio  # noqa: E402
from collections.abc import AsyncGenerator, Generator  # noqa: E402
from typing import Any  # noqa: E402

from fastapi.testclient import TestClient  # noqa: E402
import pytest  # noqa: E402

from src.platform.database.orm_db_setting import (  # noqa: E402
    create_db_and_tables,
    dispose_engine,
    drop_db_and_tables,
)


# =============================================================================
# Pytest Hooks: integration tests get a clean database
# =============================================================================
def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        markers = [m.name for m in item.iter_markers()]
        if 'unit' not in markers:
            item.fixturenames.append('clean_database')


# =============================================================================
# Integration Test Fixtures
# =============================================================================
@pytest.fixture(scope='function')
async def clean_database() -> AsyncGenerator[None, None]:
    await drop_db_and_tables()
    await create_db_and_tables()
    yield

    from src.platform.database.orm_db_setting import _engine_manager

    # Only dispose an engine that belongs to this test's event loop; the TestClient
    # portal runs on its own loop and keeps its engine
    if _engine_manager._loop is asyncio.get_running_loop():
        await dispose_engine()


# =============================================================================
# Session-scoped Fixtures
# =============================================================================
@pytest.fixture(scope='session')
def client() -> Generator[Any, None, None]:
    from test.test_main import app

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def clear_client_cookies(request: pytest.FixtureRequest) -> Generator[None, None, None]:
    # Skip for unit tests - they don't use the HTTP client
    if 'unit' in [m.name for m in request.node.iter_markers()]:
        yield
        return
    if 'client' not in request.fixturenames:
        yield
        return
    client = request.getfixturevalue('client')
    client.cookies.clear()
    yield
    client.cookies.clear()
