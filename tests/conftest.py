from __future__ import annotations

import itertools
import os
import sys
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
API_DIR = ROOT / "API"
if str(API_DIR) not in sys.path:
    sys.path.insert(0, str(API_DIR))
TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

# Test-mode runtime guards:
# - throwaway sqlite database instead of postgres
# - fixed signing secret so tokens minted here verify in the app
_DB_DIR = tempfile.mkdtemp(prefix="unipilot-tests-")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_DB_DIR}/unipilot.db")
os.environ.setdefault("JWT_SECRET", "unipilot-test-secret-with-enough-length-for-hs256")
os.environ.setdefault("GATEWAY_AUTH_ENABLED", "false")

from unipilot.core.jwt_auth import create_token  # noqa: E402
from unipilot.main import app  # noqa: E402

_student_ids = itertools.count(1000)


@pytest.fixture(scope="session")
def client() -> TestClient:
    with TestClient(app) as tc:
        yield tc


@pytest.fixture
def student_id() -> int:
    return next(_student_ids)


@pytest.fixture
def auth(student_id) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_token(student_id)}"}


@pytest.fixture
def other_auth() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_token(next(_student_ids))}"}
