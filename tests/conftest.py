"""
Pytest configuration and shared fixtures
"""

import os
import tempfile

# Settings are read at import time; point them at a throwaway environment first
os.environ["ENVIRONMENT"] = "test"
os.environ["CACHE_ENABLED"] = "false"
os.environ["DATABASE_URL"] = f"sqlite:///{tempfile.mkdtemp()}/glucose_test.db"

import fitz
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.database import build_engine, get_db, init_db
from app.main import app


@pytest.fixture
def sample_report_text():
    """Sample lab report text with fasting glucose results"""
    return (
        "City Diagnostics Laboratory\n"
        "Patient: Default Patient\n"
        "\n"
        "FASTING PLASMA GLUCOSE\n"
        "Result: 98 mg/dL\n"
        "Reference: 70-100 mg/dL\n"
        "\n"
        "HbA1c: 5.6 %\n"
        "Serum creatinine 0.9 mg/dL\n"
    )


@pytest.fixture
def db_session_factory(tmp_path):
    """Fresh SQLite database per test"""
    engine = build_engine(f"sqlite:///{tmp_path / 'glucose.db'}")
    init_db(engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def client(db_session_factory):
    """API client bound to the per-test database"""
    def override_get_db():
        session = db_session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_pdf(*pages: str) -> bytes:
    """Build an in-memory PDF with one page per text block"""
    document = fitz.open()
    for text in pages:
        page = document.new_page()
        page.insert_text((72, 72), text)
    data = document.tobytes()
    document.close()
    return data


@pytest.fixture
def pdf_factory():
    return make_pdf
