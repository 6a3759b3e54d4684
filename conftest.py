"""
Pytest configuration file.

This file is automatically loaded by pytest and provides global test configuration.
It ensures the project's source directory is added to the Python path so that
modules can be imported properly during test execution, and provides an
in-memory database plus helpers for building Excel files.
"""
import os
import sys
from io import BytesIO

import pandas as pd
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add the current directory to the Python path
# This ensures imports work correctly when running tests
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from database import init_db  # noqa: E402


def make_excel(rows, columns=None) -> bytes:
    """
    Build an .xlsx file in memory.

    Args:
        rows: List of dicts (or lists when columns is given), one per data row
        columns: Optional explicit header order

    Returns:
        bytes: Content of the workbook
    """
    buffer = BytesIO()
    pd.DataFrame(rows, columns=columns).to_excel(buffer, index=False, engine="openpyxl")
    return buffer.getvalue()


@pytest.fixture
def excel_factory():
    """Fixture exposing make_excel to tests."""
    return make_excel


@pytest.fixture
def engine():
    """
    Fixture providing a fresh in-memory SQLite database with all tables created.

    StaticPool keeps a single connection so every session sees the same data.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.close()
