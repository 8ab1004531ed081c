"""
Pytest configuration for recordfiles tests
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.recordfiles.configs.config import get_config
from src.recordfiles.db.base import Base
from src.recordfiles.storage import get_storage

import sample_models


@pytest.fixture(autouse=True)
def settings(tmp_path, monkeypatch):
    """Local storage and staging directories isolated per test"""
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("LOCAL_PATH", str(tmp_path / "storage"))
    monkeypatch.setenv("LOCAL_BASE_URL", "http://www.mydomain.com/files")
    monkeypatch.setenv("TEMP_PATH", str(tmp_path / "runtime"))
    get_config.cache_clear()
    get_storage.cache_clear()
    yield get_config()
    get_config.cache_clear()
    get_storage.cache_clear()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def session(session_factory):
    """Session with one row per test model, like a freshly seeded database"""
    db = session_factory()
    for model_class in sample_models.ALL_MODELS:
        db.add(model_class(name="test_name"))
    db.commit()
    yield db
    db.close()


@pytest.fixture
def source_dir(tmp_path):
    path = tmp_path / "source"
    path.mkdir()
    return path


@pytest.fixture
def make_source_file(source_dir):
    """Write a test file and return its path"""
    def _make(name: str, content: str | bytes = "Test File Content"):
        path = source_dir / name
        if isinstance(content, str):
            path.write_text(content)
        else:
            path.write_bytes(content)
        return path
    return _make
