import importlib
import os
from pathlib import Path

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from alembic import command
from alembic.config import Config

from tests.db_utils import create_postgres_test_database


def _setup_app(database_url: str):
    os.environ["DATABASE_URL"] = database_url
    os.environ["SECRET_KEY"] = "test-secret"

    import app.laptrack.core.config as config
    import app.laptrack.db.session as session
    import app.main as main

    importlib.reload(config)
    importlib.reload(session)
    importlib.reload(main)

    return main.create_app(), session


def _run_migrations(database_url: str):
    os.environ["DATABASE_URL"] = database_url
    config = Config("alembic.ini")
    config.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(config, "head")


@pytest.fixture()
def storage(tmp_path: Path):
    from app.laptrack.services.file_storage import LocalFileStorage

    return LocalFileStorage(
        base_path=str(tmp_path / "uploads"),
        staging_path=str(tmp_path / "staging"),
        url_prefix="/uploads",
    )


@pytest.fixture()
def outbox():
    from app.laptrack.services.notifier import LoggingTransport

    return LoggingTransport()


@pytest.fixture()
def client(tmp_path: Path, storage, outbox):
    database_url = os.getenv("DATABASE_URL", "")
    cleanup = None

    if database_url.startswith("postgres"):
        database_url, cleanup = create_postgres_test_database(database_url)
    else:
        db_path = tmp_path / "test.db"
        database_url = f"sqlite+pysqlite:///{db_path}"

    _run_migrations(database_url)
    app, session = _setup_app(database_url)

    from app.laptrack.db.session import get_db
    from app.laptrack.services.file_storage import get_file_storage
    from app.laptrack.services.notifier import EmailNotifier, get_notifier

    def _notifier(db=Depends(get_db)):
        return EmailNotifier(db, outbox)

    app.dependency_overrides[get_file_storage] = lambda: storage
    app.dependency_overrides[get_notifier] = _notifier

    with TestClient(app) as client:
        yield client

    session.engine.dispose()
    if cleanup:
        cleanup()


@pytest.fixture()
def db_session(client):
    from app.laptrack.db.session import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
