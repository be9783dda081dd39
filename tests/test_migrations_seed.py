import os
import uuid
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, func, inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from app.laptrack.core.config import settings
from app.laptrack.db.models import ClientCompany, Laptop, Shipment, ShipmentLaptop, User
from app.laptrack.db.seed import run_seed


def _run_migrations(database_url: str):
    os.environ["DATABASE_URL"] = database_url
    config = Config("alembic.ini")
    config.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(config, "head")


def _migrated_session(tmp_path: Path, name: str):
    database_url = f"sqlite+pysqlite:///{tmp_path / name}"
    _run_migrations(database_url)
    engine = create_engine(database_url, future=True)
    return engine, sessionmaker(bind=engine, future=True)


def test_migrations_apply(tmp_path: Path):
    engine, _ = _migrated_session(tmp_path, "migrations.db")
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())

    assert {
        "client_companies",
        "software_engineers",
        "users",
        "shipments",
        "laptops",
        "shipment_laptops",
        "pickup_forms",
        "reception_reports",
        "audit_logs",
    } <= tables

    indexes = {index["name"]: index for index in inspector.get_indexes("shipment_laptops")}
    assert indexes["uq_shipment_laptops_active_laptop"]["unique"]
    audit_indexes = [index["name"] for index in inspector.get_indexes("audit_logs")]
    assert audit_indexes.count("ix_audit_logs_trace_id") == 1


def test_active_link_index_allows_one_active_shipment_per_laptop(tmp_path: Path):
    _, SessionLocal = _migrated_session(tmp_path, "links.db")

    with SessionLocal() as db:
        company = ClientCompany(id=uuid.uuid4(), name="Acme")
        laptop = Laptop(id=uuid.uuid4(), serial_number="SN-IDX", status="at_warehouse")
        shipments = [
            Shipment(
                id=uuid.uuid4(),
                shipment_type="bulk_to_warehouse",
                status="pending_pickup",
                client_company_id=company.id,
                jira_ticket_number=f"SCOP-{index}",
            )
            for index in range(3)
        ]
        db.add_all([company, laptop, *shipments])
        db.commit()

        db.add(ShipmentLaptop(shipment_id=shipments[0].id, laptop_id=laptop.id, is_active=False))
        db.add(ShipmentLaptop(shipment_id=shipments[1].id, laptop_id=laptop.id, is_active=True))
        db.commit()

        db.add(ShipmentLaptop(shipment_id=shipments[2].id, laptop_id=laptop.id, is_active=True))
        with pytest.raises(IntegrityError):
            db.commit()


def test_seed_is_idempotent(tmp_path: Path):
    _, SessionLocal = _migrated_session(tmp_path, "seed.db")

    with SessionLocal() as db:
        run_seed(db)
        users_count = db.scalar(select(func.count()).select_from(User))

        run_seed(db)
        users_count_after = db.scalar(select(func.count()).select_from(User))

        assert users_count == 1
        assert users_count_after == users_count
        user = db.execute(select(User)).scalar_one()
        assert user.username == settings.BOOTSTRAP_LOGISTICS_USERNAME
        assert user.role == "logistics"
