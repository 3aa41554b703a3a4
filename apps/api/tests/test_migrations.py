import importlib.util
from pathlib import Path

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError

from models.credit_transaction import CreditTransaction
from models.user_credits import UserCredits


VERSIONS_DIR = Path(__file__).resolve().parents[1] / "alembic" / "versions"


def _load_revision(filename):
    spec = importlib.util.spec_from_file_location(filename.removesuffix(".py"), VERSIONS_DIR / filename)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _run(engine, step):
    with engine.begin() as conn:
        ctx = MigrationContext.configure(conn)
        with Operations.context(ctx):
            step()


@pytest.fixture
def migrated_engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'migrated.db'}")
    revision = _load_revision("20261019_000001_initial_credit_tables.py")
    _run(engine, revision.upgrade)
    yield engine, revision
    engine.dispose()


def test_initial_revision_is_the_only_root():
    revisions = [_load_revision(path.name) for path in sorted(VERSIONS_DIR.glob("*.py"))]
    assert [module.revision for module in revisions if module.down_revision is None] == ["20261019_000001"]


def test_initial_revision_matches_models(migrated_engine):
    engine, _ = migrated_engine
    inspector = inspect(engine)

    assert set(inspector.get_table_names()) == {"user_credits", "credit_transactions"}
    for model in (UserCredits, CreditTransaction):
        migrated = {column["name"] for column in inspector.get_columns(model.__tablename__)}
        assert migrated == {column.name for column in model.__table__.columns}

    balance_indexes = {index["name"]: index for index in inspector.get_indexes("user_credits")}
    assert balance_indexes["ix_user_credits_user_id"]["unique"]
    unique_keys = inspector.get_unique_constraints("credit_transactions")
    assert [(key["name"], key["column_names"]) for key in unique_keys] == [
        ("uq_credit_transactions_user_reference", ["user_id", "external_reference"])
    ]


def test_migrated_schema_enforces_ledger_constraints(migrated_engine):
    engine, _ = migrated_engine

    with pytest.raises(IntegrityError):
        with engine.begin() as conn:
            conn.execute(text("INSERT INTO user_credits (id, user_id, credits, plan) VALUES ('b1', 'u1', -1, 'free')"))

    insert_reference = text(
        "INSERT INTO credit_transactions (user_id, amount, type, description, external_reference) "
        "VALUES (:user_id, 40, 'purchase', 'Pack', 'evt_1')"
    )
    with engine.begin() as conn:
        conn.execute(insert_reference, {"user_id": "u1"})
        conn.execute(insert_reference, {"user_id": "u2"})
    with pytest.raises(IntegrityError):
        with engine.begin() as conn:
            conn.execute(insert_reference, {"user_id": "u1"})


def test_initial_revision_downgrades_cleanly(migrated_engine):
    engine, revision = migrated_engine
    _run(engine, revision.downgrade)
    assert inspect(engine).get_table_names() == []
