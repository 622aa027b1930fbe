"""
Pytest configuration for the stocknotify backend tests.

- Adds backend/ to sys.path so `import stocknotify.*` works without installing.
- Points DATABASE_URL at a throwaway SQLite file before the app is imported.
- Gives every test its own SQLite database with the full schema.
"""
import os
import sys
import tempfile
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker


def _ensure_project_root_in_sys_path() -> None:
    # backend/tests/conftest.py -> parents[1] == backend/
    project_root = str(Path(__file__).resolve().parents[1])
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


def _ensure_test_env_vars() -> None:
    """Safe dummy settings; real values come from backend/.env or the environment."""
    os.environ.setdefault("DATABASE_URL", f"sqlite:///{Path(tempfile.gettempdir()) / 'stocknotify_import.db'}")
    os.environ.setdefault("CHANNEL_SENDER", "logging")
    os.environ.setdefault("RETRY_JOB_ENABLED", "false")


_ensure_project_root_in_sys_path()
_ensure_test_env_vars()

from stocknotify.core.constants import ALL_CHANNELS  # noqa: E402
from stocknotify.db.base import Base  # noqa: E402
import stocknotify.models  # noqa: E402,F401
from stocknotify.models.inventory import Inventory  # noqa: E402
from stocknotify.models.product import Product  # noqa: E402
from stocknotify.models.user import User  # noqa: E402
from stocknotify.services.channels import Delivery, set_channel_sender  # noqa: E402


class FakeSender:
    """Records every delivery; fails when `fail` is set or the user is in `fail_users`."""

    def __init__(self, fail: bool = False, error: str | None = None) -> None:
        self.fail = fail
        self.error = error
        self.fail_users: set[int] = set()
        self.deliveries: list[Delivery] = []

    def send(self, db: Session, delivery: Delivery) -> bool:
        self.deliveries.append(delivery)
        if self.fail or delivery.user_id in self.fail_users:
            if self.error:
                raise RuntimeError(self.error)
            return False
        return True


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sender():
    fake = FakeSender()
    set_channel_sender(fake)
    yield fake
    set_channel_sender(None)


@pytest.fixture
def make_user(db):
    def _make(user_id: int | None = None, name: str = "Ada", email: str | None = None) -> User:
        n = db.query(User).count() + 1
        row = User(id=user_id, name=name, email=email or f"user{user_id or n}@example.com")
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    return _make


@pytest.fixture
def make_product(db):
    def _make(product_id: int | None = None, name: str = "Linen shirt", stock: int = 0) -> Product:
        row = Product(id=product_id, name=name)
        db.add(row)
        db.flush()
        db.add(Inventory(product_id=row.id, stock=stock))
        db.commit()
        db.refresh(row)
        return row

    return _make


def all_channels_on(user_id: int = 1, product_id: int = 1, message: str = "hi") -> Delivery:
    return Delivery(user_id, product_id, message, **{f"{c}_enabled": True for c in ALL_CHANNELS})
