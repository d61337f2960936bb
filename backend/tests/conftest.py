import datetime as dt
import secrets
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from finboard.config import SESSION_COOKIE_NAME
from finboard.db import Base, get_db
from finboard.main import create_app
from finboard.models import Session, Transaction, User
from finboard.services.auth_service import hash_password


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def app(session_factory):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture()
def client(app):
    return TestClient(app)


def make_user(db, name="Ann", email=None, role="user", password=None, created_at=None):
    user = User(
        name=name,
        email=email or f"{name.lower()}@example.com",
        role=role,
        password_hash=hash_password(password) if password else None,
    )
    if created_at is not None:
        user.created_at = created_at
    db.add(user)
    db.commit()
    return user


def make_session(db, user, expires_in=dt.timedelta(days=1)):
    row = Session(
        token=secrets.token_urlsafe(16),
        user_id=user.id,
        expires_at=dt.datetime.now(dt.timezone.utc) + expires_in,
    )
    db.add(row)
    db.commit()
    return row.token


def login_as(client, db, user):
    token = make_session(db, user)
    client.cookies.set(SESSION_COOKIE_NAME, token)
    return token


def make_transaction(db, user, concept="Salary", amount="100.00", date=None):
    tx = Transaction(concept=concept, amount=Decimal(amount), date=date or dt.date(2024, 1, 15), user_id=user.id)
    db.add(tx)
    db.commit()
    return tx


@pytest.fixture()
def admin(db):
    return make_user(db, name="Root", email="root@example.com", role="admin")


@pytest.fixture()
def member(db):
    return make_user(db, name="Bob", email="bob@example.com", role="user")


@pytest.fixture()
def admin_client(client, db, admin):
    login_as(client, db, admin)
    return client


@pytest.fixture()
def member_client(client, db, member):
    login_as(client, db, member)
    return client
