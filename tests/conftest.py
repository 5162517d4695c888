"""Shared fixtures: an in-memory database, seed rows and an API client"""

import os
from datetime import timedelta

# Point the app at a throwaway database before anything imports it
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.models import Customer, Job, User
from app.shared.dates import utcnow


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user(db):
    user = User(name="Dana Reyes", email="dana@example.com", role="admin", is_active=True, is_pending=False)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def other_user(db):
    user = User(name="Sam Ortiz", email="sam@example.com", role="sales", is_active=True, is_pending=False)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def customer(db, user):
    customer = Customer(
        name="Harbor View Condos",
        primary_phone="555-0100",
        primary_email="office@harborview.example",
        created_by=user.id,
    )
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


@pytest.fixture
def make_job(db, customer, user):
    """Factory inserting a job directly, bypassing the service layer"""

    def _make_job(**overrides):
        fields = {
            "customer_id": customer.id,
            "title": "Kitchen countertops",
            "stage": "ESTIMATE_IN_PROGRESS",
            "value_estimated": 4200.0,
            "created_by": user.id,
        }
        fields.update(overrides)
        job = Job(**fields)
        db.add(job)
        db.commit()
        db.refresh(job)
        return job

    return _make_job


@pytest.fixture
def days_ago():
    now = utcnow()
    return lambda days: now - timedelta(days=days)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(user):
    return {"X-User-Id": str(user.id)}
