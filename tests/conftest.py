import os

# Debe ir antes de importar la app: settings se lee al importar
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ["ENV"] = "development"
os.environ["AI_API_KEY"] = ""
os.environ["RATE_LIMIT_MAX"] = "1000"
os.environ["AI_RATE_LIMIT_MAX"] = "1000"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from blogosphere.core.rate_limit import limiter
from blogosphere.db.models import Base
from blogosphere.db.session import get_db
from blogosphere.main import app
from blogosphere.users.service import UserService


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    # Contadores de rate limit a cero en cada test
    limiter.reset()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(client):
    """Registra y loguea un usuario; devuelve (user_json, headers)"""
    def _make(email="alice@example.com", password="secret123", **extra):
        payload = {"email": email, "password": password, **extra}
        response = client.post("/api/users/register", json=payload)
        assert response.status_code == 201, response.text

        response = client.post("/api/users/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        data = response.json()["data"]
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _make


@pytest.fixture
def make_admin(make_user, db):
    def _make(email="admin@example.com", password="secret123"):
        user, headers = make_user(email=email, password=password, username="admin")
        UserService.set_role(db, email, "admin")
        return user, headers

    return _make


@pytest.fixture
def make_post(client):
    def _make(headers, **overrides):
        payload = {
            "title": "T",
            "content": "C",
            "category": "technology",
            "status": "draft",
        }
        payload.update(overrides)
        response = client.post("/api/posts", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _make
