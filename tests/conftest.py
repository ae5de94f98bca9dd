"""Pytest configuration and fixtures."""
import pytest

from coinledger import create_app
from coinledger.extensions import db
from coinledger.tokens import issue_api_token


ADMIN_EMAIL = "admin@example.com"


@pytest.fixture
def app():
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "AUTO_MIGRATE": False,
            "AUTO_CREATE_DB": True,
            "ADMIN_EMAIL": ADMIN_EMAIL,
            "ADMIN_USERNAME": "admin",
        }
    )

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """App context for calling the service layer directly."""
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers(app):
    with app.app_context():
        token = issue_api_token(ADMIN_EMAIL)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def seed(app):
    """Insert rows outside any request and commit them."""

    def _seed(*rows):
        with app.app_context():
            db.session.add_all(rows)
            db.session.commit()
            return [row.id for row in rows]

    return _seed
