import pytest

from app import create_app
from database import get_db


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / 'learnify_test.db')


@pytest.fixture
def app(db_path):
    return create_app({
        'TESTING': True,
        'DATABASE_PATH': db_path,
        'QUIZ_RANDOM_SEED': '1234',
        'LOG_LEVEL': 'WARNING'
    })


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app, db_path):
    """Store connection on the same file the app uses (tables already created)."""
    database = get_db(db_path)
    yield database
    database.disconnect()
