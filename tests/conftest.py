import pytest

from parkwell.storage import MemoryStore, StorageGateway
from parkwell.app import app as flask_app


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def gateway(store):
    return StorageGateway(store)


@pytest.fixture
def app(tmp_path):
    flask_app.config.update(TESTING=True, DATABASE=str(tmp_path / "parkwell-test.db"))
    yield flask_app


@pytest.fixture
def client(app):
    return app.test_client()
