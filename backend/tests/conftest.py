import os

# must be set before roomchat builds its engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from roomchat.db.session import Base, SessionLocal, engine  # noqa: E402
from roomchat.main import create_app  # noqa: E402


class RecordingTransport:
    def __init__(self):
        self.sent = []

    def deliver(self, connection_id, event, payload):
        self.sent.append((connection_id, event, payload))

    def received(self, connection_id):
        return [payload for cid, _, payload in self.sent if cid == connection_id]


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def app(transport):
    return create_app(transport=transport)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
    Base.metadata.drop_all(bind=engine)
