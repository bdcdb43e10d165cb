import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from cardledger.api.deps import get_file_store, get_mailer, get_store
from cardledger.clients.files import LocalFileStore
from cardledger.db.schema import metadata
from cardledger.db.store import LedgerStore
from cardledger.errors import DependencyError
from cardledger.main import app


class FakeMailer:
    """Records sends instead of calling the email provider."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to, subject, html, attachments=None):
        if self.fail:
            raise DependencyError(f"Email delivery to {to} failed: provider down")
        self.sent.append(
            {"to": to, "subject": subject, "html": html, "attachments": attachments or []}
        )
        return f"msg-{len(self.sent)}"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return LedgerStore(engine)


@pytest.fixture
def files(tmp_path):
    return LocalFileStore(tmp_path / "storage", "test-secret", "http://testserver")


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def client(store, files, mailer):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_file_store] = lambda: files
    app.dependency_overrides[get_mailer] = lambda: mailer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
