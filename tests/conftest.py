import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from my_assistant.bot import AssistantBot, ConversationStateStore, FlowController
from my_assistant.reports import ReportEngine
from my_assistant.storage import AttachmentStore, JsonDocumentStore
from tests.doubles import TZ, FakeClock, FakeExporter, FakeGateway


# ============== Shared Fixtures ==============


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def document_store(tmp_path):
    """Create a fresh JSON document store in a temp directory."""
    store = JsonDocumentStore(tmp_path / "data")
    store.initialize()
    return store


@pytest.fixture()
def attachment_store(tmp_path):
    store = AttachmentStore(tmp_path / "attachments")
    store.initialize()
    return store


@pytest.fixture()
def reports(document_store, clock):
    return ReportEngine(document_store, tz=TZ, clock=clock)


@pytest.fixture()
def exporter():
    return FakeExporter()


@pytest.fixture()
def states():
    return ConversationStateStore()


@pytest.fixture()
def flows(document_store, reports, exporter, states, clock):
    return FlowController(document_store, reports, exporter, states=states, clock=clock)


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def assistant(gateway, document_store, attachment_store, flows):
    return AssistantBot(gateway, document_store, attachment_store, flows, tz=TZ)


@pytest.fixture()
def mock_mailer():
    return MagicMock()


# ============== Firestore Fixtures ==============


@pytest.fixture()
def mock_firestore_client():
    """Create a fresh in-memory MockFirestoreClient."""
    from tests.mock_firestore import MockFirestoreClient
    return MockFirestoreClient()


@pytest.fixture()
def firestore_store(mock_firestore_client):
    """Create a FirestoreDocumentStore backed by the in-memory mock."""
    from my_assistant.storage.firestore_store import FirestoreDocumentStore
    return FirestoreDocumentStore(collection="assistant_data", db_client=mock_firestore_client)
