"""Pytest configuration and fixtures."""
import pytest
from unittest.mock import MagicMock

from schemas.nonconformity import (
    NonConformityRecord,
    NonConformitySeverity,
    NonConformityType,
)
from constructsafe.connectors.mail_transport import MailTransport
from constructsafe.stores.base_store import RecordStore
from constructsafe.stores.memory_store import InMemoryRecordStore


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    """Empty in-memory record store."""
    return InMemoryRecordStore()


@pytest.fixture
def mock_store():
    """Mock record store with no existing records."""
    store = MagicMock(spec=RecordStore)
    store.query.return_value = []
    store.create.return_value = 'record-1'
    return store


@pytest.fixture
def mock_mail_transport():
    """Mock mail transport that accepts everything."""
    transport = MagicMock(spec=MailTransport)
    transport.create_message.return_value = 'msg-1'
    transport.send.return_value = None
    return transport


@pytest.fixture
def safety_record() -> NonConformityRecord:
    """Valid safety record with a manager."""
    return NonConformityRecord(
        name='Missing guardrail',
        type=NonConformityType.SAFETY,
        severity=NonConformitySeverity.MEDIUM,
        location='Level 3',
        description='Guardrail missing on east edge',
        assigned_manager='manager@example.com',
    )


@pytest.fixture
def quality_record() -> NonConformityRecord:
    """Valid quality record without a manager."""
    return NonConformityRecord(
        name='Honeycombing in slab',
        type=NonConformityType.QUALITY,
        severity=NonConformitySeverity.LOW,
        description='Visible voids on pour 12',
    )


@pytest.fixture
def mock_database_connection():
    """Mock database connection."""
    conn = MagicMock()
    conn.cursor.return_value = MagicMock()
    conn.commit.return_value = None
    conn.close.return_value = None
    return conn
