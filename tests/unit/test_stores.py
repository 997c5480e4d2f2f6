"""Unit tests for the record stores."""
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import psycopg2.errors
import pytest

from schemas.nonconformity import NonConformityRecord, NonConformityStatus
from constructsafe.stores.base_store import (
    DuplicateKeyError,
    FilterOperator,
    OrderBy,
    QueryFilter,
    RecordNotFoundError,
    RecordStoreError,
)
from constructsafe.stores.db_store import PostgresRecordStore


class TestInMemoryRecordStore:
    """Test the in-memory store."""

    def test_create_assigns_id_and_created_at(self, memory_store):
        record = NonConformityRecord(name='A')
        record_id = memory_store.create(record)

        stored = memory_store.retrieve(record_id)
        assert stored.id == record_id
        assert stored.created_at is not None
        # Caller's object is not mutated
        assert record.id is None

    def test_unique_ticket_number(self, memory_store):
        memory_store.create(NonConformityRecord(ticket_number='NC-00001'))

        with pytest.raises(DuplicateKeyError):
            memory_store.create(NonConformityRecord(ticket_number='NC-00001'))

    def test_records_without_ticket_do_not_collide(self, memory_store):
        memory_store.create(NonConformityRecord())
        memory_store.create(NonConformityRecord())

        assert memory_store.get_store_stats()['records'] == 2

    def test_query_filters_and_order(self, memory_store):
        memory_store.create(NonConformityRecord(ticket_number='NC-00001'))
        memory_store.create(NonConformityRecord(ticket_number='XX-00009'))
        memory_store.create(NonConformityRecord())
        memory_store.create(NonConformityRecord(ticket_number='NC-00002'))

        results = memory_store.query(
            filters=[
                QueryFilter('ticket_number', FilterOperator.NOT_NULL),
                QueryFilter('ticket_number', FilterOperator.BEGINS_WITH, 'NC-'),
            ],
            order_by=OrderBy('created_at', descending=True),
            limit=1,
        )

        assert [r.ticket_number for r in results] == ['NC-00002']

    def test_retrieve_field_subset(self, memory_store):
        record_id = memory_store.create(
            NonConformityRecord(name='A', description='long text', location='Roof')
        )

        stored = memory_store.retrieve(record_id, ['name', 'location'])
        assert stored.id == record_id
        assert stored.name == 'A'
        assert stored.description is None

    def test_retrieve_field_subset_with_id(self, memory_store):
        record_id = memory_store.create(NonConformityRecord(name='A', location='Roof'))

        stored = memory_store.retrieve(record_id, ['id', 'name'])
        assert stored.id == record_id
        assert stored.name == 'A'
        assert stored.location is None

    def test_retrieve_unknown(self, memory_store):
        with pytest.raises(RecordNotFoundError):
            memory_store.retrieve('missing')

    def test_update(self, memory_store):
        record_id = memory_store.create(NonConformityRecord(name='A'))
        memory_store.update(record_id, {'status': NonConformityStatus.CLOSED})

        assert memory_store.retrieve(record_id).status == NonConformityStatus.CLOSED

    def test_update_unknown(self, memory_store):
        with pytest.raises(RecordNotFoundError):
            memory_store.update('missing', {'name': 'B'})


@pytest.fixture
def db_cursor():
    cursor = MagicMock()
    cursor.description = [('id',)]
    cursor.fetchall.return_value = []
    return cursor


@pytest.fixture
def db_store(mock_database_connection, db_cursor):
    mock_database_connection.cursor.return_value = db_cursor
    return PostgresRecordStore(connection_factory=lambda: mock_database_connection)


class TestPostgresRecordStore:
    """Test SQL generation and error mapping with a mocked connection."""

    def test_build_latest_ticket_query(self, db_store):
        sql, params = db_store.build_query(
            filters=[
                QueryFilter('ticket_number', FilterOperator.NOT_NULL),
                QueryFilter('ticket_number', FilterOperator.BEGINS_WITH, 'NC-'),
            ],
            order_by=OrderBy('created_at', descending=True),
            limit=1,
        )

        assert 'ticket_number IS NOT NULL' in sql
        assert "ticket_number LIKE %s ESCAPE '\\'" in sql
        assert sql.endswith('ORDER BY created_at DESC LIMIT %s')
        assert params == ['NC-%', 1]

    def test_begins_with_escapes_wildcards(self, db_store):
        _, params = db_store.build_query(
            filters=[QueryFilter('name', FilterOperator.BEGINS_WITH, '50%_off')]
        )
        assert params == ['50\\%\\_off%']

    def test_unknown_field_rejected(self, db_store):
        with pytest.raises(ValueError):
            db_store.build_query(order_by=OrderBy('created_at; DROP TABLE x'))

    def test_query_maps_rows(self, db_store, db_cursor, mock_database_connection):
        db_cursor.fetchall.return_value = [
            {'id': 'abc', 'ticket_number': 'NC-00004', 'status': 'Open'},
        ]

        records = db_store.query(limit=1)

        assert records[0].ticket_number == 'NC-00004'
        assert records[0].status == NonConformityStatus.OPEN
        mock_database_connection.commit.assert_called_once()
        mock_database_connection.close.assert_called_once()

    def test_create_maps_unique_violation(self, db_store, db_cursor, mock_database_connection):
        db_cursor.execute.side_effect = psycopg2.errors.UniqueViolation('duplicate key')

        with pytest.raises(DuplicateKeyError) as exc_info:
            db_store.create(NonConformityRecord(ticket_number='NC-00001'))

        assert exc_info.value.value == 'NC-00001'
        mock_database_connection.rollback.assert_called_once()

    def test_other_errors_become_store_errors(self, db_store, db_cursor):
        db_cursor.execute.side_effect = psycopg2.OperationalError('server closed')

        with pytest.raises(RecordStoreError):
            db_store.query()

    def test_create_returns_id(self, db_store, db_cursor):
        db_cursor.fetchall.return_value = [{'id': 'generated'}]

        assert db_store.create(NonConformityRecord(name='A')) == 'generated'
        sql, values = db_cursor.execute.call_args.args
        assert sql.startswith('INSERT INTO nonconformity')
        assert 'Open' in values

    def test_retrieve_missing(self, db_store):
        with pytest.raises(RecordNotFoundError):
            db_store.retrieve('nope')


class _FakeConnection:
    """Connection that fails if used after close, like psycopg2."""

    def __init__(self):
        self.closed = False
        self.commits = 0

    def _check(self):
        if self.closed:
            raise psycopg2.InterfaceError('connection already closed')

    def cursor(self, cursor_factory=None):
        return _FakeCursor(self)

    def commit(self):
        self._check()
        self.commits += 1

    def rollback(self):
        self._check()

    def close(self):
        self.closed = True


class _FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.description = None
        self._rows = []

    def execute(self, sql, params):
        self.conn._check()
        time.sleep(0.01)
        self.conn._check()
        self.description = [('id',)]
        self._rows = [{'id': params[0]}]

    def fetchall(self):
        self.conn._check()
        return self._rows

    def close(self):
        pass


class TestPostgresRecordStoreThreads:
    """Test a shared store used from several threads."""

    def test_concurrent_creates_use_separate_connections(self):
        connections = []

        def connect():
            conn = _FakeConnection()
            connections.append(conn)
            return conn

        store = PostgresRecordStore(connection_factory=connect)
        records = [NonConformityRecord(ticket_number=f'NC-{i:05d}') for i in range(1, 9)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            ids = list(pool.map(store.create, records))

        assert len(set(ids)) == 8
        assert len(connections) == 8
        assert all(conn.closed for conn in connections)
        assert all(conn.commits == 1 for conn in connections)
