"""Record store backed by PostgreSQL."""
from contextlib import closing
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence
from uuid import uuid4
import logging
import psycopg2
import psycopg2.errors
from psycopg2.extras import RealDictCursor

from schemas.nonconformity import NonConformityRecord
from constructsafe.stores.base_store import (
    ENTITY_NAME,
    DuplicateKeyError,
    FilterOperator,
    OrderBy,
    QueryFilter,
    RecordNotFoundError,
    RecordStore,
    RecordStoreError,
)
from constructsafe.config.settings import settings

logger = logging.getLogger(__name__)

# ticket_number carries the unique constraint the ticket generator retries on;
# created_at uses clock_timestamp() so rows inserted in one transaction still order.
CREATE_TABLE_SQL = f'''
CREATE TABLE IF NOT EXISTS {ENTITY_NAME} (
    id UUID PRIMARY KEY,
    ticket_number TEXT,
    name TEXT,
    type TEXT,
    severity TEXT,
    status TEXT NOT NULL DEFAULT 'Open',
    location TEXT,
    description TEXT,
    date_reported TIMESTAMPTZ,
    assigned_manager TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp(),
    CONSTRAINT {ENTITY_NAME}_ticket_number_key UNIQUE (ticket_number)
);
CREATE INDEX IF NOT EXISTS {ENTITY_NAME}_created_at_idx
    ON {ENTITY_NAME} (created_at DESC);
'''

COLUMNS = tuple(NonConformityRecord.model_fields)
WRITABLE_COLUMNS = tuple(c for c in COLUMNS if c not in ('id', 'created_at'))


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so a prefix matches literally."""
    return value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def _to_db(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class PostgresRecordStore(RecordStore):
    """Store Non-Conformity records in PostgreSQL."""

    def __init__(self, connection_factory: Optional[Callable[[], Any]] = None):
        """
        Initialize the database store.

        Args:
            connection_factory: Returns a new DB-API connection. Defaults to
                psycopg2.connect with the configured credentials.
        """
        super().__init__('database')
        self._connection_factory = connection_factory or self._default_connect

    @staticmethod
    def _default_connect():
        return psycopg2.connect(
            host=settings.DB_HOST,
            port=settings.DB_PORT,
            database=settings.DB_NAME,
            user=settings.DB_USER,
            password=settings.DB_PASSWORD,
        )

    def _connect(self):
        """Open a new connection for one statement."""
        try:
            return self._connection_factory()
        except psycopg2.Error as e:
            self.logger.error(f'Database connection failed: {str(e)}')
            raise RecordStoreError(f'Database connection failed: {e}') from e

    def _execute(
        self,
        sql: str,
        params: Sequence[Any] = (),
        ticket_number: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Run one statement in its own transaction and return fetched rows.

        Each call opens and closes its own connection, so the store can be
        shared between threads.
        """
        with closing(self._connect()) as conn:
            try:
                with closing(conn.cursor(cursor_factory=RealDictCursor)) as cursor:
                    cursor.execute(sql, params)
                    rows = cursor.fetchall() if cursor.description else []
                conn.commit()
                return [dict(row) for row in rows]
            except psycopg2.errors.UniqueViolation as e:
                conn.rollback()
                raise DuplicateKeyError('ticket_number', ticket_number) from e
            except psycopg2.Error as e:
                conn.rollback()
                self.logger.error(f'Query failed: {str(e)}')
                raise RecordStoreError(str(e)) from e

    def init_schema(self) -> None:
        """Create the table and indexes if they do not exist."""
        self._execute(CREATE_TABLE_SQL)
        self.logger.info(f'Schema ready for {ENTITY_NAME}')

    def build_query(
        self,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> tuple[str, list]:
        """
        Build a SELECT statement.

        Returns:
            Tuple of (sql, params)
        """
        clauses = []
        params: list = []
        for f in filters:
            column = self._column(f.field)
            if f.operator == FilterOperator.NOT_NULL:
                clauses.append(f'{column} IS NOT NULL')
            elif f.operator == FilterOperator.BEGINS_WITH:
                clauses.append(f"{column} LIKE %s ESCAPE '\\'")
                params.append(_escape_like(f.value) + '%')
            else:
                clauses.append(f'{column} = %s')
                params.append(_to_db(f.value))

        sql = f'SELECT {", ".join(COLUMNS)} FROM {ENTITY_NAME}'
        if clauses:
            sql += ' WHERE ' + ' AND '.join(clauses)
        if order_by is not None:
            direction = 'DESC' if order_by.descending else 'ASC'
            sql += f' ORDER BY {self._column(order_by.field)} {direction}'
        if limit is not None:
            sql += ' LIMIT %s'
            params.append(int(limit))
        return sql, params

    def query(
        self,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> List[NonConformityRecord]:
        sql, params = self.build_query(filters, order_by, limit)
        return [self._to_record(row) for row in self._execute(sql, params)]

    def create(self, record: NonConformityRecord) -> str:
        record_id = str(uuid4())
        values = [record_id] + [_to_db(getattr(record, c)) for c in WRITABLE_COLUMNS]
        columns = ('id',) + WRITABLE_COLUMNS
        placeholders = ','.join(['%s'] * len(columns))
        sql = (
            f'INSERT INTO {ENTITY_NAME} ({",".join(columns)}) '
            f'VALUES ({placeholders}) RETURNING id'
        )
        rows = self._execute(sql, values, ticket_number=record.ticket_number)
        self.logger.info(f'Created {ENTITY_NAME} {record_id} ({record.ticket_number})')
        return str(rows[0]['id'])

    def retrieve(
        self,
        record_id: str,
        fields: Optional[Sequence[str]] = None,
    ) -> NonConformityRecord:
        columns = ['id'] + [self._column(f) for f in fields if f != 'id'] if fields else list(COLUMNS)
        sql = f'SELECT {", ".join(columns)} FROM {ENTITY_NAME} WHERE id = %s'
        rows = self._execute(sql, [record_id])
        if not rows:
            raise RecordNotFoundError(f'Record not found: {record_id}')
        return self._to_record(rows[0])

    def update(self, record_id: str, delta: Dict[str, Any]) -> None:
        if not delta:
            return
        assignments = ', '.join(f'{self._column(k)} = %s' for k in delta)
        params = [_to_db(v) for v in delta.values()] + [record_id]
        sql = f'UPDATE {ENTITY_NAME} SET {assignments} WHERE id = %s RETURNING id'
        if not self._execute(sql, params, ticket_number=delta.get('ticket_number')):
            raise RecordNotFoundError(f'Record not found: {record_id}')

    @staticmethod
    def _column(field: str) -> str:
        if field not in COLUMNS:
            raise ValueError(f'Unknown field: {field}')
        return field

    @staticmethod
    def _to_record(row: Dict[str, Any]) -> NonConformityRecord:
        row = dict(row)
        if row.get('id') is not None:
            row['id'] = str(row['id'])
        return NonConformityRecord.model_validate(row)

