"""
Command line tools for Non-Conformity records.

Usage:
    python -m constructsafe <command> [options]

Commands:
    init-db         Create the database table and indexes
    next-ticket     Show the ticket number the next record would receive
    create          Create a record (validated, numbered, manager notified)
    update ID       Update fields of a record
    show ID         Print a record as JSON
    report ID       Trigger the PDF report flow for a record
"""

import argparse
import asyncio
import json
import logging
import sys

import requests

from schemas.nonconformity import (
    NonConformityRecord,
    NonConformitySeverity,
    NonConformityStatus,
    NonConformityType,
)
from constructsafe.config.settings import settings
from constructsafe.connectors.mail_transport import HttpMailTransport
from constructsafe.connectors.pdf_flow import PdfReportTrigger
from constructsafe.nonconformity.errors import (
    ImmutableFieldError,
    RecordNotCommittedError,
    TicketNumberContentionError,
    ValidationRejectedError,
)
from constructsafe.nonconformity.notifications import (
    NotificationDispatcher,
    NotificationQueue,
)
from constructsafe.nonconformity.service import NonConformityService
from constructsafe.nonconformity.ticket_numbers import TicketNumberGenerator
from constructsafe.stores.base_store import RecordStoreError
from constructsafe.stores.db_store import PostgresRecordStore
from constructsafe.utils.logger import configure_logging

logger = logging.getLogger(__name__)

FIELD_OPTIONS = ('name', 'type', 'severity', 'status', 'location',
                 'description', 'assigned_manager')


def _record_fields(args) -> dict:
    """Collect the record fields given on the command line."""
    return {
        f: getattr(args, f) for f in FIELD_OPTIONS
        if getattr(args, f, None) is not None
    }


def _print_record(record: NonConformityRecord) -> None:
    print(json.dumps(record.model_dump(mode='json'), indent=2))


async def _run_with_notifications(store, operation):
    """Run a service operation and flush its notifications before returning."""
    queue = None
    transport = None
    if settings.MAIL_API_URL:
        transport = HttpMailTransport()
        dispatcher = NotificationDispatcher(store, transport)
        queue = NotificationQueue(dispatcher)
        queue.start()
    service = NonConformityService(store, notifications=queue)
    try:
        return await operation(service)
    finally:
        if queue is not None:
            await queue.drain()
            await queue.stop()
        if transport is not None:
            transport.close()


def cmd_init_db(args, store) -> int:
    """Create the table."""
    store.init_schema()
    print('Database schema ready')
    return 0


def cmd_next_ticket(args, store) -> int:
    """Show the next ticket number."""
    print(TicketNumberGenerator(store).next_ticket_number())
    return 0


def cmd_create(args, store) -> int:
    """Create a record."""
    record = NonConformityRecord(**_record_fields(args))
    created = asyncio.run(_run_with_notifications(store, lambda s: s.create(record)))
    _print_record(created)
    return 0


def cmd_update(args, store) -> int:
    """Update a record."""
    changes = _record_fields(args)
    if not changes:
        print('Nothing to update', file=sys.stderr)
        return 1
    updated = asyncio.run(
        _run_with_notifications(store, lambda s: s.update(args.record_id, changes))
    )
    _print_record(updated)
    return 0


def cmd_show(args, store) -> int:
    """Print a record."""
    _print_record(store.retrieve(args.record_id))
    return 0


def cmd_report(args, store) -> int:
    """Trigger the PDF report."""
    record = store.retrieve(args.record_id)
    status = PdfReportTrigger().request_report(record)
    print(f'Report requested for {record.ticket_number} (HTTP {status})')
    return 0


def _add_record_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--name', help='Short title')
    parser.add_argument('--type', choices=[t.value for t in NonConformityType])
    parser.add_argument('--severity', choices=[s.value for s in NonConformitySeverity])
    parser.add_argument('--status', choices=[s.value for s in NonConformityStatus])
    parser.add_argument('--location', help='Where on site')
    parser.add_argument('--description', help='Issue description')
    parser.add_argument('--manager', dest='assigned_manager', help='Manager e-mail or user id')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Non-Conformity record tools',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose output',
    )
    sub = parser.add_subparsers(dest='command', required=True)

    sub.add_parser('init-db', help='Create the database table').set_defaults(func=cmd_init_db)
    sub.add_parser('next-ticket', help='Show the next ticket number').set_defaults(func=cmd_next_ticket)

    create = sub.add_parser('create', help='Create a record')
    _add_record_options(create)
    create.set_defaults(func=cmd_create)

    update = sub.add_parser('update', help='Update a record')
    update.add_argument('record_id')
    _add_record_options(update)
    update.set_defaults(func=cmd_update)

    show = sub.add_parser('show', help='Print a record')
    show.add_argument('record_id')
    show.set_defaults(func=cmd_show)

    report = sub.add_parser('report', help='Trigger the PDF report')
    report.add_argument('record_id')
    report.set_defaults(func=cmd_report)

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    configure_logging('constructsafe')
    if args.verbose:
        logging.getLogger('constructsafe').setLevel(logging.DEBUG)

    missing = settings.validate_required_settings()
    if missing:
        logger.warning(f'Missing settings: {", ".join(missing)}')

    store = PostgresRecordStore()
    try:
        return args.func(args, store)
    except ValidationRejectedError as e:
        print(f'REJECTED [{e.code}]: {e.message}', file=sys.stderr)
        return 2
    except (ImmutableFieldError, RecordNotCommittedError, ValueError) as e:
        print(f'ERROR: {e}', file=sys.stderr)
        return 1
    except TicketNumberContentionError as e:
        print(f'ERROR: {e}', file=sys.stderr)
        return 3
    except (RecordStoreError, requests.RequestException) as e:
        print(f'ERROR: {e}', file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
