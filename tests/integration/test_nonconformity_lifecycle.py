"""
Integration tests for the full create/notify lifecycle.

Uses the in-memory store and a mocked mail transport; no external services.

Run with: pytest tests/integration/test_nonconformity_lifecycle.py -v
"""
import asyncio
import re

import pytest

from schemas.nonconformity import (
    NonConformityRecord,
    NonConformitySeverity,
    NonConformityStatus,
    NonConformityType,
)
from constructsafe.nonconformity.errors import ValidationRejectedError
from constructsafe.nonconformity.notifications import (
    NotificationDispatcher,
    NotificationQueue,
)
from constructsafe.nonconformity.service import NonConformityService
from constructsafe.nonconformity.ticket_numbers import TicketNumberGenerator
from constructsafe.nonconformity.validation import SAFETY_LOCATION_REQUIRED


@pytest.fixture
def dispatcher(memory_store, mock_mail_transport):
    return NotificationDispatcher(
        memory_store,
        mock_mail_transport,
        sender='noreply@example.com',
        system_name='ConstructSafe',
        store_timeout=2,
        mail_timeout=2,
    )


class TestSafetyScenario:
    """Rejected safety record, corrected and resubmitted."""

    def test_reject_fix_resubmit(self, memory_store, dispatcher, mock_mail_transport):
        record = NonConformityRecord(
            name='Open edge',
            type=NonConformityType.SAFETY,
            severity=NonConformitySeverity.LOW,
            location='',
            description='No edge protection',
            assigned_manager='manager@example.com',
        )

        async def run():
            async with NotificationQueue(dispatcher) as queue:
                service = NonConformityService(memory_store, notifications=queue)

                with pytest.raises(ValidationRejectedError) as exc_info:
                    await service.create(record)
                assert exc_info.value.code == SAFETY_LOCATION_REQUIRED

                record.location = 'Level 3'
                return await service.create(record)

        created = asyncio.run(run())

        assert created.ticket_number == 'NC-00001'
        assert created.severity == NonConformitySeverity.HIGH
        assert memory_store.get_store_stats()['records'] == 1

        mock_mail_transport.create_message.assert_called_once()
        subject = mock_mail_transport.create_message.call_args.args[2]
        assert 'NEW' in subject
        assert 'NC-00001' in subject
        mock_mail_transport.send.assert_called_once_with('msg-1')

    def test_update_notifications(self, memory_store, dispatcher, mock_mail_transport, safety_record):
        async def run():
            async with NotificationQueue(dispatcher) as queue:
                service = NonConformityService(memory_store, notifications=queue)
                created = await service.create(safety_record)
                await service.update(created.id, {'description': 'Updated text'})
                await service.update(created.id, {'status': NonConformityStatus.RESOLVED})

        asyncio.run(run())

        subjects = [c.args[2] for c in mock_mail_transport.create_message.call_args_list]
        assert len(subjects) == 2
        assert subjects[0].startswith('[ConstructSafe] NEW:')
        assert subjects[1].startswith('[ConstructSafe] UPDATED:')

    def test_mail_outage_does_not_fail_save(self, memory_store, dispatcher, mock_mail_transport, safety_record):
        mock_mail_transport.create_message.side_effect = ConnectionError('gateway down')

        async def run():
            async with NotificationQueue(dispatcher) as queue:
                service = NonConformityService(memory_store, notifications=queue)
                return await service.create(safety_record)

        created = asyncio.run(run())

        assert created.ticket_number == 'NC-00001'
        mock_mail_transport.send.assert_not_called()


class TestConcurrentNumbering:
    """Concurrent creations get distinct, gap-free ticket numbers."""

    @pytest.mark.parametrize("existing", [0, 41])
    def test_concurrent_creates(self, memory_store, existing):
        if existing:
            memory_store.create(NonConformityRecord(ticket_number=f'NC-{existing:05d}'))

        count = 8
        # Each failed attempt means another creation succeeded, so
        # count attempts always suffice.
        tickets = TicketNumberGenerator(memory_store, prefix='NC', max_attempts=count)
        service = NonConformityService(memory_store, tickets=tickets)

        async def run():
            records = [
                NonConformityRecord(name=f'Issue {i}', type=NonConformityType.OTHER)
                for i in range(count)
            ]
            return await asyncio.gather(*[service.create(r) for r in records])

        created = asyncio.run(run())

        numbers = sorted(int(r.ticket_number.split('-')[-1]) for r in created)
        assert numbers == list(range(existing + 1, existing + count + 1))
        assert all(re.fullmatch(r'NC-\d{5}', r.ticket_number) for r in created)
