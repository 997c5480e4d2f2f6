"""Client for the external PDF report workflow (HTTP trigger)."""
from typing import Optional
import logging

from schemas.nonconformity import NonConformityRecord
from constructsafe.connectors.api_connector import APIConnector
from constructsafe.config.settings import settings
from constructsafe.nonconformity.errors import RecordNotCommittedError

logger = logging.getLogger(__name__)

ACCEPTED_STATUSES = (200, 202)


class PdfReportTrigger:
    """
    Starts PDF report generation for a committed Non-Conformity record.
    The workflow attaches the PDF to the record itself; nothing is returned.
    """

    def __init__(self, connector: Optional[APIConnector] = None):
        self.connector = connector or APIConnector(
            name='PdfReportFlow',
            base_url=settings.PDF_FLOW_URL,
            timeout=settings.PDF_FLOW_TIMEOUT,
            retry_attempts=0,
        )

    def request_report(self, record: NonConformityRecord, is_dirty: bool = False) -> int:
        """
        Trigger the report flow.

        Args:
            record: The record as last saved
            is_dirty: True when the caller holds unsaved edits

        Returns:
            HTTP status of the trigger call

        Raises:
            RecordNotCommittedError: If the record is not fully committed
            requests.RequestException: If the trigger call fails
        """
        if is_dirty:
            raise RecordNotCommittedError(
                'Please save the record before generating a PDF report.'
            )
        if not record.id or not record.ticket_number:
            raise RecordNotCommittedError(
                'The record must be saved and numbered before generating a PDF report.'
            )

        response = self.connector.post('', json={
            'recordId': record.id,
            'ticketNumber': record.ticket_number,
        })
        if response.status_code not in ACCEPTED_STATUSES:
            logger.warning(
                f'PDF flow returned {response.status_code} for {record.ticket_number}'
            )
        else:
            logger.info(f'PDF report requested for {record.ticket_number}')
        return response.status_code
