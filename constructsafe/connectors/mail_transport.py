"""Mail transport used to deliver manager notifications."""
from abc import ABC, abstractmethod
from typing import Optional
import logging

from constructsafe.connectors.api_connector import APIConnector
from constructsafe.config.settings import settings

logger = logging.getLogger(__name__)


class MailTransportError(Exception):
    """Raised when the mail gateway rejects or fails a request."""


class MailTransport(ABC):
    """
    Two-step mail delivery: create a message, then send it.
    Best-effort from the caller's point of view.
    """

    @abstractmethod
    def create_message(
        self,
        sender: str,
        to: str,
        subject: str,
        html_body: str,
    ) -> str:
        """
        Create an outgoing message.

        Returns:
            Message id to pass to send()
        """
        pass

    @abstractmethod
    def send(self, message_id: str) -> None:
        """Send a previously created message."""
        pass


class HttpMailTransport(MailTransport):
    """
    Mail transport for an HTTP mail gateway.

    Endpoints:
        POST /messages             -> {"id": "<message id>"}
        POST /messages/{id}/send
    """

    def __init__(self, connector: Optional[APIConnector] = None):
        """Initialize the transport from settings unless a connector is given."""
        self.connector = connector or APIConnector(
            name='MailGateway',
            base_url=settings.MAIL_API_URL,
            api_key=settings.MAIL_API_KEY,
            timeout=settings.MAIL_TIMEOUT,
            retry_attempts=settings.MAIL_RETRY_ATTEMPTS,
            retry_delay=settings.MAIL_RETRY_DELAY,
        )
        self.connector.authenticate()

    def create_message(
        self,
        sender: str,
        to: str,
        subject: str,
        html_body: str,
    ) -> str:
        response = self.connector.post('messages', json={
            'from': sender,
            'to': [to],
            'subject': subject,
            'html': html_body,
            'direction': 'outgoing',
        })
        message_id = (response.json() or {}).get('id')
        if not message_id:
            raise MailTransportError('Mail gateway returned no message id')
        logger.info(f'Mail message created: {message_id}')
        return str(message_id)

    def send(self, message_id: str) -> None:
        self.connector.post(f'messages/{message_id}/send')
        logger.info(f'Mail message sent: {message_id}')

    def close(self) -> None:
        self.connector.close()
