"""Base connector class for external service connections."""
from abc import ABC, abstractmethod
import logging

logger = logging.getLogger(__name__)


class BaseConnector(ABC):
    """
    Abstract base class for connectors to external services
    (mail gateway, report workflow).
    """

    def __init__(self, name: str, timeout: int = 30):
        """
        Initialize the connector.

        Args:
            name: Name of the connector (for logging)
            timeout: Request timeout in seconds
        """
        self.name = name
        self.timeout = timeout
        self.logger = logging.getLogger(f'{__name__}.{name}')

    @abstractmethod
    def authenticate(self) -> bool:
        """
        Authenticate with the external service.

        Returns:
            True if authentication successful, False otherwise
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the connection to the external service."""
        pass

    def __enter__(self):
        """Context manager entry."""
        self.authenticate()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
