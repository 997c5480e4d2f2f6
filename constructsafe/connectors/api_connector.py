"""API connector for HTTP-based services."""
import requests
from typing import Any, Dict, Optional
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
import logging

from .base_connector import BaseConnector

logger = logging.getLogger(__name__)


class APIConnector(BaseConnector):
    """
    Connector for REST APIs.
    Handles authentication, retries, and error handling.
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: int = 30,
        retry_attempts: int = 3,
        retry_delay: int = 5,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize API connector.

        Args:
            name: Name of the API service
            base_url: Base URL for the API
            api_key: Optional API key for authentication
            timeout: Request timeout in seconds
            retry_attempts: Number of retry attempts
            retry_delay: Backoff factor between retries in seconds
            session: Optional pre-built session (tests)
        """
        super().__init__(name, timeout)
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.session = session or requests.Session()
        if session is None:
            self._setup_retry_strategy()

    def _setup_retry_strategy(self) -> None:
        """Configure retry strategy for the session."""
        # Status retries apply to GET only. A POST that reached the server
        # is never resent; connection failures before sending still retry.
        retry_strategy = Retry(
            total=self.retry_attempts,
            backoff_factor=self.retry_delay,
            status_forcelist=[429, 502, 503, 504],
            allowed_methods=frozenset({'GET'}),
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount('http://', adapter)
        self.session.mount('https://', adapter)

    def authenticate(self) -> bool:
        """
        Authenticate with the API.
        For API key auth, this just sets headers.
        """
        self.session.headers.update({'User-Agent': 'constructsafe/1.0'})
        if self.api_key:
            self.session.headers.update({
                'Authorization': f'Bearer {self.api_key}',
            })
        self.logger.info(f'Authenticated with {self.name}')
        return True

    def _url(self, endpoint: str) -> str:
        if not endpoint:
            return self.base_url
        return f'{self.base_url}/{endpoint.lstrip("/")}'

    def post(
        self,
        endpoint: str,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        """
        Make a POST request.

        Args:
            endpoint: API endpoint (relative to base_url, '' for the base itself)
            json: JSON body
            headers: Additional headers

        Returns:
            The response (status already checked)

        Raises:
            requests.RequestException: If request fails
        """
        merged_headers = {**self.session.headers}
        if headers:
            merged_headers.update(headers)

        response = self.session.post(
            self._url(endpoint),
            json=json,
            headers=merged_headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response

    def close(self) -> None:
        """Close the session."""
        self.session.close()
        self.logger.info(f'Closed connection to {self.name}')
