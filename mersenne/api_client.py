"""
API Client Utility

Submits Mersenne prime discoveries to a coordination server with retry
logic and exponential backoff.
"""

import json
import logging
import time
from typing import Dict, Any, Optional

import requests

logger = logging.getLogger(__name__)


class APIClient:
    """
    Handle API communication with retry logic.

    Usage:
        client = APIClient("http://localhost:8000/api/v1")
        response = client.submit_discovery({"exponent": 127, ...})
    """

    def __init__(self, api_endpoint: str, timeout: int = 30, retry_attempts: int = 3):
        """
        Initialize API client.

        Args:
            api_endpoint: Base API endpoint URL (e.g., 'http://localhost:8000/api/v1')
            timeout: Request timeout in seconds
            retry_attempts: Number of attempts before giving up
        """
        self.api_endpoint = api_endpoint.rstrip('/')
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.logger = logging.getLogger(f"{__name__}.APIClient")

    def submit_discovery(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Submit a discovery with retry logic.

        Args:
            payload: JSON payload describing the discovery

        Returns:
            Parsed response body, or None if every attempt failed
        """
        url = f"{self.api_endpoint}/mersenne/discoveries"

        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(f"Submitting to {url}")
            self.logger.debug(f"Payload: {json.dumps(payload, indent=2)}")

        for attempt in range(self.retry_attempts):
            try:
                response = requests.post(url, json=payload, timeout=self.timeout)

                if response.status_code not in (200, 201):
                    self.logger.error(
                        f"Server response ({response.status_code}): {response.text}"
                    )

                response.raise_for_status()
                try:
                    response_data = response.json()
                except ValueError as e:
                    # 2xx with a body that isn't JSON; the server accepted it
                    self.logger.warning(f"Unparseable response body from {url}: {e}")
                    return {}
                self.logger.info(f"Submitted discovery M{payload.get('exponent')}: {response_data}")
                return response_data

            except requests.exceptions.RequestException as e:
                self.logger.error(
                    f"Discovery submission failed (attempt {attempt + 1}/{self.retry_attempts}): {e}"
                )

                if attempt < self.retry_attempts - 1:
                    backoff_time = 2 ** attempt
                    self.logger.debug(f"Retrying in {backoff_time} seconds...")
                    time.sleep(backoff_time)

        self.logger.error(f"Failed to submit discovery after {self.retry_attempts} attempts")
        return None
