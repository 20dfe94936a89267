"""
Registry Client

HTTP transport for reporting factors to the remote factor registry. Transport
errors and non-2xx responses are retried with a fixed delay; interpreting the
response body is left to the submission pipeline.
"""

import logging
import time
from typing import Callable, Optional

import requests

from .retry import RetryResult, retry_call

logger = logging.getLogger(__name__)


class RegistryClient:
    """POST factors to the registry with bounded fixed-delay retries."""

    def __init__(self, url: str, timeout: int = 60, retry_count: int = 10,
                 retry_delay: float = 10.0, sleep: Optional[Callable[[float], None]] = None):
        """
        Args:
            url: Full report URL (e.g., 'http://factordb.com/reportfactor.php')
            timeout: Request timeout in seconds
            retry_count: Retries after the first POST (retry_count + 1 attempts in total)
            retry_delay: Seconds between attempts
            sleep: Sleep function used between attempts (defaults to time.sleep)
        """
        self.url = url
        self.timeout = timeout
        self.retry_count = retry_count
        self.retry_delay = retry_delay
        self.sleep = sleep or time.sleep
        self.logger = logging.getLogger(f"{__name__}.RegistryClient")

    def _post_factor(self, number: str, factor: str) -> requests.Response:
        response = requests.post(
            self.url,
            data={'number': number, 'factor': factor},
            timeout=self.timeout
        )
        if response.status_code != 200:
            self.logger.debug(f"Registry response ({response.status_code}): {response.text}")
        response.raise_for_status()
        return response

    def report_factor(self, number: str, factor: str) -> RetryResult[requests.Response]:
        """
        Report one factor of one number.

        Args:
            number: Decimal string of the composite
            factor: Decimal string of the factor

        Returns:
            RetryResult holding the successful response, or the last
            transport error once the retry budget is exhausted
        """
        return retry_call(
            lambda: self._post_factor(number, factor),
            attempts=self.retry_count + 1,
            delay=self.retry_delay,
            retry_on=(requests.RequestException,),
            operation_name=f"Submitting factor {factor} of {number}",
            sleep=self.sleep
        )
