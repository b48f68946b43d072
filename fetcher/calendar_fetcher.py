"""HTTP fetcher for remote iCalendar sources."""
import logging
import time
from typing import Optional

import requests

logger = logging.getLogger(__name__)


class CalendarFetcher:
    """Downloads calendar source data with retries."""

    def __init__(
        self,
        timeout: int = 30,
        user_agent: Optional[str] = None,
        max_retries: int = 3,
        base_delay: float = 1,
    ):
        """
        Initialize the calendar fetcher.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
            user_agent: User-Agent header to send, if any
            max_retries: Number of attempts before giving up (default: 3)
            base_delay: Initial backoff delay in seconds (default: 1)
        """
        self.timeout = timeout
        self.user_agent = user_agent
        self.max_retries = max_retries
        self.base_delay = base_delay

    def fetch(self, calendar_url: str) -> str:
        """
        Fetch calendar text from a URL with retry logic.

        Args:
            calendar_url: HTTP or HTTPS URL of the calendar

        Returns:
            Calendar source text

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        headers = {'User-Agent': self.user_agent} if self.user_agent else None

        for attempt in range(self.max_retries):
            try:
                logger.info(
                    f"Fetching calendar from {calendar_url} "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                response = requests.get(
                    calendar_url,
                    headers=headers,
                    timeout=self.timeout
                )
                response.raise_for_status()
                return response.text

            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    delay = self.base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} retry attempts failed. Last error: {e}"
                    )
                    raise
