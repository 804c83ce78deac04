"""
PocketSmith API client
Fetches scenario events and updates scheduled repayment amounts
https://developers.pocketsmith.com/reference
"""

from __future__ import annotations

import calendar
import logging
import time
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import parse_qs, urlparse

import requests

from .config import API_BASE_URL, REQUEST_DELAY_SECONDS, REQUEST_TIMEOUT_SECONDS, load_settings

logger = logging.getLogger(__name__)

PER_PAGE = 100


class PocketSmithError(Exception):
    """Raised when the PocketSmith API returns an error response or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PocketSmithClient:
    """Client for the PocketSmith v2 API scoped to one scenario"""

    def __init__(self, api_key: str, scenario_id: str, base_url: str = API_BASE_URL,
                 session: Optional[requests.Session] = None,
                 request_delay: float = REQUEST_DELAY_SECONDS,
                 timeout: float = REQUEST_TIMEOUT_SECONDS):
        """
        Initialize PocketSmith client

        Args:
            api_key: Developer key sent in the Authorization header
            scenario_id: Scenario whose events are read and updated
            base_url: API root (override for testing)
            session: Optional pre-configured requests session
            request_delay: Seconds to wait between consecutive requests
            timeout: Seconds before a request is abandoned
        """
        if not api_key or not scenario_id:
            raise ValueError("API key and scenario ID are required")

        self.scenario_id = scenario_id
        self.base_url = base_url.rstrip('/')
        self.request_delay = request_delay
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/json',
            'Content-Type': 'application/json',
            'Authorization': f'Key {api_key}',
        })

    def _check(self, response: requests.Response, action: str) -> Any:
        if response.status_code >= 400:
            try:
                error_data = response.json() if response.text else {}
            except ValueError:
                error_data = {}
            message = error_data.get('error') if isinstance(error_data, dict) else None
            raise PocketSmithError(
                f"{action} failed ({response.status_code}): {message or response.text}",
                status_code=response.status_code,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise PocketSmithError(
                f"{action} returned invalid JSON: {exc}",
                status_code=response.status_code,
            ) from exc

    @staticmethod
    def _next_page(response: requests.Response) -> Optional[int]:
        next_link = (getattr(response, 'links', None) or {}).get('next')
        if not next_link or not next_link.get('url'):
            return None
        values = parse_qs(urlparse(next_link['url']).query).get('page')
        if not values:
            return None
        try:
            return int(values[0])
        except ValueError:
            return None

    def get_events_page(self, start_date: date, end_date: date,
                        page: int = 1) -> Tuple[List[Dict[str, Any]], Optional[int]]:
        """
        Fetch one page of scenario events

        Returns:
            The page's raw event records and the next page number (or None)
        """
        action = f"Fetching events page {page}"
        try:
            response = self.session.get(
                f"{self.base_url}/scenarios/{self.scenario_id}/events",
                params={
                    'start_date': start_date.isoformat(),
                    'end_date': end_date.isoformat(),
                    'per_page': PER_PAGE,
                    'page': page,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise PocketSmithError(f"{action} failed: {exc}") from exc
        events = self._check(response, action)
        return list(events or []), self._next_page(response)

    def get_all_events(self, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        """Fetch every page of events between two dates (inclusive)"""
        all_events: List[Dict[str, Any]] = []
        current_page = 1
        while True:
            events, next_page = self.get_events_page(start_date, end_date, page=current_page)
            all_events.extend(events)
            logger.debug("Fetched page %d with %d events", current_page, len(events))
            if next_page is None or next_page <= current_page:
                break
            current_page = next_page
            # Small delay to avoid rate limiting
            time.sleep(self.request_delay)
        return all_events

    def fetch_monthly_events(self, year: int, month: int) -> List[Dict[str, Any]]:
        start = date(year, month, 1)
        end = date(year, month, calendar.monthrange(year, month)[1])
        logger.info("Fetching events for %d-%02d from PocketSmith", year, month)
        events = self.get_all_events(start, end)
        logger.info("Fetched %d events for %d-%02d", len(events), year, month)
        return events

    def update_event_amount(self, event_id: str, amount: float,
                            behaviour: str = 'one') -> Optional[Dict[str, Any]]:
        """
        Change the amount of a scheduled event

        Args:
            event_id: PocketSmith event id ("seriesId-timestamp")
            amount: New signed amount (negative for debits)
            behaviour: 'one', 'forward' or 'all' occurrences of the series
        """
        action = f"Updating event {event_id}"
        try:
            response = self.session.put(
                f"{self.base_url}/events/{event_id}",
                json={'amount': amount, 'behaviour': behaviour},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise PocketSmithError(f"{action} failed: {exc}") from exc
        return self._check(response, action)

    def apply_repayment_updates(self, updates: Sequence[Any]) -> List[Optional[Dict[str, Any]]]:
        """Send one amount update per planned repayment change"""
        results = []
        for index, update in enumerate(updates):
            if index:
                time.sleep(self.request_delay)
            logger.info(
                "Updating repayment for %s: %.2f -> %.2f",
                update.repayment_month, update.current_amount, update.new_amount,
            )
            results.append(self.update_event_amount(update.event_id, update.new_amount))
        return results


def create_client(environ: Optional[Mapping[str, str]] = None,
                  session: Optional[requests.Session] = None) -> PocketSmithClient:
    settings = load_settings(environ)
    return PocketSmithClient(settings.api_key, settings.scenario_id, session=session)
