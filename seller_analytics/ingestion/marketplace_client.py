"""
Marketplace Sync Client

Pulls daily stats, catalog metadata and orders for one store from the
marketplace sync collaborator. A failed request is retried exactly once on
a fresh HTTP session; a second failure raises MarketplaceUnavailableError.
"""

from datetime import date
from typing import Any, Callable, Dict, Optional
from urllib.parse import urljoin

import requests
import structlog
from pydantic import ValidationError

from seller_analytics.config import get_settings
from .schemas import SyncBatch

logger = structlog.get_logger(__name__)


class MarketplaceUnavailableError(Exception):
    """The marketplace collaborator could not be reached or answered badly"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MarketplaceClient:
    """
    Thin client for the marketplace sync API.

    Example:
        client = MarketplaceClient()
        batch = client.fetch_store_batch("store-1", date(2025, 1, 1), date(2025, 1, 31))
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout: Optional[float] = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ):
        settings = get_settings()
        token = settings.marketplace.api_token
        self.base_url = (base_url or settings.marketplace.base_url).rstrip("/") + "/"
        self.api_token = api_token or (token.get_secret_value() if token else None)
        self.timeout = timeout or settings.marketplace.timeout_seconds
        self._session_factory = session_factory
        self.session = self._new_session()

    def _new_session(self) -> requests.Session:
        session = self._session_factory()
        session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
        })
        if self.api_token:
            session.headers["Authorization"] = f"Bearer {self.api_token}"
        return session

    def reconnect(self) -> None:
        """Drop the current HTTP session and open a new one"""
        self.session.close()
        self.session = self._new_session()

    def close(self) -> None:
        self.session.close()

    def _send(self, method: str, url: str, params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        response = self.session.request(method, url, params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json() if response.content else {}

    def request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Send one request, reconnecting and retrying once on failure.

        Raises:
            MarketplaceUnavailableError: If the retry fails as well
        """
        url = urljoin(self.base_url, endpoint.lstrip("/"))

        try:
            return self._send(method, url, params)
        except (requests.RequestException, ValueError) as e:
            logger.warning("Marketplace request failed, reconnecting", url=url, error=str(e))

        self.reconnect()
        try:
            return self._send(method, url, params)
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            logger.error("Marketplace request failed after retry", url=url, status_code=status_code)
            raise MarketplaceUnavailableError(f"Marketplace returned an error: {e}", status_code) from e
        except (requests.RequestException, ValueError) as e:
            logger.error("Marketplace request failed after retry", url=url, error=str(e))
            raise MarketplaceUnavailableError(f"Marketplace unreachable: {e}") from e

    def fetch_store_batch(self, store_id: str, start: date, end: date) -> SyncBatch:
        """Daily stats, catalog and orders of one store for an inclusive window"""
        payload = self.request(
            "GET",
            f"stores/{store_id}/sync",
            params={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )
        try:
            batch = SyncBatch.model_validate(payload)
        except ValidationError as e:
            raise MarketplaceUnavailableError(f"Marketplace sent an invalid payload: {e.error_count()} errors") from e

        logger.info(
            "Marketplace batch fetched",
            store_id=store_id,
            days=len(batch.daily_stats),
            products=len(batch.products),
            orders=len(batch.orders),
        )
        return batch
