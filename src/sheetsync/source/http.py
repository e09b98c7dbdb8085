"""Brokerage REST API data source."""

import logging
from typing import Any, Optional

import httpx

from ..config import settings
from ..entities import ENTITY_TYPES
from .base import DataSource, extract_records

logger = logging.getLogger(__name__)

MAX_PAGES = 50
PIE_ITEMS = "PIE_ITEMS"
PIES = "PIES"


class HttpDataSource(DataSource):
    """
    Fetches raw JSON for a resource from the brokerage API.

    Paged endpoints (``{"items": [...], "nextPagePath": ...}``) are followed
    until exhausted. Any transport or HTTP error yields None, so callers can
    fall back to a stored schema.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        endpoints: Optional[dict[str, Optional[str]]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.api_key
        self.timeout = timeout or settings.request_timeout_seconds
        self.endpoints = (
            dict(endpoints)
            if endpoints is not None
            else {rid: entity.endpoint for rid, entity in ENTITY_TYPES.items()}
        )
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = self.api_key
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def fetch(self, resource_id: str) -> Optional[Any]:
        if resource_id == PIE_ITEMS and self.endpoints.get(PIE_ITEMS) is None:
            return await self._fetch_pie_items()
        if resource_id == PIES and self.endpoints.get(PIES):
            return await self._fetch_pies()

        endpoint = self.endpoints.get(resource_id)
        if not endpoint:
            logger.warning(f"No endpoint configured for '{resource_id}'")
            return None

        try:
            async with self._client() as client:
                return await self._get_all_pages(client, endpoint)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to fetch '{resource_id}' from {endpoint}: {e}")
            return None

    async def _get_all_pages(self, client: httpx.AsyncClient, endpoint: str) -> Any:
        response = await client.get(endpoint)
        response.raise_for_status()
        data = response.json()

        if not (isinstance(data, dict) and isinstance(data.get("items"), list)):
            return data

        items = list(data["items"])
        next_path = data.get("nextPagePath")
        pages = 1
        while next_path and pages < MAX_PAGES:
            url = httpx.URL(self.base_url + "/").join(next_path)
            response = await client.get(url)
            response.raise_for_status()
            page = response.json()
            items.extend(page.get("items") or [])
            next_path = page.get("nextPagePath")
            pages += 1

        if next_path:
            logger.warning(f"Stopped paging {endpoint} after {MAX_PAGES} pages")
        return items

    async def _fetch_pie_details(self) -> Optional[list[tuple[dict, Any]]]:
        """Pair every pie summary with its detail response."""
        pies_endpoint = self.endpoints.get(PIES)
        if not pies_endpoint:
            return None

        async with self._client() as client:
            pies = extract_records(await self._get_all_pages(client, pies_endpoint))
            pairs = []
            for pie in pies:
                pie_id = pie.get("id")
                if pie_id is None:
                    continue
                response = await client.get(f"{pies_endpoint}/{pie_id}")
                if response.is_error:
                    logger.warning(f"Skipping pie {pie_id}: detail returned {response.status_code}")
                    continue
                pairs.append((pie, response.json()))
        return pairs

    async def _fetch_pies(self) -> Optional[list[dict]]:
        """Pie summaries with each detail's settings and instruments attached."""
        try:
            pairs = await self._fetch_pie_details()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to fetch pies: {e}")
            return None
        if pairs is None:
            return None

        pies = []
        for summary, details in pairs:
            if isinstance(details, dict):
                pies.append(
                    {
                        **summary,
                        "settings": details.get("settings"),
                        "instruments": details.get("instruments"),
                    }
                )
        return pies

    async def _fetch_pie_items(self) -> Optional[list[dict]]:
        """Collect every pie's holdings from the per-pie detail endpoint."""
        try:
            pairs = await self._fetch_pie_details()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to fetch pie items: {e}")
            return None
        if pairs is None:
            return None

        items = []
        for pie, details in pairs:
            items.extend(pie_items_from_details(pie["id"], details))
        return items


def pie_items_from_details(pie_id: Any, details: Any) -> list[dict]:
    """Flatten a pie detail response into PieItem records."""
    if not isinstance(details, dict) or not isinstance(details.get("instruments"), list):
        return []

    currency = (details.get("settings") or {}).get("currencyCode") or "USD"
    items = []
    for raw in details["instruments"]:
        if not isinstance(raw, dict):
            continue
        result = raw.get("result") or {}
        items.append(
            {
                "pieId": pie_id,
                "ticker": raw.get("ticker"),
                "expectedShare": raw.get("expectedShare"),
                "currentShare": raw.get("currentShare"),
                "currentValue": result.get("priceAvgValue", 0),
                "investedValue": result.get("priceAvgInvestedValue", 0),
                "result": result.get("priceAvgResult", 0),
                "quantity": raw.get("ownedQuantity", 0),
                "resultCurrency": currency,
            }
        )
    return items
