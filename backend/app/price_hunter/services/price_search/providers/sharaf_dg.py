"""SharafDG price provider.

SharafDG search pages only expose product links, so prices come from a
second request per product page.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..models import Offer, PriceSearchError
from ..utils import clean_text, to_price
from .base import TwoPhasePriceProvider

logger = logging.getLogger("price_search.sharafdg")


class SharafDGPriceProvider(TwoPhasePriceProvider):
    """Search SharafDG for links, then resolve each product page."""

    site_name = "SharafDG"

    def __init__(
        self, client: httpx.AsyncClient, *, worker_url: str, **kwargs: Any
    ) -> None:
        super().__init__(client, **kwargs)
        self.worker_url = worker_url.rstrip("/")

    async def search_links(self, query: str) -> List[str]:
        data = await self._get_json(f"{self.worker_url}/search", params={"q": query})
        if not isinstance(data, dict):
            raise PriceSearchError(self.site_name, "Unexpected payload from SharafDG.")

        results = data.get("results") or []
        links: List[str] = []
        for result in results:
            if isinstance(result, dict):
                link = clean_text(result.get("link"))
            else:
                link = clean_text(result)
            if link:
                links.append(link)
        return links

    async def fetch_detail(self, link: str) -> Optional[Dict[str, Any]]:
        data = await self._get_json(f"{self.worker_url}/product", params={"url": link})
        if not isinstance(data, dict):
            raise PriceSearchError(self.site_name, f"Unexpected product payload for {link}.")
        return data

    def normalize(self, record: Dict[str, Any]) -> Optional[Offer]:
        title = clean_text(record.get("title"))
        image = clean_text(record.get("image"))
        price = to_price(record.get("price"))
        if price is None and not title and not image:
            logger.debug("Empty SharafDG product payload: %s", record.get("debug"))
            return None

        link = clean_text(record.get("link"))
        return Offer(
            store=self.site_name,
            offer_id=link or title,
            title=title,
            price=price,
            currency=clean_text(record.get("currency")) or self.default_currency,
            image=image,
            link=link,
            raw=record,
        )
