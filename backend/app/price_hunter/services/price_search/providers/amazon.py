"""Amazon.ae price provider."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..models import Offer, PriceSearchError
from ..utils import absolute_url, clean_text, to_price
from .base import SinglePhasePriceProvider

logger = logging.getLogger("price_search.amazon")


class AmazonPriceProvider(SinglePhasePriceProvider):
    """Query the Amazon.ae search worker."""

    site_name = "Amazon.ae"
    _origin = "https://www.amazon.ae"

    def __init__(
        self, client: httpx.AsyncClient, *, worker_url: str, **kwargs: Any
    ) -> None:
        super().__init__(client, **kwargs)
        self.worker_url = worker_url.rstrip("/")

    async def search_records(self, query: str) -> List[Dict[str, Any]]:
        data = await self._get_json(f"{self.worker_url}/search", params={"q": query})
        if isinstance(data, list):
            return data
        if not isinstance(data, dict):
            raise PriceSearchError(self.site_name, "Unexpected payload from Amazon.ae.")

        results = data.get("results")
        if results is None:
            logger.info("Amazon.ae worker returned no results key for '%s'.", query)
            return []
        if not isinstance(results, list):
            raise PriceSearchError(self.site_name, "Amazon.ae results are not a list.")
        return results

    def normalize(self, record: Dict[str, Any]) -> Optional[Offer]:
        asin = clean_text(record.get("asin"))
        link = absolute_url(record.get("link") or record.get("url"), self._origin)
        if not link and asin:
            link = f"{self._origin}/dp/{asin}"

        title = clean_text(record.get("title"))
        offer_id = asin or clean_text(record.get("id")) or link or title
        if not offer_id:
            return None

        return Offer(
            store=clean_text(record.get("store")) or self.site_name,
            offer_id=offer_id,
            title=title,
            price=to_price(record.get("price")),
            currency=clean_text(record.get("currency")) or self.default_currency,
            image=clean_text(record.get("image")),
            link=link,
            asin=asin,
            raw=record,
        )
