"""Noon UAE price provider."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from ..models import Offer, PriceSearchError
from ..utils import absolute_url, clean_text, to_price
from .base import SinglePhasePriceProvider

logger = logging.getLogger("price_search.noon")

NOON_IMAGE_URL = "https://z.nooncdn.com/products/tr:n-t_240/{key}.jpg"
PRICE_KEYS = ("selling_price", "selling_price_in_cents", "value", "min")
CENTS_THRESHOLD = 100000


class NoonPriceProvider(SinglePhasePriceProvider):
    """Query the Noon search worker, which proxies Noon's JSON search."""

    site_name = "Noon"
    _origin = "https://www.noon.com"

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
            raise PriceSearchError(self.site_name, "Unexpected payload from Noon.")

        # The worker answers with "results"; raw Noon payloads use products/items.
        for key in ("results", "products", "items"):
            records = data.get(key)
            if isinstance(records, list):
                return records

        logger.info(
            "Noon returned no products for '%s' (debug=%s).", query, data.get("debug")
        )
        return []

    def normalize(self, record: Dict[str, Any]) -> Optional[Offer]:
        title = clean_text(
            record.get("title") or record.get("name") or record.get("product_name")
        )
        price = self._extract_price(record.get("price"))
        link = self._extract_link(record)
        # A bare price cannot be grouped or linked to.
        if not (title or link):
            return None

        offer_id = (
            clean_text(record.get("id") or record.get("sku") or record.get("product_id"))
            or link
            or title
        )
        return Offer(
            store=self.site_name,
            offer_id=offer_id,
            title=title,
            price=price,
            currency=clean_text(record.get("currency")) or self.default_currency,
            image=self._extract_image(record),
            link=link,
            raw=record,
        )

    @staticmethod
    def _extract_price(raw_price: Any) -> Optional[Decimal]:
        if not isinstance(raw_price, dict):
            return to_price(raw_price)

        for key in PRICE_KEYS:
            value = raw_price.get(key)
            if value is None:
                continue
            price = to_price(value)
            if price is None:
                continue
            # Large integers inside the price object are cent amounts.
            if isinstance(value, int) and price > CENTS_THRESHOLD:
                price = price / 100
            return price
        return None

    def _extract_link(self, record: Dict[str, Any]) -> Optional[str]:
        for key in ("url", "link", "product_url"):
            link = absolute_url(record.get(key), self._origin)
            if link:
                return link
        return clean_text(record.get("secondary_url"))

    @staticmethod
    def _extract_image(record: Dict[str, Any]) -> Optional[str]:
        image_key = clean_text(record.get("image_key"))
        if image_key:
            return NOON_IMAGE_URL.format(key=image_key)

        image = record.get("image")
        if isinstance(image, str) and image.strip():
            return image.strip()

        images = record.get("images")
        if isinstance(images, list) and images:
            first = images[0]
            if isinstance(first, dict):
                return clean_text(first.get("url"))
            return clean_text(first)
        return None
