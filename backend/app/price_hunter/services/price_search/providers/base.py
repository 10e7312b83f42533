"""Base classes for price search providers."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from ..models import Offer, PriceSearchError
from ..pool import call_with_retry, run_pool
from ..utils import DEFAULT_HEADERS

logger = logging.getLogger("price_search.provider")

_DONE = object()


class BasePriceProvider(ABC):
    """Common behaviour for store adapters."""

    site_name: str

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        search_timeout: float = 15.0,
        max_retries: int = 1,
        retry_base_delay: float = 0.5,
        default_currency: str = "AED",
    ) -> None:
        self.client = client
        self.default_currency = default_currency
        self.search_timeout = search_timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay

    async def stream(self, query: str) -> AsyncIterator[Offer]:
        """Public entry point: offers for ``query``, never raising."""
        count = 0
        try:
            async for offer in self._stream_impl(query):
                count += 1
                yield offer
        except PriceSearchError as exc:
            logger.warning("Provider %s failed: %s", exc.site, exc.message)
        except Exception:
            logger.exception("Unexpected error searching %s", self.site_name)

        if count == 0:
            logger.info("No offers from %s for '%s'.", self.site_name, query)

    @abstractmethod
    def _stream_impl(self, query: str) -> AsyncIterator[Offer]:
        """Yield normalized offers for ``query``."""
        raise NotImplementedError

    @abstractmethod
    def normalize(self, record: Dict[str, Any]) -> Optional[Offer]:
        """Map one raw store record to an Offer, or None to drop it."""
        raise NotImplementedError

    async def _get_json(self, url: str, params: Dict[str, str] | None = None) -> Any:
        response = await self.client.get(url, params=params, headers=DEFAULT_HEADERS)
        if response.status_code != 200:
            raise PriceSearchError(
                self.site_name,
                f"HTTP {response.status_code} from {self.site_name}.",
            )
        try:
            return response.json()
        except ValueError as exc:
            raise PriceSearchError(
                self.site_name,
                f"Malformed JSON returned by {self.site_name}.",
            ) from exc

    def _normalize_all(self, records: List[Any]) -> List[Offer]:
        offers: List[Offer] = []
        for record in records:
            if not isinstance(record, dict):
                continue
            offer = self.normalize(record)
            if offer is not None:
                offers.append(offer)
        return offers


class SinglePhasePriceProvider(BasePriceProvider):
    """Store whose search endpoint returns complete records in one call."""

    async def _stream_impl(self, query: str) -> AsyncIterator[Offer]:
        records = await call_with_retry(
            lambda: self.search_records(query),
            timeout=self.search_timeout,
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
            label=f"{self.site_name} search",
        )
        for offer in self._normalize_all(records or []):
            yield offer

    @abstractmethod
    async def search_records(self, query: str) -> List[Dict[str, Any]]:
        """Return the raw records for ``query``."""
        raise NotImplementedError


class TwoPhasePriceProvider(BasePriceProvider):
    """Store whose search only yields links; each link needs a detail fetch."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        max_links: int = 8,
        concurrency: int = 4,
        detail_timeout: float = 30.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(client, **kwargs)
        self.max_links = max_links
        self.concurrency = concurrency
        self.detail_timeout = detail_timeout

    async def _stream_impl(self, query: str) -> AsyncIterator[Offer]:
        links = await call_with_retry(
            lambda: self.search_links(query),
            timeout=self.search_timeout,
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
            label=f"{self.site_name} link search",
        )
        links = list(dict.fromkeys(link for link in links or [] if link))[: self.max_links]
        logger.debug("%s returned %d link(s) for '%s'", self.site_name, len(links), query)
        if not links:
            return

        queue: asyncio.Queue = asyncio.Queue()

        async def drive() -> None:
            try:
                await run_pool(
                    links,
                    self._detail_offer,
                    self.concurrency,
                    timeout=self.detail_timeout,
                    max_retries=self.max_retries,
                    base_delay=self.retry_base_delay,
                    on_result=queue.put_nowait,
                )
            finally:
                queue.put_nowait(_DONE)

        task = asyncio.create_task(drive())
        try:
            while True:
                item = await queue.get()
                if item is _DONE:
                    break
                yield item
            await task
        finally:
            if not task.done():
                task.cancel()

    async def _detail_offer(self, link: str) -> Optional[Offer]:
        record = await self.fetch_detail(link)
        if not record:
            return None
        return self.normalize({**record, "link": record.get("link") or link})

    @abstractmethod
    async def search_links(self, query: str) -> List[str]:
        """Return product page links for ``query``."""
        raise NotImplementedError

    @abstractmethod
    async def fetch_detail(self, link: str) -> Optional[Dict[str, Any]]:
        """Return the raw product record behind ``link``."""
        raise NotImplementedError
