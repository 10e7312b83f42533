"""High-level service that orchestrates price lookups."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Sequence

import httpx

from configs import Settings, settings as default_settings

from .context import AggregatorContext, SearchEventSink
from .grouping import AsinStrategy, Grouper, TitleNormalizer, TokenOverlapStrategy
from .models import SearchOutcome, SearchSession, SessionState
from .providers.amazon import AmazonPriceProvider
from .providers.base import BasePriceProvider
from .providers.noon import NoonPriceProvider
from .providers.sharaf_dg import SharafDGPriceProvider
from .utils import format_aed

logger = logging.getLogger("price_search.service")


class PriceSearchService:
    """Coordinate price lookups across multiple providers."""

    def __init__(
        self,
        providers: Sequence[BasePriceProvider],
        context: AggregatorContext | None = None,
    ) -> None:
        self.providers = providers
        self.context = context or AggregatorContext()

    async def search(self, query: str) -> SearchOutcome:
        """Fan out to every provider and merge offers as they arrive.

        Starting a search supersedes the previous one: offers still in flight
        for an older session are dropped when they are delivered.
        """
        session = self.context.begin_session(query)
        await asyncio.gather(
            *(self._consume(provider, session) for provider in self.providers)
        )
        outcome = self.context.finish(session)
        if outcome.session.state is SessionState.SUPERSEDED:
            logger.info("Search %d for '%s' was superseded.", session.session_id, query)
        return outcome

    async def _consume(self, provider: BasePriceProvider, session: SearchSession) -> None:
        accepted = 0
        async for offer in provider.stream(session.query):
            if self.context.accept(session.session_id, offer):
                accepted += 1
        logger.debug(
            "%s delivered %d offer(s) for search %d",
            provider.site_name,
            accepted,
            session.session_id,
        )

    def render_summary(self, query: str, outcome: SearchOutcome) -> str:
        """Turn grouped offers into a plain-text comparison."""
        lines: List[str] = [f'Offers for "{query}":', ""]

        if outcome.message or not outcome.groups:
            lines.append(outcome.message or "No products found.")
            return "\n".join(lines).strip()

        for group in outcome.groups:
            best = format_aed(group.best_price) or "-"
            lines.append(f"{group.canonical_title or 'Product'} (best: {best})")
            for offer in group.offers:
                price = format_aed(offer.price, offer.currency) or "Price unavailable"
                marker = " [BEST PRICE]" if group.is_best(offer) else ""
                link = f" - {offer.link}" if offer.link else ""
                lines.append(f"- {offer.store}: {price}{marker}{link}")
            lines.append("")

        message = "\n".join(lines).strip()
        logger.debug("Price summary generated: %s", message)
        return message


def build_grouper(config: Settings) -> Grouper:
    """Grouper configured from settings."""
    return Grouper(
        normalizer=TitleNormalizer(
            stopwords=config.GROUPING_STOPWORDS,
            max_tokens=config.GROUPING_MAX_TOKENS,
        ),
        strategy=AsinStrategy(TokenOverlapStrategy(config.GROUPING_MIN_SHARED_TOKENS)),
    )


def build_providers(
    client: httpx.AsyncClient, config: Settings
) -> List[BasePriceProvider]:
    """Store adapters wired to the configured workers."""
    fetch_policy = {
        "search_timeout": config.SEARCH_TIMEOUT_SECONDS,
        "max_retries": config.MAX_RETRIES,
        "retry_base_delay": config.RETRY_BASE_DELAY_SECONDS,
        "default_currency": config.DEFAULT_CURRENCY,
    }
    return [
        AmazonPriceProvider(client, worker_url=config.AMAZON_WORKER_URL, **fetch_policy),
        NoonPriceProvider(client, worker_url=config.NOON_WORKER_URL, **fetch_policy),
        SharafDGPriceProvider(
            client,
            worker_url=config.SHARAF_WORKER_URL,
            max_links=config.SHARAF_MAX_LINKS,
            concurrency=config.SHARAF_CONCURRENCY,
            detail_timeout=config.DETAIL_TIMEOUT_SECONDS,
            **fetch_policy,
        ),
    ]


def create_price_search_service(
    client: httpx.AsyncClient,
    config: Settings | None = None,
    events: SearchEventSink | None = None,
) -> PriceSearchService:
    """Retrieve a PriceSearchService with its own aggregator context."""
    config = config or default_settings
    context = AggregatorContext(grouper=build_grouper(config), events=events)
    return PriceSearchService(build_providers(client, config), context)
