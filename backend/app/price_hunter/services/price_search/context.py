"""Per-aggregator state: current session, result set and event sink."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Set, Tuple

from .grouping import Grouper
from .models import (
    Offer,
    ProductGroup,
    SearchOutcome,
    SearchSession,
    SessionState,
)

NO_PRICED_PRODUCTS = "No priced products found."


class SearchEventSink:
    """Receives progressive updates for the presentation layer.

    Every hook is a no-op here; subclasses override what they need.
    """

    def on_offer_added(self, group_id: str, offer: Offer) -> None:
        pass

    def on_group_best_price_changed(
        self, group_id: str, best_price: Optional[Decimal], best_offer_ids: List[str]
    ) -> None:
        pass

    def on_group_removed(self, group_id: str) -> None:
        pass

    def on_search_completed(self, session_id: int, total_groups: int, total_offers: int) -> None:
        pass

    def on_search_superseded(self, session_id: int) -> None:
        pass


class LoggingEventSink(SearchEventSink):
    """Writes every event to the ``price_search.events`` logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("price_search.events")

    def on_offer_added(self, group_id: str, offer: Offer) -> None:
        self.logger.debug("Offer from %s added to group '%s': %s", offer.store, group_id, offer.title)

    def on_group_best_price_changed(
        self, group_id: str, best_price: Optional[Decimal], best_offer_ids: List[str]
    ) -> None:
        self.logger.debug("Best price of group '%s' is now %s (%s)", group_id, best_price, best_offer_ids)

    def on_group_removed(self, group_id: str) -> None:
        self.logger.debug("Group '%s' no longer exists after regrouping", group_id)

    def on_search_completed(self, session_id: int, total_groups: int, total_offers: int) -> None:
        self.logger.info(
            "Search %d completed with %d group(s) and %d offer(s)",
            session_id,
            total_groups,
            total_offers,
        )

    def on_search_superseded(self, session_id: int) -> None:
        self.logger.info("Search %d superseded by a newer search", session_id)


class SearchResultSet:
    """Offers accepted for one session and the groups derived from them."""

    def __init__(self, grouper: Grouper) -> None:
        self.grouper = grouper
        self.offers: List[Offer] = []
        self.groups: List[ProductGroup] = []
        self._links: Set[str] = set()

    def add(self, offer: Offer) -> bool:
        """Add an offer and regroup; False when its link was already seen."""
        if offer.link:
            if offer.link in self._links:
                return False
            self._links.add(offer.link)
        self.offers.append(offer)
        self.groups = self.grouper.group(self.offers)
        return True

    def group_of(self, offer: Offer) -> Optional[ProductGroup]:
        for group in self.groups:
            if any(member is offer for member in group.offers):
                return group
        return None

    def best_prices(self) -> Dict[str, Tuple[Optional[Decimal], List[str]]]:
        return {
            group.group_id: (group.best_price, list(group.best_offer_ids))
            for group in self.groups
        }

    @property
    def has_priced_offers(self) -> bool:
        return any(offer.price is not None for offer in self.offers)


class AggregatorContext:
    """Single writer for the session id and the visible result set."""

    def __init__(
        self,
        grouper: Grouper | None = None,
        events: SearchEventSink | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.grouper = grouper or Grouper()
        self.events = events or LoggingEventSink()
        self.logger = logger or logging.getLogger("price_search.aggregator")
        self.current_session: Optional[SearchSession] = None
        self.results = SearchResultSet(self.grouper)
        self._last_session_id = 0

    @property
    def state(self) -> SessionState:
        if self.current_session is None:
            return SessionState.IDLE
        return self.current_session.state

    def begin_session(self, query: str) -> SearchSession:
        """Start a new search, superseding the running one if any."""
        previous = self.current_session
        self._last_session_id += 1
        session = SearchSession(session_id=self._last_session_id, query=query)

        if previous is not None and previous.state is SessionState.RUNNING:
            previous.transition(SessionState.SUPERSEDED)
            self.events.on_search_superseded(previous.session_id)

        self.current_session = session
        self.results = SearchResultSet(self.grouper)
        self.logger.info("Search %d started for '%s'", session.session_id, query)
        return session

    def is_current(self, session_id: int) -> bool:
        return (
            self.current_session is not None
            and self.current_session.session_id == session_id
        )

    def accept(self, session_id: int, offer: Offer) -> bool:
        """Merge an offer delivered for ``session_id`` unless it is stale."""
        if not self.is_current(session_id):
            self.logger.debug(
                "Discarding %s offer from stale search %d", offer.store, session_id
            )
            return False

        before = self.results.best_prices()
        if not self.results.add(offer):
            self.logger.debug("Duplicate offer ignored: %s", offer.link)
            return False

        after = self.results.best_prices()
        # Regrouping can re-seed a group under a new id.
        for group_id in before:
            if group_id not in after:
                self.events.on_group_removed(group_id)

        group = self.results.group_of(offer)
        if group is not None:
            self.events.on_offer_added(group.group_id, offer)

        for group_id, (best_price, best_ids) in after.items():
            previous = before.get(group_id)
            if previous is None and best_price is None:
                continue
            if previous != (best_price, best_ids):
                self.events.on_group_best_price_changed(group_id, best_price, best_ids)
        return True

    def finish(self, session: SearchSession) -> SearchOutcome:
        """Complete ``session`` if still current and build the caller's view."""
        if not self.is_current(session.session_id):
            return SearchOutcome(session=session)

        session.transition(SessionState.COMPLETED)
        results = self.results
        message = None if results.has_priced_offers else NO_PRICED_PRODUCTS
        if message:
            self.logger.info("Search %d for '%s': %s", session.session_id, session.query, message)
        self.events.on_search_completed(
            session.session_id, len(results.groups), len(results.offers)
        )
        return SearchOutcome(
            session=session,
            groups=list(results.groups),
            offers=list(results.offers),
            message=message,
        )
