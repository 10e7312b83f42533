"""Domain models for price search results."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional


@dataclass(slots=True)
class Offer:
    """Single store listing normalized from a raw provider record."""

    store: str
    offer_id: str
    title: Optional[str] = None
    price: Optional[Decimal] = None
    currency: str = "AED"
    image: Optional[str] = None
    link: Optional[str] = None
    asin: Optional[str] = None
    raw: Any = field(default=None, repr=False, compare=False)


@dataclass(slots=True)
class ProductGroup:
    """Offers believed to reference the same product."""

    group_id: str
    key_tokens: List[str]
    offers: List[Offer] = field(default_factory=list)
    canonical_title: Optional[str] = None
    best_price: Optional[Decimal] = None
    best_offer_ids: List[str] = field(default_factory=list)
    best_offers: List[Offer] = field(default_factory=list, repr=False, compare=False)

    def is_best(self, offer: Offer) -> bool:
        """Return True when this very offer carries the group's best price.

        Offer ids are not unique inside a group (two Amazon listings can share
        an ASIN), so membership is checked by identity.
        """
        return any(best is offer for best in self.best_offers)


class SessionState(str, enum.Enum):
    """Lifecycle of a search invocation."""

    IDLE = "idle"
    RUNNING = "running"
    SUPERSEDED = "superseded"
    COMPLETED = "completed"


_ALLOWED_TRANSITIONS = {
    SessionState.IDLE: {SessionState.RUNNING},
    SessionState.RUNNING: {SessionState.SUPERSEDED, SessionState.COMPLETED},
    SessionState.SUPERSEDED: set(),
    SessionState.COMPLETED: set(),
}


@dataclass(slots=True)
class SearchSession:
    """One in-flight aggregation, identified by a monotonic id."""

    session_id: int
    query: str
    state: SessionState = SessionState.RUNNING

    def transition(self, new_state: SessionState) -> None:
        """Move to ``new_state`` or raise on an illegal transition."""
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise InvalidSessionTransition(self.session_id, self.state, new_state)
        self.state = new_state


@dataclass(slots=True)
class SearchOutcome:
    """Final view of a search as seen by the caller."""

    session: SearchSession
    groups: List[ProductGroup] = field(default_factory=list)
    offers: List[Offer] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def total_groups(self) -> int:
        return len(self.groups)

    @property
    def total_offers(self) -> int:
        return len(self.offers)


class PriceSearchError(RuntimeError):
    """Raised when a provider cannot complete the search."""

    def __init__(self, site: str, message: str) -> None:
        super().__init__(message)
        self.site = site
        self.message = message


class InvalidSessionTransition(RuntimeError):
    """Raised when a session is moved through an illegal state change."""

    def __init__(
        self, session_id: int, current: SessionState, requested: SessionState
    ) -> None:
        super().__init__(
            f"Session {session_id} cannot move from {current.value} to {requested.value}."
        )
        self.session_id = session_id
        self.current = current
        self.requested = requested
