"""Title normalization and clustering of offers into product groups."""

from __future__ import annotations

import re
import unicodedata
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from .models import Offer, ProductGroup
from .resolver import BestPriceResolver

DEFAULT_MAX_TOKENS = 6
DEFAULT_MIN_SHARED_TOKENS = 2


class TitleNormalizer:
    """Turn free-text product titles into canonical token sequences."""

    def __init__(
        self,
        stopwords: Iterable[str] = (),
        max_tokens: int | None = DEFAULT_MAX_TOKENS,
    ) -> None:
        self.stopwords = frozenset(word.lower() for word in stopwords)
        self.max_tokens = max_tokens

    def tokens(self, title: Optional[str]) -> List[str]:
        if not title:
            return []

        ascii_title = (
            unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
        )
        words = re.sub(r"[^a-z0-9]+", " ", ascii_title.lower()).split()
        words = [word for word in words if word not in self.stopwords]
        if self.max_tokens:
            words = words[: self.max_tokens]
        return words

    def key(self, title: Optional[str]) -> str:
        return " ".join(self.tokens(title))


class GroupingStrategy(ABC):
    """Decides which existing group, if any, an offer should join."""

    @abstractmethod
    def match(
        self, offer: Offer, tokens: Sequence[str], groups: Sequence[ProductGroup]
    ) -> Optional[ProductGroup]:
        """Return the group to join or None to start a new one."""
        raise NotImplementedError


class TokenOverlapStrategy(GroupingStrategy):
    """Exact key match first, then the first group sharing enough tokens.

    The threshold is a tuning knob: low values over-merge products sharing
    generic words, high values split the same product phrased differently.
    """

    def __init__(self, min_shared_tokens: int = DEFAULT_MIN_SHARED_TOKENS) -> None:
        self.min_shared_tokens = max(1, min_shared_tokens)

    def match(
        self, offer: Offer, tokens: Sequence[str], groups: Sequence[ProductGroup]
    ) -> Optional[ProductGroup]:
        if not tokens:
            return None

        for group in groups:
            if list(tokens) == group.key_tokens:
                return group

        candidate = set(tokens)
        for group in groups:
            if not group.key_tokens:
                continue
            if len(candidate & set(group.key_tokens)) >= self.min_shared_tokens:
                return group
        return None


class AsinStrategy(GroupingStrategy):
    """Join the group already holding the same ASIN, else defer to ``fallback``."""

    def __init__(self, fallback: GroupingStrategy | None = None) -> None:
        self.fallback = fallback or TokenOverlapStrategy()

    def match(
        self, offer: Offer, tokens: Sequence[str], groups: Sequence[ProductGroup]
    ) -> Optional[ProductGroup]:
        if offer.asin:
            for group in groups:
                if any(member.asin == offer.asin for member in group.offers):
                    return group
        return self.fallback.match(offer, tokens, groups)


def _sort_key(offer: Offer) -> tuple:
    price = offer.price if offer.price is not None else Decimal("Infinity")
    return (offer.store, offer.link or "", offer.title or "", price, offer.offer_id)


def _group_id(offer: Offer, tokens: Sequence[str]) -> str:
    if offer.asin:
        return f"asin:{offer.asin}"
    if tokens:
        return " ".join(tokens)
    return f"untitled:{offer.store}:{offer.offer_id}"


class Grouper:
    """Cluster offers into product groups and annotate best prices."""

    def __init__(
        self,
        normalizer: TitleNormalizer | None = None,
        strategy: GroupingStrategy | None = None,
        resolver: BestPriceResolver | None = None,
    ) -> None:
        self.normalizer = normalizer or TitleNormalizer()
        self.strategy = strategy or AsinStrategy(TokenOverlapStrategy())
        self.resolver = resolver or BestPriceResolver()

    def group(self, offers: Sequence[Offer]) -> List[ProductGroup]:
        """Build groups from scratch.

        Clustering walks the offers in a canonical order so membership does
        not depend on arrival order; inside a group offers keep arrival order.
        """
        arrival: Dict[int, int] = {id(offer): index for index, offer in enumerate(offers)}
        groups: List[ProductGroup] = []

        for offer in sorted(offers, key=_sort_key):
            tokens = self.normalizer.tokens(offer.title)
            group = self.strategy.match(offer, tokens, groups)
            if group is None:
                group = ProductGroup(group_id=_group_id(offer, tokens), key_tokens=tokens)
                groups.append(group)
            group.offers.append(offer)

        for group in groups:
            group.offers.sort(key=lambda member: arrival[id(member)])
            group.canonical_title = self._canonical_title(group.offers)
            group.best_price, group.best_offers = self.resolver.best_offers(group.offers)
            group.best_offer_ids = self.resolver.resolve(group.best_offers)[1]

        groups.sort(key=_group_order)
        return groups

    @staticmethod
    def _canonical_title(offers: Sequence[Offer]) -> Optional[str]:
        titles = [offer.title for offer in offers if offer.title]
        if not titles:
            return offers[0].title if offers else None
        return min(titles, key=lambda title: (-len(title), title))


def _group_order(group: ProductGroup) -> tuple:
    # Priced groups first, cheapest first, then by title.
    if group.best_price is not None:
        return (0, group.best_price, group.canonical_title or "", group.group_id)
    return (1, Decimal(0), group.canonical_title or "", group.group_id)
