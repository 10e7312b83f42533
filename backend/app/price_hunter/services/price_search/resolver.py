"""Best price determination for product groups."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from .models import Offer


class BestPriceResolver:
    """Find the minimum price of a group and every offer matching it."""

    def best_offers(self, offers: Sequence[Offer]) -> Tuple[Optional[Decimal], List[Offer]]:
        """Return the minimum price and the offers carrying it, in input order."""
        priced = [offer for offer in offers if offer.price is not None]
        if not priced:
            return None, []

        best_price = min(offer.price for offer in priced)
        return best_price, [offer for offer in priced if offer.price == best_price]

    def resolve(self, offers: Sequence[Offer]) -> Tuple[Optional[Decimal], List[str]]:
        best_price, winners = self.best_offers(offers)
        best_ids: List[str] = []
        for offer in winners:
            if offer.offer_id not in best_ids:
                best_ids.append(offer.offer_id)
        return best_price, best_ids
