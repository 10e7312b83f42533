"""Response models for the search controllers."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from price_hunter.services.price_search.models import (
    Offer,
    ProductGroup,
    SearchOutcome,
)


class OfferModel(BaseModel):
    """One store listing as exposed by the API."""

    offer_id: str = Field(..., description="Store identifier of the offer (ASIN, SKU or link).")
    store: str = Field(..., description="Store the offer comes from.")
    title: Optional[str] = Field(None, description="Product title, when the store exposed one.")
    price: Optional[Decimal] = Field(None, description="Price in the store currency; null when unavailable.")
    currency: str = Field(..., description="Currency code of the price.")
    image: Optional[str] = None
    link: Optional[str] = None
    is_best: bool = Field(False, description="Whether this offer has the group's best price.")

    @classmethod
    def from_offer(cls, offer: Offer, group: ProductGroup) -> "OfferModel":
        return cls(
            offer_id=offer.offer_id,
            store=offer.store,
            title=offer.title,
            price=offer.price,
            currency=offer.currency,
            image=offer.image,
            link=offer.link,
            is_best=group.is_best(offer),
        )


class ProductGroupModel(BaseModel):
    """Offers believed to be the same product."""

    group_id: str
    title: Optional[str] = Field(None, description="Most descriptive title among the offers.")
    best_price: Optional[Decimal] = None
    best_offer_ids: List[str] = Field(default_factory=list)
    offers: List[OfferModel] = Field(default_factory=list)


class SearchResponse(BaseModel):
    """Data model for the response of the search endpoint."""

    query: str
    session_id: int
    state: str = Field(..., description="Final state of the search session.")
    total_groups: int
    total_offers: int
    message: Optional[str] = Field(None, description="Set when no priced product was found.")
    groups: List[ProductGroupModel] = Field(default_factory=list)

    @classmethod
    def from_outcome(cls, outcome: SearchOutcome) -> "SearchResponse":
        return cls(
            query=outcome.session.query,
            session_id=outcome.session.session_id,
            state=outcome.session.state.value,
            total_groups=outcome.total_groups,
            total_offers=outcome.total_offers,
            message=outcome.message,
            groups=[
                ProductGroupModel(
                    group_id=group.group_id,
                    title=group.canonical_title,
                    best_price=group.best_price,
                    best_offer_ids=list(group.best_offer_ids),
                    offers=[OfferModel.from_offer(offer, group) for offer in group.offers],
                )
                for group in outcome.groups
            ],
        )
