from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import or_

from ..models.offer import Offer
from ..utils.clock import utcnow
from .pricing import LineItem, OfferResolver, OfferTerms

# (scope, product_id, category_id, terms)
ScopedOffer = Tuple[str, Optional[str], Optional[str], OfferTerms]


def select_offer(offers: Sequence[ScopedOffer], product_id: str, category_id: Optional[str]) -> Optional[OfferTerms]:
    """First offer matching the product, highest priority first.

    ``offers`` must already be ordered by priority.
    """
    for scope, offer_product, offer_category, terms in offers:
        if scope == "product" and offer_product == product_id:
            return terms
        if scope == "category" and category_id and offer_category == category_id:
            return terms
    return None


class OfferService:
    """Loads the offers currently running and resolves them per product."""

    @staticmethod
    def load_active(session, now: Optional[datetime] = None) -> List[ScopedOffer]:
        now = now or utcnow()
        rows = (
            session.query(Offer)
            .filter(Offer.is_active.is_(True))
            .filter(or_(Offer.starts_at.is_(None), Offer.starts_at <= now))
            .filter(or_(Offer.ends_at.is_(None), Offer.ends_at > now))
            .order_by(Offer.priority.desc(), Offer.id.asc())
            .all()
        )
        return [(r.scope, r.product_id, r.category_id, OfferTerms.from_row(r)) for r in rows]

    @classmethod
    def resolver_for(cls, session, now: Optional[datetime] = None) -> OfferResolver:
        offers = cls.load_active(session, now)

        def resolve(item: LineItem) -> Optional[OfferTerms]:
            return select_offer(offers, item.product_id, item.category_id)

        return resolve
