from typing import Dict, Optional, Tuple
import time

from sqlalchemy import or_

from ..db.session import get_session
from ..errors import NotFound
from ..models.category import Category
from ..models.product import Product
from ..utils.dto import to_product_dto
from ..utils.pagination import normalize_paging
from .offer_service import OfferService
from .pricing import LineItem, price_line


class CatalogService:
    """Read-only product lookups with the running offer applied to the display price.

    Price, MRP and stock are owned by the catalog; this service never writes them.
    """

    def __init__(self, session_factory=get_session, cache_ttl_seconds: int = 60):
        self._session_factory = session_factory
        self._cache_ttl_seconds = cache_ttl_seconds
        # naive in-process cache: key -> (ts, result)
        self._cache: Dict[Tuple, Tuple[float, Dict]] = {}

    @staticmethod
    def _dto(row: Product, resolver) -> Dict:
        line = price_line(
            LineItem(product_id=row.id, price=row.price, quantity=1, category_id=row.category_id, name=row.name),
            resolver,
        )
        return to_product_dto(row, offer=line.offer, offer_price=line.unit_price)

    def list_products(
        self,
        *,
        query: Optional[str] = None,
        category: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict:
        p, ps = normalize_paging(page, page_size)
        cache_key = (query or "", category or "", p, ps)
        now = time.time()
        cached = self._cache.get(cache_key)
        if cached and now - cached[0] <= self._cache_ttl_seconds:
            return cached[1]

        with self._session_factory() as session:
            q = session.query(Product).filter(Product.is_active.is_(True))
            if query:
                like = f"%{query}%"
                q = q.filter(
                    or_(
                        Product.name.ilike(like),
                        Product.description.ilike(like),
                        Product.sku.ilike(like),
                    )
                )
            if category:
                q = (
                    q.join(Category, Category.id == Product.category_id, isouter=True)
                    .filter(or_(Category.slug == category, Product.category_id == category))
                )
            total = q.count()
            rows = (
                q.order_by(Product.sort_order.desc(), Product.created_at.desc(), Product.id.asc())
                .offset((p - 1) * ps)
                .limit(ps)
                .all()
            )
            resolver = OfferService.resolver_for(session)
            result = {"items": [self._dto(r, resolver) for r in rows], "page": p, "page_size": ps, "total": total}
            self._cache[cache_key] = (now, result)
            return result

    def get_product(self, product_id: str) -> Dict:
        with self._session_factory() as session:
            r = (
                session.query(Product)
                .filter(Product.id == product_id, Product.is_active.is_(True))
                .first()
            )
            if r is None:
                raise NotFound("product", product_id)
            return self._dto(r, OfferService.resolver_for(session))

    def invalidate_cache(self) -> None:
        self._cache.clear()
