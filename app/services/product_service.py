# app/services/product_service.py
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.parsing import first_image, parse_images, parse_karats
from app.models.product import Product
from app.repositories.product_repo import ProductRepository
from app.schemas.pricing import PriceQuote
from app.schemas.product import ProductKaratRead, ProductRead
from app.services.pricing_service import PricingService


class ProductService:
    """
    Read side of the catalog.

    Responsibilities:
      - normalise loose JSON columns (images, karats)
      - attach per-karat weights, stock and current price
    """

    def __init__(self, repo: ProductRepository, pricing: PricingService):
        self.repo = repo
        self.pricing = pricing

    def _to_read(
        self,
        session: Session,
        product: Product,
        with_karats: bool = False,
    ) -> ProductRead:
        images = parse_images(product.images)
        karat_reads: list[ProductKaratRead] = []

        if with_karats:
            for row in self.repo.list_karats(session, product.id):
                karat_reads.append(
                    ProductKaratRead(
                        karat=row.karat,
                        net_weight=row.net_weight,
                        gross_weight=row.gross_weight,
                        stone_weight=row.stone_weight,
                        stock_quantity=row.stock_quantity,
                        in_stock=row.stock_quantity > 0,
                        price=self.pricing.calculate_price(
                            row.net_weight,
                            product.making_charge_percentage,
                            row.karat,
                        ),
                    )
                )

        return ProductRead(
            id=product.id,
            name=product.name,
            slug=product.slug,
            description=product.description,
            category=product.category,
            images=images,
            image=first_image(images),
            available_karats=parse_karats(product.available_karats),
            making_charge_percentage=product.making_charge_percentage,
            created_at=product.created_at,
            karats=karat_reads,
        )

    def get_active_product(self, session: Session, product_id: uuid.UUID) -> Product:
        """
        Raises:
            HTTPException(404): unknown product
            HTTPException(400): product hidden from the storefront
        """
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        if not product.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Product is inactive",
            )
        return product

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        category: str | None = None,
    ) -> list[ProductRead]:
        products = self.repo.list_products(
            session, skip=skip, limit=limit, only_active=True, category=category
        )
        return [self._to_read(session, p) for p in products]

    def get_product(self, session: Session, product_id: uuid.UUID) -> ProductRead:
        product = self.get_active_product(session, product_id)
        return self._to_read(session, product, with_karats=True)

    def price_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        karat: str = "22kt",
    ) -> PriceQuote:
        """
        Quote one unit of a product in the given karat.

        A karat the product is not made in prices at zero (no weight).
        """
        product = self.get_active_product(session, product_id)
        variant = self.repo.get_karat(session, product.id, karat)
        net_weight = variant.net_weight if variant else None
        return self.pricing.quote(net_weight, product.making_charge_percentage, karat)
