from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import Select, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gardengear.platform.security.context import CallerIdentity
from gardengear.platform.security.errors import ConflictError, NotFoundError
from gardengear.platform.tenancy.executor import TenantScopedExecutor
from gardengear.workshop.products.models import Product
from gardengear.workshop.products.schemas import ProductCreate, ProductRead


SEARCH_LIMIT = 50


@dataclass(slots=True)
class ProductService:
    def search(self, executor: TenantScopedExecutor, identity: CallerIdentity, query: str | None) -> list[ProductRead]:
        def work(session: Session) -> list[ProductRead]:
            stmt: Select[tuple[Product]] = select(Product)
            term = (query or "").strip()
            if term:
                pattern = f"%{term}%"
                stmt = stmt.where(
                    or_(
                        Product.code.ilike(pattern),
                        Product.make.ilike(pattern),
                        Product.model.ilike(pattern),
                        Product.type.ilike(pattern),
                    )
                )
            rows = session.scalars(stmt.order_by(Product.code.asc()).limit(SEARCH_LIMIT)).all()
            return [ProductRead.model_validate(row) for row in rows]

        return executor.run_scoped(identity, work)

    def get_by_code(self, executor: TenantScopedExecutor, identity: CallerIdentity, code: str) -> ProductRead:
        def work(session: Session) -> ProductRead | None:
            row = session.scalar(select(Product).where(Product.code == code))
            return ProductRead.model_validate(row) if row is not None else None

        product = executor.run_scoped(identity, work)
        if product is None:
            raise NotFoundError("Product not found")
        return product

    def create(self, executor: TenantScopedExecutor, identity: CallerIdentity, dto: ProductCreate) -> ProductRead:
        def work(session: Session) -> ProductRead:
            product = Product(organisation_id=identity.organisation_id, **dto.model_dump(mode="python"))
            session.add(product)
            session.flush()
            return ProductRead.model_validate(product)

        try:
            return executor.run_scoped(identity, work)
        except IntegrityError as exc:
            raise ConflictError("Product code already exists") from exc


product_service = ProductService()
