from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass

from sqlalchemy import Select, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gardengear.core.database import utcnow
from gardengear.platform.security.context import CallerIdentity
from gardengear.platform.security.errors import ConflictError, NotFoundError
from gardengear.platform.tenancy.executor import TenantScopedExecutor
from gardengear.workshop.customers.models import Customer
from gardengear.workshop.customers.schemas import CustomerCreate, CustomerRead, CustomerUpdate


logger = logging.getLogger("app.customers")

SEARCH_LIMIT = 50
ACCOUNT_NUMBER_ATTEMPTS = 5

_UUID_LIKE = re.compile(r"^[0-9a-fA-F-]{36}$")


def account_number_prefix(name: str) -> str:
    letters = re.sub(r"[^a-zA-Z]", "", name)
    return (letters[:2] if len(letters) >= 2 else letters.ljust(2, "X")).upper()


def next_account_number(session: Session, name: str) -> str:
    prefix = account_number_prefix(name)
    existing = session.scalars(select(Customer).where(Customer.account_number.like(f"{prefix}%"))).all()
    used = [int(row.account_number[2:]) for row in existing if row.account_number[2:].isdigit()]
    return f"{prefix}{max(used, default=0) + 1:03d}"


@dataclass(slots=True)
class CustomerService:
    def search(self, executor: TenantScopedExecutor, identity: CallerIdentity, query: str | None) -> list[CustomerRead]:
        def work(session: Session) -> list[CustomerRead]:
            stmt: Select[tuple[Customer]] = select(Customer)
            term = (query or "").strip()
            if term:
                pattern = f"%{term}%"
                stmt = stmt.where(
                    or_(
                        Customer.name.ilike(pattern),
                        Customer.company_name.ilike(pattern),
                        Customer.email.ilike(pattern),
                        Customer.phone.ilike(pattern),
                        Customer.account_number.ilike(pattern),
                        Customer.postcode.ilike(pattern),
                    )
                )
            rows = session.scalars(stmt.order_by(Customer.name.asc()).limit(SEARCH_LIMIT)).all()
            return [CustomerRead.model_validate(row) for row in rows]

        return executor.run_scoped(identity, work)

    def get(self, executor: TenantScopedExecutor, identity: CallerIdentity, id_or_account: str) -> CustomerRead:
        """Look a customer up by id when the key looks like a UUID, else by account number."""

        def work(session: Session) -> CustomerRead | None:
            if _UUID_LIKE.match(id_or_account):
                try:
                    customer_id = uuid.UUID(id_or_account)
                except ValueError:
                    return None
                stmt = select(Customer).where(Customer.id == customer_id)
            else:
                stmt = select(Customer).where(Customer.account_number == id_or_account)
            row = session.scalar(stmt)
            return CustomerRead.model_validate(row) if row is not None else None

        customer = executor.run_scoped(identity, work)
        if customer is None:
            raise NotFoundError("Customer not found")
        return customer

    def create(self, executor: TenantScopedExecutor, identity: CallerIdentity, dto: CustomerCreate) -> CustomerRead:
        def work(session: Session) -> CustomerRead:
            payload = dto.model_dump(mode="python")
            if not payload.get("account_number"):
                payload["account_number"] = next_account_number(session, dto.name)
            customer = Customer(organisation_id=identity.organisation_id, **payload)
            session.add(customer)
            session.flush()
            return CustomerRead.model_validate(customer)

        # A generated number can lose a race with a concurrent create; supplied numbers are never retried.
        attempts = 1 if dto.account_number else ACCOUNT_NUMBER_ATTEMPTS
        for _ in range(attempts - 1):
            try:
                return executor.run_scoped(identity, work)
            except IntegrityError:
                logger.info("customers.account_number_retry", extra={"outcome": "retry"})
        try:
            return executor.run_scoped(identity, work)
        except IntegrityError as exc:
            raise ConflictError("Account number already exists") from exc

    def update(
        self,
        executor: TenantScopedExecutor,
        identity: CallerIdentity,
        customer_id: uuid.UUID,
        dto: CustomerUpdate,
    ) -> CustomerRead:
        def work(session: Session) -> CustomerRead | None:
            result = session.execute(
                update(Customer)
                .where(Customer.id == customer_id)
                .values(**dto.model_dump(mode="python"), updated_at=utcnow()),
                execution_options={"synchronize_session": False},
            )
            if result.rowcount == 0:
                return None
            row = session.scalar(select(Customer).where(Customer.id == customer_id))
            return CustomerRead.model_validate(row) if row is not None else None

        customer = executor.run_scoped(identity, work)
        if customer is None:
            raise NotFoundError("Customer not found")
        return customer


customer_service = CustomerService()
