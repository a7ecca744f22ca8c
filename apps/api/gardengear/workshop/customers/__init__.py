from gardengear.workshop.customers.api import router
from gardengear.workshop.customers.models import Customer
from gardengear.workshop.customers.schemas import CustomerCreate, CustomerRead, CustomerUpdate
from gardengear.workshop.customers.service import CustomerService, customer_service

__all__ = [
    "router",
    "Customer",
    "CustomerCreate",
    "CustomerRead",
    "CustomerUpdate",
    "CustomerService",
    "customer_service",
]
