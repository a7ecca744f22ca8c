from gardengear.workshop.products.api import router
from gardengear.workshop.products.models import Product
from gardengear.workshop.products.schemas import ProductCreate, ProductRead
from gardengear.workshop.products.service import ProductService, product_service

__all__ = [
    "router",
    "Product",
    "ProductCreate",
    "ProductRead",
    "ProductService",
    "product_service",
]
