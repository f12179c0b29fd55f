from fastapi import APIRouter
from kfet.api.endpoints import (
    admin,
    categories,
    customers,
    orders,
    product_categories,
    products,
)

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(categories.router)
api_router.include_router(customers.router)
api_router.include_router(product_categories.router)
api_router.include_router(products.router)
api_router.include_router(orders.router)
api_router.include_router(admin.router)
