"""
API v1 Router - ShopFloor MRP
"""
from fastapi import APIRouter

from app.schemas.common import ErrorResponse
from app.api.v1.endpoints import (
    products,
    boms,
    manufacturing_orders,
    work_orders,
    stock_ledger,
    dashboard,
    operators,
)

# Every route shares the ShopFloorException error body
router = APIRouter(
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
        403: {"model": ErrorResponse, "description": "Role not allowed"},
    }
)

# Products
router.include_router(
    products.router,
    prefix="/products",
    tags=["products"]
)

# Bills of Materials
router.include_router(
    boms.router,
    prefix="/boms",
    tags=["boms"]
)

# Manufacturing Orders (creation fans out work orders)
router.include_router(
    manufacturing_orders.router,
    prefix="/manufacturing-orders",
    tags=["manufacturing"]
)

# Work Orders (shop floor)
router.include_router(
    work_orders.router,
    prefix="/work-orders",
    tags=["manufacturing"]
)

# Stock Ledger
router.include_router(
    stock_ledger.router,
    prefix="/stock-ledger",
    tags=["inventory"]
)

# Dashboard
router.include_router(
    dashboard.router,
    prefix="/dashboard",
    tags=["dashboard"]
)

# Operators
router.include_router(
    operators.router,
    prefix="/operators",
    tags=["operators"]
)
