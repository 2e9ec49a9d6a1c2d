"""
Database models

Importing this package registers every table on Base.metadata.
"""
from app.models.profile import UserProfile
from app.models.product import Product, ProductType
from app.models.bom import BOM, BOMLine
from app.models.manufacturing_order import ManufacturingOrder, WorkOrder
from app.models.stock_ledger import StockLedgerEntry, MovementType, MovementDirection

__all__ = [
    "UserProfile",
    "Product",
    "ProductType",
    "BOM",
    "BOMLine",
    "ManufacturingOrder",
    "WorkOrder",
    "StockLedgerEntry",
    "MovementType",
    "MovementDirection",
]
