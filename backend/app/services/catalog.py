"""
Catalog service - products, bills of materials and operator profiles

Writes run inside app.db.session.transaction(); BOM headers and their lines
are created and deleted together.
"""
from typing import Any, Iterable, List, Mapping, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from app.db.session import transaction
from app.exceptions import (
    ConflictError,
    DuplicateError,
    NoBomFoundError,
    NotFoundError,
    ReferentialIntegrityError,
    ValidationError,
)
from app.logging_config import get_logger
from app.models.bom import BOM, BOMLine
from app.models.manufacturing_order import ManufacturingOrder, WorkOrder
from app.models.product import Product, ProductType
from app.models.profile import UserProfile
from app.models.stock_ledger import MovementDirection, MovementType, StockLedgerEntry
from app.services.stock_ledger import StockLedgerService

logger = get_logger(__name__)

OPENING_REFERENCE = "OPENING"


def _product_type(value: Any) -> ProductType:
    try:
        return ProductType(value)
    except ValueError:
        raise ValidationError(
            f"Invalid product type '{value}'. Must be 'raw_material' or 'finished_good'",
            field="type",
            value=value,
        )


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


# ============================================================================
# Products
# ============================================================================

def get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product", product_id)
    return product


def list_products(
    db: Session,
    product_type: Optional[str] = None,
    low_stock_only: bool = False,
    search: Optional[str] = None,
) -> List[Product]:
    query = db.query(Product)
    if product_type:
        query = query.filter(Product.type == _product_type(product_type).value)
    if low_stock_only:
        query = query.filter(Product.stock_on_hand < Product.min_stock_level)
    if search:
        query = query.filter(Product.name.ilike(f"%{search}%"))
    return query.order_by(Product.name).all()


def create_product(
    db: Session,
    name: str,
    product_type: Any = ProductType.RAW_MATERIAL,
    min_stock_level: int = 0,
    opening_stock: int = 0,
    created_by: Optional[int] = None,
) -> Product:
    """
    Create a product. Opening stock is booked as a manual_adjustment ledger
    entry with reference OPENING so the ledger fully explains the balance.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Product name is required", field="name")
    ptype = _product_type(product_type)
    if isinstance(min_stock_level, bool) or not isinstance(min_stock_level, int) or min_stock_level < 0:
        raise ValidationError("min_stock_level must be a non-negative integer", field="min_stock_level", value=min_stock_level)
    if isinstance(opening_stock, bool) or not isinstance(opening_stock, int) or opening_stock < 0:
        raise ValidationError("opening_stock must be a non-negative integer", field="opening_stock", value=opening_stock)

    if db.query(Product.id).filter(Product.name == name).first():
        raise DuplicateError("Product", field="name", value=name)

    with transaction(db):
        product = Product(
            name=name,
            type=ptype.value,
            min_stock_level=min_stock_level,
            stock_on_hand=0,
        )
        db.add(product)
        db.flush()

        if opening_stock > 0:
            StockLedgerService(db).append_movement(
                product.id,
                MovementType.MANUAL_ADJUSTMENT,
                MovementDirection.IN,
                opening_stock,
                OPENING_REFERENCE,
                reference_type="adjustment",
                notes="Opening balance",
                created_by=created_by,
            )

    db.refresh(product)
    logger.info(f"Created product {product.id} '{product.name}' ({product.type})")
    return product


def update_product(
    db: Session,
    product_id: int,
    name: Optional[str] = None,
    product_type: Any = None,
    min_stock_level: Optional[int] = None,
) -> Product:
    """Update master data. stock_on_hand is only changed through the stock ledger."""
    product = get_product(db, product_id)

    if name is not None:
        name = name.strip()
        if not name:
            raise ValidationError("Product name cannot be empty", field="name")
        clash = db.query(Product.id).filter(Product.name == name, Product.id != product_id).first()
        if clash:
            raise DuplicateError("Product", field="name", value=name)

    new_type = _product_type(product_type) if product_type is not None else None
    if new_type == ProductType.RAW_MATERIAL and product.is_finished_good:
        if db.query(BOM.id).filter(BOM.product_id == product_id).first():
            raise ConflictError(
                f"Product {product_id} has bills of materials and must stay a finished good",
                details={"product_id": product_id},
            )

    if min_stock_level is not None and min_stock_level < 0:
        raise ValidationError("min_stock_level must be a non-negative integer", field="min_stock_level", value=min_stock_level)

    with transaction(db):
        if name is not None:
            product.name = name
        if new_type is not None:
            product.type = new_type.value
        if min_stock_level is not None:
            product.min_stock_level = min_stock_level

    db.refresh(product)
    return product


def delete_product(db: Session, product_id: int) -> None:
    """Delete a product nothing else refers to."""
    product = get_product(db, product_id)

    references = {
        "boms": db.query(BOM.id).filter(BOM.product_id == product_id).first(),
        "bom_lines": db.query(BOMLine.id).filter(BOMLine.component_product_id == product_id).first(),
        "manufacturing_orders": db.query(ManufacturingOrder.id).filter(ManufacturingOrder.product_id == product_id).first(),
        "work_orders": db.query(WorkOrder.id).filter(WorkOrder.component_product_id == product_id).first(),
        "stock_ledger": db.query(StockLedgerEntry.id).filter(StockLedgerEntry.product_id == product_id).first(),
    }
    referenced_by = [table for table, row in references.items() if row]
    if referenced_by:
        raise ConflictError(
            f"Product {product_id} is still referenced and cannot be deleted",
            details={"product_id": product_id, "referenced_by": referenced_by},
        )

    with transaction(db):
        db.delete(product)
    logger.info(f"Deleted product {product_id}")


# ============================================================================
# Bills of Materials
# ============================================================================

def _bom_query(db: Session):
    return db.query(BOM).options(
        joinedload(BOM.product),
        joinedload(BOM.lines).joinedload(BOMLine.component),
    )


def get_bom(db: Session, bom_id: int) -> BOM:
    bom = _bom_query(db).filter(BOM.id == bom_id).first()
    if not bom:
        raise NotFoundError("Bill of materials", bom_id)
    return bom


def list_boms(db: Session, product_id: Optional[int] = None, active: Optional[bool] = None) -> List[BOM]:
    query = _bom_query(db)
    if product_id is not None:
        query = query.filter(BOM.product_id == product_id)
    if active is not None:
        query = query.filter(BOM.active.is_(active))
    return query.order_by(BOM.updated_at.desc(), BOM.id.desc()).all()


def resolve_active_bom(db: Session, product_id: int) -> BOM:
    """
    The BOM used for new manufacturing orders: the most recently updated
    active BOM of the product.

    Raises:
        NoBomFoundError: product has no active BOM
    """
    bom = (
        _bom_query(db)
        .filter(BOM.product_id == product_id, BOM.active.is_(True))
        .order_by(BOM.updated_at.desc(), BOM.id.desc())
        .first()
    )
    if not bom:
        raise NoBomFoundError(product_id)
    return bom


def create_bom(
    db: Session,
    product_id: int,
    lines: Iterable[Mapping[str, Any]],
    name: Optional[str] = None,
    version: str = "1.0",
    active: bool = True,
    created_by: Optional[int] = None,
) -> BOM:
    """
    Create a BOM header and its lines atomically.

    lines: mappings with component_product_id and quantity.
    """
    lines = list(lines or [])
    product = db.get(Product, product_id)
    if not product:
        raise ReferentialIntegrityError(
            f"Product {product_id} does not exist", resource="Product", resource_id=product_id
        )
    if not product.is_finished_good:
        raise ValidationError(
            f"BOMs can only be created for finished goods; '{product.name}' is a {product.type}",
            field="product_id",
            value=product_id,
        )
    if not lines:
        raise ValidationError("A BOM needs at least one component line", field="lines")

    seen = set()
    for line in lines:
        component_id = line.get("component_product_id")
        quantity = line.get("quantity")
        if not _is_positive_int(quantity):
            raise ValidationError(
                f"Quantity for component {component_id} must be a positive integer",
                field="quantity",
                value=quantity,
            )
        if component_id == product_id:
            raise ConflictError(
                "A BOM cannot list its own product as a component",
                details={"product_id": product_id},
            )
        if component_id in seen:
            raise ValidationError(
                f"Component {component_id} appears more than once",
                field="component_product_id",
                value=component_id,
            )
        seen.add(component_id)

    existing = {row[0] for row in db.query(Product.id).filter(Product.id.in_(seen)).all()}
    missing = sorted(seen - existing, key=str)
    if missing:
        raise ReferentialIntegrityError(
            f"Component product(s) not found: {', '.join(str(m) for m in missing)}",
            resource="Product",
            resource_id=missing[0],
            details={"missing_component_ids": [str(m) for m in missing]},
        )

    with transaction(db):
        bom = BOM(
            product_id=product_id,
            name=name or f"{product.name} BOM",
            version=version,
            active=active,
            created_by=created_by,
        )
        bom.lines = [
            BOMLine(component_product_id=line["component_product_id"], quantity=line["quantity"])
            for line in lines
        ]
        db.add(bom)
        db.flush()
        bom_id = bom.id

    logger.info(f"Created BOM {bom_id} for product {product_id} with {len(lines)} line(s)")
    return get_bom(db, bom_id)


def delete_bom(db: Session, bom_id: int) -> None:
    """Delete a BOM and its lines. Refused while manufacturing orders use it."""
    bom = get_bom(db, bom_id)
    in_use = db.query(ManufacturingOrder.id).filter(ManufacturingOrder.bom_id == bom_id).count()
    if in_use:
        raise ConflictError(
            f"BOM {bom_id} is referenced by {in_use} manufacturing order(s)",
            details={"bom_id": bom_id, "manufacturing_orders": in_use},
        )

    with transaction(db):
        for line in list(bom.lines):
            db.delete(line)
        db.flush()
        db.delete(bom)
    logger.info(f"Deleted BOM {bom_id}")


# ============================================================================
# Profiles
# ============================================================================

def get_profile(db: Session, profile_id: int) -> Optional[UserProfile]:
    return db.get(UserProfile, profile_id)


def list_operators(db: Session, search: Optional[str] = None) -> List[UserProfile]:
    query = db.query(UserProfile).filter(UserProfile.role == "operator")
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(UserProfile.full_name.ilike(pattern), UserProfile.email.ilike(pattern)))
    return query.order_by(UserProfile.full_name, UserProfile.id).all()
