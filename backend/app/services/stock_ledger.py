"""
Stock Ledger Service

Append-only inventory movements with a running balance per product.

Every change to Product.stock_on_hand goes through append_movement(), which
writes one immutable ledger row and mirrors its balance onto the product.
Replaying a product's rows in (created_at, id) order reproduces its stock.

The service never commits: callers wrap it in app.db.session.transaction()
so a movement is atomic with the work that caused it.
"""
from typing import Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from app.exceptions import InsufficientStockError, NotFoundError, ValidationError
from app.logging_config import get_logger
from app.models.product import Product
from app.models.stock_ledger import MovementDirection, MovementType, StockLedgerEntry
from app.schemas.stock_ledger import LedgerCheckResult, LedgerVerificationReport

logger = get_logger(__name__)

# Direction each movement type must use. manual_adjustment may go either way.
REQUIRED_DIRECTION: Dict[MovementType, MovementDirection] = {
    MovementType.PURCHASE: MovementDirection.IN,
    MovementType.PRODUCTION: MovementDirection.IN,
    MovementType.SALE: MovementDirection.OUT,
    MovementType.WORK_ORDER_CONSUMPTION: MovementDirection.OUT,
}


def _coerce_enum(enum_cls, value, field: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [m.value for m in enum_cls]
        raise ValidationError(
            f"Invalid {field} '{value}'. Must be one of: {', '.join(allowed)}",
            field=field,
            value=value,
        )


class StockLedgerService:
    """Ledger operations bound to one database session."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def append_movement(
        self,
        product_id: int,
        movement_type,
        direction,
        quantity: int,
        reference_id: Optional[str] = None,
        *,
        reference_type: Optional[str] = None,
        notes: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> StockLedgerEntry:
        """
        Record one movement and update the product's stock.

        Raises:
            ValidationError: bad quantity, unknown type/direction, or a
                direction that does not match the movement type
            NotFoundError: product does not exist
            InsufficientStockError: balance would go negative (any type
                except manual_adjustment); nothing is written
        """
        movement_type = _coerce_enum(MovementType, movement_type, "movement_type")
        direction = _coerce_enum(MovementDirection, direction, "direction")

        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("Quantity must be a positive integer", field="quantity", value=quantity)

        required = REQUIRED_DIRECTION.get(movement_type)
        if required is not None and direction != required:
            raise ValidationError(
                f"Movement type '{movement_type.value}' must be an '{required.value}' movement",
                field="direction",
                value=direction.value,
            )

        # Serialize concurrent appends for the same product
        product = (
            self.db.query(Product)
            .filter(Product.id == product_id)
            .with_for_update()
            .first()
        )
        if not product:
            raise NotFoundError("Product", product_id)

        current_balance = self.current_balance(product_id)
        signed = quantity if direction == MovementDirection.IN else -quantity
        new_balance = current_balance + signed

        if new_balance < 0 and movement_type != MovementType.MANUAL_ADJUSTMENT:
            logger.warning(
                "Rejected stock movement: insufficient stock",
                extra={
                    "product_id": product_id,
                    "movement_type": movement_type.value,
                    "requested": quantity,
                    "available": current_balance,
                },
            )
            raise InsufficientStockError(product.name, requested=quantity, available=current_balance)

        entry = StockLedgerEntry(
            product_id=product_id,
            movement_type=movement_type.value,
            quantity_in=quantity if direction == MovementDirection.IN else None,
            quantity_out=quantity if direction == MovementDirection.OUT else None,
            balance=new_balance,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
            created_by=created_by,
        )
        self.db.add(entry)
        product.stock_on_hand = new_balance
        self.db.flush()

        logger.info(
            f"Stock movement {movement_type.value} {signed:+d} for product {product_id} -> {new_balance}",
            extra={"product_id": product_id, "ledger_entry_id": entry.id, "reference_id": reference_id},
        )
        return entry

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def current_balance(self, product_id: int) -> int:
        """Balance after the product's latest entry, 0 when it has none."""
        latest = (
            self.db.query(StockLedgerEntry.balance)
            .filter(StockLedgerEntry.product_id == product_id)
            .order_by(StockLedgerEntry.created_at.desc(), StockLedgerEntry.id.desc())
            .first()
        )
        return latest[0] if latest else 0

    def list_entries(
        self,
        product_id: Optional[int] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[StockLedgerEntry]:
        """Entries newest first, optionally for one product."""
        query = self.db.query(StockLedgerEntry).options(joinedload(StockLedgerEntry.product))
        if product_id is not None:
            query = query.filter(StockLedgerEntry.product_id == product_id)
        return (
            query.order_by(StockLedgerEntry.created_at.desc(), StockLedgerEntry.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    # ------------------------------------------------------------------
    # Reconstruction checks
    # ------------------------------------------------------------------

    def verify_product(self, product_id: int) -> LedgerCheckResult:
        """Replay one product's ledger and compare it with stock_on_hand."""
        product = self.db.get(Product, product_id)
        if not product:
            raise NotFoundError("Product", product_id)
        return self._check(product)

    def verify_all(self) -> LedgerVerificationReport:
        """Replay every product's ledger. Only mismatches are listed."""
        products = self.db.query(Product).order_by(Product.id).all()
        results = [self._check(product) for product in products]
        inconsistencies = [r for r in results if not r.consistent]
        if inconsistencies:
            logger.warning(
                f"Stock ledger verification found {len(inconsistencies)} inconsistent product(s)",
                extra={"product_ids": [r.product_id for r in inconsistencies]},
            )
        return LedgerVerificationReport(
            products_checked=len(results),
            consistent=not inconsistencies,
            inconsistencies=inconsistencies,
        )

    def _check(self, product: Product) -> LedgerCheckResult:
        entries = (
            self.db.query(StockLedgerEntry)
            .filter(StockLedgerEntry.product_id == product.id)
            .order_by(StockLedgerEntry.created_at, StockLedgerEntry.id)
            .all()
        )
        running = 0
        broken = []
        for entry in entries:
            running += entry.signed_quantity
            if entry.balance != running:
                broken.append(entry.id)

        return LedgerCheckResult(
            product_id=product.id,
            product_name=product.name,
            entry_count=len(entries),
            replayed_balance=running,
            stock_on_hand=product.stock_on_hand,
            broken_entries=broken,
            consistent=not broken and running == product.stock_on_hand,
        )
