"""
Test data factories for ShopFloor MRP.

Provides functions to create test entities with sensible defaults. Products
and BOMs go through the catalog service so opening stock is always backed by
a ledger entry.

Usage:
    from tests.factories import create_test_profile, create_test_product

    def test_something(db_session):
        operator = create_test_profile(db_session, role="operator")
        legs = create_test_product(db_session, name="Legs", stock=40)
"""
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from app.models.bom import BOM
from app.models.manufacturing_order import ManufacturingOrder, WorkOrder
from app.models.product import Product
from app.models.profile import UserProfile
from app.services import catalog
from app.services.order_workflow import OrderWorkflowService


# =============================================================================
# SEQUENCE MANAGEMENT
# =============================================================================

_sequences: Dict[str, int] = {}


def reset_sequences():
    """Reset all sequences. Call between tests for predictable names."""
    global _sequences
    _sequences = {}


def _next(name: str) -> int:
    """Get next sequence number for a given entity type."""
    _sequences[name] = _sequences.get(name, 0) + 1
    return _sequences[name]


# =============================================================================
# PROFILE FACTORY
# =============================================================================

def create_test_profile(
    db: Session,
    role: str = "operator",
    full_name: Optional[str] = None,
    email: Optional[str] = None,
    profile_id: Optional[int] = None,
) -> UserProfile:
    """
    Create a profile as the identity provider would mirror it.

    Profile ids are assigned by the provider, so they are set explicitly.
    """
    seq = _next("profile")
    profile = UserProfile(
        id=profile_id or 1000 + seq,
        email=email or f"{role}{seq}@example.com",
        full_name=full_name or f"{role.title()} {seq}",
        role=role,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


# =============================================================================
# CATALOG FACTORIES
# =============================================================================

def create_test_product(
    db: Session,
    name: Optional[str] = None,
    product_type: str = "raw_material",
    stock: int = 0,
    min_stock_level: int = 0,
) -> Product:
    """Create a product; stock is booked as an OPENING ledger entry."""
    return catalog.create_product(
        db,
        name=name or f"Component {_next('product')}",
        product_type=product_type,
        min_stock_level=min_stock_level,
        opening_stock=stock,
    )


def create_test_bom(
    db: Session,
    product: Product,
    components: Sequence[Tuple[Product, int]],
    active: bool = True,
    version: str = "1.0",
) -> BOM:
    """Create a BOM from (component, quantity) pairs."""
    return catalog.create_bom(
        db,
        product_id=product.id,
        lines=[
            {"component_product_id": component.id, "quantity": quantity}
            for component, quantity in components
        ],
        version=version,
        active=active,
    )


# =============================================================================
# ORDER FACTORIES
# =============================================================================

def create_test_manufacturing_order(
    db: Session,
    product: Product,
    quantity: int = 1,
    assignee: Optional[UserProfile] = None,
) -> Tuple[ManufacturingOrder, List[WorkOrder]]:
    """Create an MO through the workflow engine and return it with its WOs."""
    created = OrderWorkflowService(db).create_manufacturing_order(
        product_id=product.id,
        quantity=quantity,
        assignee_id=assignee.id if assignee else None,
    )
    return created.order, created.work_orders


def work_order_for(work_orders: Sequence[WorkOrder], component: Product) -> WorkOrder:
    """Pick the work order producing demand for one component."""
    return next(wo for wo in work_orders if wo.component_product_id == component.id)
