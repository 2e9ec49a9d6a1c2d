"""
Order Workflow Service

Creates Manufacturing Orders (MOs), fans them out into one Work Order (WO)
per BOM line and drives both through their status machines.

Status flow:
    MO: draft → confirmed → in_progress → completed   (cancelled from any open status)
    WO: pending → in_progress → completed            (pending may complete directly)

Side effects of WO completion (controlled by settings):
    CONSUME_STOCK_ON_COMPLETION        one work_order_consumption entry per WO,
                                       and a production entry when the MO completes
    AUTO_COMPLETE_MANUFACTURING_ORDERS MO completes once every non-cancelled WO has;
                                       when off, complete_manufacturing_order() does it

WO completion and cancellation lock the parent MO row first, so the sibling
statuses read afterwards include every committed change.

Each public write runs in exactly one database transaction.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import exists, func, update
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.core.status_config import (
    ManufacturingOrderStatus,
    OPEN_WORK_ORDER_STATUSES,
    StatusTransitionError,
    WorkOrderStatus,
    manufacturing_order_steps,
    validate_manufacturing_order_transition,
    validate_work_order_transition,
)
from app.db.session import transaction
from app.exceptions import (
    AlreadyCompletedError,
    InvalidStateError,
    NotFoundError,
    ReferentialIntegrityError,
    ValidationError,
)
from app.logging_config import get_logger
from app.models.bom import BOM
from app.models.manufacturing_order import ManufacturingOrder, WorkOrder
from app.models.product import Product
from app.models.profile import UserProfile
from app.models.stock_ledger import MovementDirection, MovementType
from app.services import catalog
from app.services.stock_ledger import StockLedgerService

logger = get_logger(__name__)


@dataclass
class ManufacturingOrderCreated:
    """Outcome of create_manufacturing_order()."""
    order: ManufacturingOrder
    work_orders: List[WorkOrder] = field(default_factory=list)

    @property
    def mo_id(self) -> int:
        return self.order.id

    @property
    def work_orders_created(self) -> int:
        return len(self.work_orders)


class OrderWorkflowService:
    """
    Workflow engine bound to a session and a stock ledger.

    Usage:
        workflow = OrderWorkflowService(db)
        created = workflow.create_manufacturing_order(product_id=3, quantity=10, assignee_id=7)
        workflow.complete_work_order(created.work_orders[0].id, operator_id=7)
    """

    def __init__(self, db: Session, ledger: Optional[StockLedgerService] = None):
        self.db = db
        self.ledger = ledger or StockLedgerService(db)

    # ==================================================================
    # Manufacturing orders
    # ==================================================================

    def create_manufacturing_order(
        self,
        product_id: int,
        quantity: int,
        assignee_id: Optional[int] = None,
        *,
        notes: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> ManufacturingOrderCreated:
        """
        Create an MO for the product's active BOM plus one WO per BOM line.

        All validation happens before the first write. The MO and its WOs are
        inserted in one transaction, so a failure leaves nothing behind.

        Raises:
            ValidationError: non-positive quantity, product not a finished good,
                assignee not an operator, BOM without lines
            ReferentialIntegrityError: product, assignee or a BOM component missing
            NoBomFoundError: product has no active BOM
            PersistenceError: the store failed; nothing was written
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("Quantity must be a positive integer", field="quantity", value=quantity)

        product = self.db.get(Product, product_id)
        if not product:
            raise ReferentialIntegrityError(
                f"Product {product_id} does not exist", resource="Product", resource_id=product_id
            )
        if not product.is_finished_good:
            raise ValidationError(
                f"Only finished goods can be manufactured; '{product.name}' is a {product.type}",
                field="product_id",
                value=product_id,
            )

        if assignee_id is not None:
            assignee = self.db.get(UserProfile, assignee_id)
            if not assignee:
                raise ReferentialIntegrityError(
                    f"Assignee {assignee_id} does not exist", resource="UserProfile", resource_id=assignee_id
                )
            if not assignee.is_operator:
                raise ValidationError(
                    "Work can only be assigned to operators",
                    field="assignee_id",
                    value=assignee_id,
                )

        bom = catalog.resolve_active_bom(self.db, product_id)
        if not bom.lines:
            raise ValidationError(f"BOM {bom.id} has no component lines", field="bom_id", value=bom.id)
        for line in bom.lines:
            if line.component is None:
                raise ReferentialIntegrityError(
                    f"BOM {bom.id} references missing component {line.component_product_id}",
                    resource="Product",
                    resource_id=line.component_product_id,
                )

        with transaction(self.db):
            order = ManufacturingOrder(
                product_id=product_id,
                bom_id=bom.id,
                quantity_to_produce=quantity,
                status=settings.MO_INITIAL_STATUS,
                assignee_id=assignee_id,
                notes=notes,
                created_by=created_by,
            )
            self.db.add(order)
            self.db.flush()

            work_orders = self._fan_out(order, bom)

        logger.info(
            f"Created manufacturing order {order.reference} with {len(work_orders)} work order(s)",
            extra={
                "mo_id": order.id,
                "product_id": product_id,
                "bom_id": bom.id,
                "quantity": quantity,
                "assignee_id": assignee_id,
            },
        )
        return ManufacturingOrderCreated(order=order, work_orders=work_orders)

    def _fan_out(self, order: ManufacturingOrder, bom: BOM) -> List[WorkOrder]:
        """One pending WO per BOM line, sized for the whole order."""
        work_orders = []
        for line in bom.lines:
            wo = WorkOrder(
                mo_id=order.id,
                bom_line_id=line.id,
                component_product_id=line.component_product_id,
                name=f"{line.component.name} for {order.reference}",
                required_quantity=line.quantity * order.quantity_to_produce,
                status=WorkOrderStatus.PENDING.value,
                operator_id=order.assignee_id,
            )
            self.db.add(wo)
            work_orders.append(wo)
        self.db.flush()
        return work_orders

    def confirm_manufacturing_order(self, mo_id: int) -> ManufacturingOrder:
        """draft → confirmed"""
        order = self._get_order_row(mo_id)
        if order.status != ManufacturingOrderStatus.DRAFT.value:
            raise InvalidStateError(
                f"Only draft orders can be confirmed; {order.reference} is {order.status}",
                current_state=order.status,
                allowed_states=[ManufacturingOrderStatus.DRAFT.value],
            )
        with transaction(self.db):
            self._set_order_status(order, ManufacturingOrderStatus.CONFIRMED.value)

        logger.info(f"Confirmed manufacturing order {order.reference}", extra={"mo_id": mo_id})
        return self.get_manufacturing_order(mo_id)

    def cancel_manufacturing_order(self, mo_id: int) -> ManufacturingOrder:
        """Cancel an open MO together with its open WOs."""
        order = self._get_order_row(mo_id)
        if order.is_terminal:
            raise InvalidStateError(
                f"{order.reference} is already {order.status}",
                current_state=order.status,
                allowed_states=[],
            )

        with transaction(self.db):
            self._set_order_status(order, ManufacturingOrderStatus.CANCELLED.value)
            result = self.db.execute(
                update(WorkOrder)
                .where(WorkOrder.mo_id == mo_id, WorkOrder.status.in_(OPEN_WORK_ORDER_STATUSES))
                .values(status=WorkOrderStatus.CANCELLED.value)
                .execution_options(synchronize_session=False)
            )
            cancelled_wos = result.rowcount

        logger.info(
            f"Cancelled manufacturing order {order.reference} and {cancelled_wos} open work order(s)",
            extra={"mo_id": mo_id},
        )
        return self.get_manufacturing_order(mo_id)

    def complete_manufacturing_order(self, mo_id: int, actor_id: Optional[int] = None) -> ManufacturingOrder:
        """
        in_progress → completed, for orders whose work is done.

        The path to completion when AUTO_COMPLETE_MANUFACTURING_ORDERS is off,
        and the repair for an order left in_progress with nothing open.

        Raises:
            NotFoundError: MO missing
            InvalidStateError: MO not in_progress, open WOs left, or every WO cancelled
        """
        with transaction(self.db):
            order = self._lock_order(mo_id)
            if order.status != ManufacturingOrderStatus.IN_PROGRESS.value:
                raise InvalidStateError(
                    f"Only in-progress orders can be completed; {order.reference} is {order.status}",
                    current_state=order.status,
                    allowed_states=[ManufacturingOrderStatus.IN_PROGRESS.value],
                )

            statuses = self._work_order_statuses(order.id)
            open_ids = [wo_id for wo_id, status in statuses if status in OPEN_WORK_ORDER_STATUSES]
            if open_ids:
                raise InvalidStateError(
                    f"{order.reference} still has {len(open_ids)} open work order(s)",
                    current_state=order.status,
                    details={"open_work_order_ids": open_ids},
                )
            if not any(status == WorkOrderStatus.COMPLETED.value for _, status in statuses):
                raise InvalidStateError(
                    f"{order.reference} has no completed work orders; cancel it instead",
                    current_state=order.status,
                    allowed_states=[ManufacturingOrderStatus.CANCELLED.value],
                )

            self._finish_order(order, actor_id)

        return self.get_manufacturing_order(mo_id)

    def get_manufacturing_order(self, mo_id: int) -> ManufacturingOrder:
        order = (
            self._order_query()
            .filter(ManufacturingOrder.id == mo_id)
            .first()
        )
        if not order:
            raise NotFoundError("Manufacturing order", mo_id)
        return order

    def list_manufacturing_orders(
        self,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[ManufacturingOrder], int]:
        """Orders newest first, with the total count before pagination."""
        query = self.db.query(ManufacturingOrder)
        if status:
            query = query.filter(ManufacturingOrder.status == self._order_status(status))
        total = query.count()

        ids = [
            row[0]
            for row in query.with_entities(ManufacturingOrder.id)
            .order_by(ManufacturingOrder.created_at.desc(), ManufacturingOrder.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        ]
        if not ids:
            return [], total
        orders = self._order_query().filter(ManufacturingOrder.id.in_(ids)).all()
        orders.sort(key=lambda o: ids.index(o.id))
        return orders, total

    def find_orders_with_finished_work(self) -> List[Tuple[int, int]]:
        """
        (mo_id, completed WO count) for open MOs with no open WOs left.

        These wait for complete_manufacturing_order(), either because
        auto-completion is off or because a completion was lost.
        """
        open_work = (
            exists()
            .where(WorkOrder.mo_id == ManufacturingOrder.id)
            .where(WorkOrder.status.in_(OPEN_WORK_ORDER_STATUSES))
        )
        rows = (
            self.db.query(ManufacturingOrder.id, func.count(WorkOrder.id))
            .join(WorkOrder, WorkOrder.mo_id == ManufacturingOrder.id)
            .filter(
                ManufacturingOrder.status.notin_([
                    ManufacturingOrderStatus.COMPLETED.value,
                    ManufacturingOrderStatus.CANCELLED.value,
                ]),
                WorkOrder.status == WorkOrderStatus.COMPLETED.value,
                ~open_work,
            )
            .group_by(ManufacturingOrder.id)
            .order_by(ManufacturingOrder.id)
            .all()
        )
        return [(mo_id, completed) for mo_id, completed in rows]

    # ==================================================================
    # Work orders
    # ==================================================================

    def complete_work_order(self, work_order_id: int, operator_id: int) -> WorkOrder:
        """
        Mark a WO completed on behalf of its operator.

        The status change is a guarded UPDATE, so of two concurrent calls only
        one succeeds. Stock consumption and MO progression happen in the same
        transaction; if stock is short the whole completion is rolled back.

        Raises:
            NotFoundError: WO missing or not assigned to operator_id
            AlreadyCompletedError: WO already completed (or a concurrent call won)
            InvalidStateError: WO cancelled
            InsufficientStockError: not enough component stock to consume
        """
        wo = self._get_owned_work_order(work_order_id, operator_id)
        if wo.status == WorkOrderStatus.COMPLETED.value:
            raise AlreadyCompletedError(work_order_id)
        self._check_work_order_transition(wo, WorkOrderStatus.COMPLETED.value)

        now = datetime.utcnow()
        with transaction(self.db):
            order = self._lock_order(wo.mo_id)
            result = self.db.execute(
                update(WorkOrder)
                .where(
                    WorkOrder.id == work_order_id,
                    WorkOrder.operator_id == operator_id,
                    WorkOrder.status.in_(OPEN_WORK_ORDER_STATUSES),
                )
                .values(
                    status=WorkOrderStatus.COMPLETED.value,
                    completed_at=now,
                    started_at=func.coalesce(WorkOrder.started_at, now),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise AlreadyCompletedError(work_order_id)
            self.db.refresh(wo)

            if settings.CONSUME_STOCK_ON_COMPLETION:
                self.ledger.append_movement(
                    wo.component_product_id,
                    MovementType.WORK_ORDER_CONSUMPTION,
                    MovementDirection.OUT,
                    wo.required_quantity,
                    wo.reference,
                    reference_type="work_order",
                    created_by=operator_id,
                )

            self._sync_order_with_work_orders(order, actor_id=operator_id)

        logger.info(
            f"Work order {wo.reference} completed",
            extra={"work_order_id": work_order_id, "operator_id": operator_id, "mo_id": wo.mo_id},
        )
        return self._get_enriched_work_order(work_order_id)

    def start_work_order(self, work_order_id: int, operator_id: int) -> WorkOrder:
        """pending → in_progress for the assigned operator; the MO moves to in_progress."""
        wo = self._get_owned_work_order(work_order_id, operator_id)
        if wo.status != WorkOrderStatus.PENDING.value:
            raise InvalidStateError(
                f"Only pending work orders can be started; {wo.reference} is {wo.status}",
                current_state=wo.status,
                allowed_states=[WorkOrderStatus.PENDING.value],
            )

        with transaction(self.db):
            result = self.db.execute(
                update(WorkOrder)
                .where(
                    WorkOrder.id == work_order_id,
                    WorkOrder.operator_id == operator_id,
                    WorkOrder.status == WorkOrderStatus.PENDING.value,
                )
                .values(status=WorkOrderStatus.IN_PROGRESS.value, started_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise InvalidStateError(
                    f"{wo.reference} changed status concurrently",
                    allowed_states=[WorkOrderStatus.PENDING.value],
                )
            self.db.refresh(wo)
            self._advance_order(wo.manufacturing_order, ManufacturingOrderStatus.IN_PROGRESS.value)

        logger.info(f"Work order {wo.reference} started", extra={"work_order_id": work_order_id, "operator_id": operator_id})
        return self._get_enriched_work_order(work_order_id)

    def assign_work_order(self, work_order_id: int, operator_id: int) -> WorkOrder:
        """Hand an open WO to an operator."""
        wo = self._get_work_order_row(work_order_id)
        if not wo.is_open:
            raise InvalidStateError(
                f"Cannot reassign {wo.reference} in status '{wo.status}'",
                current_state=wo.status,
                allowed_states=list(OPEN_WORK_ORDER_STATUSES),
            )
        operator = self.db.get(UserProfile, operator_id)
        if not operator:
            raise ReferentialIntegrityError(
                f"Operator {operator_id} does not exist", resource="UserProfile", resource_id=operator_id
            )
        if not operator.is_operator:
            raise ValidationError("Work can only be assigned to operators", field="operator_id", value=operator_id)

        with transaction(self.db):
            wo.operator_id = operator_id

        logger.info(f"Work order {wo.reference} assigned to operator {operator_id}")
        return self._get_enriched_work_order(work_order_id)

    def cancel_work_order(self, work_order_id: int) -> WorkOrder:
        """Cancel an open WO; the parent MO may complete if the rest are done."""
        wo = self._get_work_order_row(work_order_id)
        if not wo.is_open:
            raise InvalidStateError(
                f"Cannot cancel {wo.reference} in status '{wo.status}'",
                current_state=wo.status,
                allowed_states=list(OPEN_WORK_ORDER_STATUSES),
            )
        self._check_work_order_transition(wo, WorkOrderStatus.CANCELLED.value)

        with transaction(self.db):
            order = self._lock_order(wo.mo_id)
            result = self.db.execute(
                update(WorkOrder)
                .where(WorkOrder.id == work_order_id, WorkOrder.status.in_(OPEN_WORK_ORDER_STATUSES))
                .values(status=WorkOrderStatus.CANCELLED.value)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise InvalidStateError(f"{wo.reference} changed status concurrently")
            self.db.refresh(wo)
            self._sync_order_with_work_orders(order, actor_id=None)

        logger.info(f"Work order {wo.reference} cancelled", extra={"work_order_id": work_order_id})
        return self._get_enriched_work_order(work_order_id)

    def list_work_orders_for_operator(self, operator_id: int) -> List[WorkOrder]:
        """All WOs assigned to one operator, newest first."""
        return self.list_work_orders(operator_id=operator_id)

    def list_work_orders(
        self,
        operator_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> List[WorkOrder]:
        """WOs joined with their MO, finished product, component and operator."""
        query = self._work_order_query()
        if operator_id is not None:
            query = query.filter(WorkOrder.operator_id == operator_id)
        if status:
            try:
                status = WorkOrderStatus(status).value
            except ValueError:
                raise ValidationError(f"Invalid work order status '{status}'", field="status", value=status)
            query = query.filter(WorkOrder.status == status)
        return query.order_by(WorkOrder.created_at.desc(), WorkOrder.id).all()

    # ==================================================================
    # Internals
    # ==================================================================

    def _order_query(self):
        return self.db.query(ManufacturingOrder).options(
            joinedload(ManufacturingOrder.product),
            joinedload(ManufacturingOrder.assignee),
            joinedload(ManufacturingOrder.work_orders).joinedload(WorkOrder.component),
            joinedload(ManufacturingOrder.work_orders).joinedload(WorkOrder.operator),
        )

    def _work_order_query(self):
        return self.db.query(WorkOrder).options(
            joinedload(WorkOrder.manufacturing_order).joinedload(ManufacturingOrder.product),
            joinedload(WorkOrder.component),
            joinedload(WorkOrder.operator),
        )

    def _get_order_row(self, mo_id: int) -> ManufacturingOrder:
        order = self.db.get(ManufacturingOrder, mo_id)
        if not order:
            raise NotFoundError("Manufacturing order", mo_id)
        return order

    def _get_work_order_row(self, work_order_id: int) -> WorkOrder:
        wo = self.db.get(WorkOrder, work_order_id)
        if not wo:
            raise NotFoundError("Work order", work_order_id)
        return wo

    def _get_owned_work_order(self, work_order_id: int, operator_id: int) -> WorkOrder:
        # Someone else's work order is reported as missing
        wo = (
            self.db.query(WorkOrder)
            .filter(WorkOrder.id == work_order_id, WorkOrder.operator_id == operator_id)
            .first()
        )
        if not wo:
            raise NotFoundError("Work order", work_order_id)
        return wo

    def _get_enriched_work_order(self, work_order_id: int) -> WorkOrder:
        wo = self._work_order_query().filter(WorkOrder.id == work_order_id).first()
        if not wo:
            raise NotFoundError("Work order", work_order_id)
        return wo

    @staticmethod
    def _order_status(value: str) -> str:
        try:
            return ManufacturingOrderStatus(value).value
        except ValueError:
            raise ValidationError(f"Invalid manufacturing order status '{value}'", field="status", value=value)

    def _set_order_status(self, order: ManufacturingOrder, new_status: str) -> None:
        try:
            validate_manufacturing_order_transition(order.status, new_status)
        except StatusTransitionError as e:
            raise InvalidStateError(str(e), current_state=e.current, allowed_states=e.allowed)
        order.status = new_status

    def _advance_order(self, order: ManufacturingOrder, target: str) -> None:
        """Walk an order forward to target, one validated step at a time."""
        try:
            steps = manufacturing_order_steps(order.status, target)
        except StatusTransitionError as e:
            raise InvalidStateError(
                f"{order.reference} is {order.status} and cannot move to {target}",
                current_state=e.current,
                allowed_states=e.allowed,
            )
        for step in steps:
            self._set_order_status(order, step)

    def _lock_order(self, mo_id: int) -> ManufacturingOrder:
        """
        Row-lock an MO for the rest of the transaction and reload it.

        WO completion and cancellation take this lock first, so two
        transactions finishing sibling WOs run one after the other.
        """
        order = (
            self.db.query(ManufacturingOrder)
            .filter(ManufacturingOrder.id == mo_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not order:
            raise NotFoundError("Manufacturing order", mo_id)
        return order

    def _check_work_order_transition(self, wo: WorkOrder, new_status: str) -> None:
        try:
            validate_work_order_transition(wo.status, new_status)
        except StatusTransitionError as e:
            raise InvalidStateError(
                f"Cannot move {wo.reference} from '{wo.status}' to '{new_status}'",
                current_state=e.current,
                allowed_states=e.allowed,
            )

    def _work_order_statuses(self, mo_id: int) -> List[Tuple[int, str]]:
        return [
            (row[0], row[1])
            for row in self.db.query(WorkOrder.id, WorkOrder.status)
            .filter(WorkOrder.mo_id == mo_id)
            .order_by(WorkOrder.id)
            .all()
        ]

    def _sync_order_with_work_orders(self, order: ManufacturingOrder, actor_id: Optional[int]) -> None:
        """Bring the MO status in line with its WOs after one of them changed."""
        if order.is_terminal:
            return

        live = [
            status for _, status in self._work_order_statuses(order.id)
            if status != WorkOrderStatus.CANCELLED.value
        ]
        all_done = bool(live) and all(s == WorkOrderStatus.COMPLETED.value for s in live)

        if all_done and settings.AUTO_COMPLETE_MANUFACTURING_ORDERS:
            self._advance_order(order, ManufacturingOrderStatus.IN_PROGRESS.value)
            self._finish_order(order, actor_id)
        elif any(s != WorkOrderStatus.PENDING.value for s in live):
            self._advance_order(order, ManufacturingOrderStatus.IN_PROGRESS.value)

    def _finish_order(self, order: ManufacturingOrder, actor_id: Optional[int]) -> None:
        """Mark the MO completed and book its output."""
        self._set_order_status(order, ManufacturingOrderStatus.COMPLETED.value)
        order.completed_at = datetime.utcnow()
        self.db.flush()
        if settings.CONSUME_STOCK_ON_COMPLETION:
            self.ledger.append_movement(
                order.product_id,
                MovementType.PRODUCTION,
                MovementDirection.IN,
                order.quantity_to_produce,
                order.reference,
                reference_type="manufacturing_order",
                created_by=actor_id,
            )
        logger.info(
            f"Manufacturing order {order.reference} completed",
            extra={"mo_id": order.id, "quantity": order.quantity_to_produce},
        )
