"""
Unit Tests for the Stock Ledger Service

Running balances, the no-negative-stock rule, movement direction rules and
reconstruction of stock_on_hand from the ledger.
"""
import pytest

from app.db.session import transaction
from app.exceptions import InsufficientStockError, NotFoundError, ValidationError
from app.models.product import Product
from app.models.stock_ledger import StockLedgerEntry
from app.services.stock_ledger import StockLedgerService

from tests.factories import create_test_product


def _append(db, product, movement_type, direction, quantity, reference=None):
    with transaction(db):
        entry = StockLedgerService(db).append_movement(
            product.id, movement_type, direction, quantity, reference
        )
    return entry


def _stock(db, product_id):
    db.expire_all()
    return db.get(Product, product_id).stock_on_hand


@pytest.mark.unit
class TestAppendMovement:

    def test_outbound_movement_beyond_stock_is_rejected(self, db_session):
        legs = create_test_product(db_session, name="Legs", stock=42)

        with pytest.raises(InsufficientStockError) as exc_info:
            _append(db_session, legs, "sale", "out", 50)

        assert exc_info.value.status_code == 422
        assert exc_info.value.details["available"] == 42
        assert _stock(db_session, legs.id) == 42
        assert db_session.query(StockLedgerEntry).filter_by(product_id=legs.id).count() == 1

    def test_balance_runs_across_movements(self, db_session):
        seat = create_test_product(db_session, name="Seat", stock=10)

        _append(db_session, seat, "purchase", "in", 15, "PO-7")
        last = _append(db_session, seat, "sale", "out", 20, "SO-3")

        assert last.balance == 5
        assert last.quantity_out == 20
        assert last.quantity_in is None
        assert _stock(db_session, seat.id) == 5

    def test_exact_depletion_to_zero_is_allowed(self, db_session):
        bolt = create_test_product(db_session, stock=3)

        entry = _append(db_session, bolt, "sale", "out", 3)

        assert entry.balance == 0

    def test_manual_adjustment_may_go_negative(self, db_session):
        glue = create_test_product(db_session, name="Glue", stock=5)

        entry = _append(db_session, glue, "manual_adjustment", "out", 8, "COUNT-2025-01")

        assert entry.balance == -3
        assert _stock(db_session, glue.id) == -3

    @pytest.mark.parametrize("movement_type,direction", [
        ("purchase", "out"),
        ("production", "out"),
        ("sale", "in"),
        ("work_order_consumption", "in"),
    ])
    def test_direction_must_match_movement_type(self, db_session, movement_type, direction):
        part = create_test_product(db_session, stock=10)

        with pytest.raises(ValidationError):
            _append(db_session, part, movement_type, direction, 1)

        assert _stock(db_session, part.id) == 10

    @pytest.mark.parametrize("quantity", [0, -4, True, 2.5])
    def test_quantity_must_be_positive_integer(self, db_session, quantity):
        part = create_test_product(db_session, stock=10)

        with pytest.raises(ValidationError):
            _append(db_session, part, "purchase", "in", quantity)

    def test_unknown_movement_type_rejected(self, db_session):
        part = create_test_product(db_session)

        with pytest.raises(ValidationError):
            _append(db_session, part, "theft", "out", 1)

    def test_unknown_product_not_found(self, db_session):
        ghost = Product(id=4040, name="ghost")

        with pytest.raises(NotFoundError):
            _append(db_session, ghost, "purchase", "in", 1)


@pytest.mark.unit
class TestLedgerReconstruction:

    def test_replaying_entries_reproduces_stock(self, db_session):
        part = create_test_product(db_session, name="Dowel", stock=30)
        for movement_type, direction, quantity in [
            ("purchase", "in", 25),
            ("sale", "out", 12),
            ("manual_adjustment", "out", 50),
            ("purchase", "in", 100),
            ("work_order_consumption", "out", 40),
        ]:
            _append(db_session, part, movement_type, direction, quantity)

        entries = (
            db_session.query(StockLedgerEntry)
            .filter_by(product_id=part.id)
            .order_by(StockLedgerEntry.created_at, StockLedgerEntry.id)
            .all()
        )
        replayed = sum((e.quantity_in or 0) - (e.quantity_out or 0) for e in entries)
        assert replayed == _stock(db_session, part.id) == 53

        result = StockLedgerService(db_session).verify_product(part.id)
        assert result.consistent
        assert result.entry_count == 6
        assert result.replayed_balance == 53

    def test_verify_all_flags_stock_edited_outside_ledger(self, db_session):
        good = create_test_product(db_session, stock=5)
        bad = create_test_product(db_session, stock=5)
        db_session.get(Product, bad.id).stock_on_hand = 999
        db_session.commit()

        report = StockLedgerService(db_session).verify_all()

        assert report.products_checked == 2
        assert not report.consistent
        assert [r.product_id for r in report.inconsistencies] == [bad.id]
        assert good.id not in [r.product_id for r in report.inconsistencies]

    def test_product_without_movements_is_consistent(self, db_session):
        part = create_test_product(db_session)

        result = StockLedgerService(db_session).verify_product(part.id)

        assert result.consistent
        assert result.entry_count == 0


@pytest.mark.unit
class TestListEntries:

    def test_newest_first_and_filtered_by_product(self, db_session):
        a = create_test_product(db_session, stock=1)
        b = create_test_product(db_session, stock=2)
        _append(db_session, a, "purchase", "in", 3)

        ledger = StockLedgerService(db_session)
        all_entries = ledger.list_entries()
        a_entries = ledger.list_entries(product_id=a.id)

        assert len(all_entries) == 3
        assert [e.product_id for e in a_entries] == [a.id, a.id]
        assert a_entries[0].balance == 4
        assert a_entries[0].product.name == a.name
        assert all(e.product_id == b.id for e in ledger.list_entries(product_id=b.id))
