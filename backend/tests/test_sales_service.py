import itertools
from datetime import date, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from retail_pos.extensions import db
from retail_pos.models import Inventory, Notification, Sale, SaleItem, SaleLineRequest
from retail_pos.models.communications import NOTIFICATION_LOW_STOCK
from retail_pos.models.sales import PAYMENT_CASH, PAYMENT_MOBILE_MONEY
from retail_pos.repositories import SqlInventoryRepository, SqlNotificationRepository, SqlSaleRepository
from retail_pos.services.notifications_service import NotificationService
from retail_pos.services.sales_service import SaleService
from retail_pos.time_utils import utcnow
from retail_pos.validation import (
    InsufficientStockError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)


@pytest.fixture(autouse=True)
def sequential_sale_numbers(monkeypatch):
    # Random suffixes can repeat within one millisecond
    counter = itertools.count(1)
    monkeypatch.setattr(
        "retail_pos.models.sales.generate_sale_number",
        lambda: f"SALE-{next(counter):06d}-0",
    )


def _stock(db_session, product_id):
    db_session.expire_all()
    return db_session.query(Inventory).filter_by(product_id=product_id).one()


def _item(product, quantity, price=None):
    return {
        "product_id": product.id,
        "quantity": quantity,
        "unit_price_cents": product.selling_price_cents if price is None else price,
    }


class FailingNotificationRepository(SqlNotificationRepository):
    def save(self, notification, *, commit=True):
        raise PersistenceError("notification store unavailable")


class FailingUpdateInventoryRepository(SqlInventoryRepository):
    """Reads work; every write fails the way a dropped connection would."""

    def update(self, inventory_id, inventory, *, commit=True):
        self.session.rollback()
        raise PersistenceError(f"Failed to persist inventory for product {inventory.product_id}")


class UnreachableSession:
    """Session stand-in whose queries fail like a dropped connection."""

    def __init__(self, real):
        self.real = real

    def _down(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("db down"))

    query = _down
    get = _down

    def rollback(self):
        self.real.rollback()


class OutageInventoryRepository(SqlInventoryRepository):
    """Real inventory store until reads_fail is switched on."""

    reads_fail = False

    @property
    def session(self):
        if self.reads_fail:
            return UnreachableSession(db.session)
        return db.session


def test_sale_deducts_stock_and_alerts_when_low(db_session, sale_service, product_a, cashier):
    sale = sale_service.create_sale(cashier.id, PAYMENT_CASH, [_item(product_a, 6)])

    assert sale.total_amount_cents == 600
    assert len(sale.items) == 1
    assert sale.items[0].subtotal_cents == 600

    inv = _stock(db_session, product_a.id)
    assert inv.current_stock == 4
    assert inv.stock_out == 6

    alerts = db_session.query(Notification).all()
    assert len(alerts) == 1
    assert alerts[0].type == NOTIFICATION_LOW_STOCK
    assert alerts[0].product_id == product_a.id
    assert alerts[0].user_id is None
    assert alerts[0].message == f"Product {product_a.id} is low on stock. Current: 4"


def test_sale_above_threshold_records_no_alert(db_session, sale_service, product_b, cashier):
    sale_service.create_sale(cashier.id, PAYMENT_MOBILE_MONEY, [_item(product_b, 10)])
    assert _stock(db_session, product_b.id).current_stock == 40
    assert db_session.query(Notification).count() == 0


def test_multi_line_sale(db_session, sale_service, product_a, product_b, cashier):
    sale = sale_service.create_sale(
        cashier.id,
        PAYMENT_CASH,
        [_item(product_a, 2), _item(product_b, 3, price=200)],
    )

    assert sale.total_amount_cents == 2 * 100 + 3 * 200
    assert _stock(db_session, product_a.id).current_stock == 8
    assert _stock(db_session, product_b.id).current_stock == 47


def test_empty_sale_writes_nothing(db_session, sale_service, cashier):
    with pytest.raises(ValidationError):
        sale_service.create_sale(cashier.id, PAYMENT_CASH, [])
    assert db_session.query(Sale).count() == 0


def test_invalid_line_writes_nothing(db_session, sale_service, product_a, cashier):
    with pytest.raises(ValidationError):
        sale_service.create_sale(cashier.id, PAYMENT_CASH, [_item(product_a, 0)])
    assert db_session.query(Sale).count() == 0


def test_insufficient_stock_writes_nothing(db_session, sale_service, product_a, product_b, cashier):
    with pytest.raises(InsufficientStockError) as excinfo:
        sale_service.create_sale(cashier.id, PAYMENT_CASH, [_item(product_b, 1), _item(product_a, 11)])

    assert excinfo.value.product_id == product_a.id
    assert excinfo.value.details["requested_quantity"] == 11
    assert excinfo.value.details["on_hand"] == 10
    assert db_session.query(Sale).count() == 0
    assert db_session.query(SaleItem).count() == 0
    assert _stock(db_session, product_a.id).current_stock == 10
    assert _stock(db_session, product_b.id).current_stock == 50


def test_availability_sums_lines_for_same_product(db_session, sale_service, product_a, cashier):
    # 6 + 6 > 10 even though each line fits on its own
    with pytest.raises(InsufficientStockError):
        sale_service.create_sale(cashier.id, PAYMENT_CASH, [_item(product_a, 6), _item(product_a, 6)])
    assert db_session.query(Sale).count() == 0
    assert _stock(db_session, product_a.id).current_stock == 10


def test_unknown_product_is_not_found(db_session, sale_service, cashier):
    line = {"product_id": "missing", "quantity": 1, "unit_price_cents": 100}
    with pytest.raises(NotFoundError):
        sale_service.create_sale(cashier.id, PAYMENT_CASH, [line])
    assert db_session.query(Sale).count() == 0


def test_interleaved_sales_can_oversell_window(db_session, sale_service, product_a, cashier):
    """Two sales pass the availability check for the same 10 units; the second fails after commit."""
    lines_a = [SaleLineRequest(product_a.id, 6, 100)]

    # Sale A passes step 1...
    sale_service.check_availability(lines_a)

    # ...then sale B runs to completion
    sale_service.create_sale(cashier.id, PAYMENT_CASH, [_item(product_a, 6)])
    assert _stock(db_session, product_a.id).current_stock == 4

    # Sale A carries on from step 2
    sale_a = sale_service.build_sale(cashier.id, PAYMENT_CASH, lines_a)
    sale_service.commit_sale(sale_a)
    sale_number = sale_a.sale_number

    with pytest.raises(InsufficientStockError) as excinfo:
        sale_service.deduct_stock(sale_a)

    assert excinfo.value.details["sale_number"] == sale_number
    assert excinfo.value.details["on_hand"] == 4
    assert db_session.query(Sale).count() == 2
    assert _stock(db_session, product_a.id).current_stock == 4


def test_locked_mode_rejects_second_sale_for_same_stock(db_session, notification_service, product_a, cashier):
    svc = SaleService(SqlSaleRepository(), SqlInventoryRepository(), notification_service, lock_inventory=True)

    svc.create_sale(cashier.id, PAYMENT_CASH, [_item(product_a, 6)])
    with pytest.raises(InsufficientStockError):
        svc.create_sale(cashier.id, PAYMENT_CASH, [_item(product_a, 6)])

    assert db_session.query(Sale).count() == 1
    assert _stock(db_session, product_a.id).current_stock == 4
    assert db_session.query(Notification).filter_by(product_id=product_a.id).count() == 1


def test_stock_write_failure_leaves_sale_committed(db_session, notification_service, product_a, cashier):
    svc = SaleService(SqlSaleRepository(), FailingUpdateInventoryRepository(), notification_service)

    with pytest.raises(PersistenceError):
        svc.create_sale(cashier.id, PAYMENT_CASH, [_item(product_a, 3)])

    assert db_session.query(Sale).count() == 1
    assert _stock(db_session, product_a.id).current_stock == 10


def test_failed_stock_read_writes_nothing(db_session, notification_service, product_a, cashier):
    inventory = OutageInventoryRepository()
    inventory.reads_fail = True
    svc = SaleService(SqlSaleRepository(), inventory, notification_service)

    with pytest.raises(PersistenceError) as excinfo:
        svc.create_sale(cashier.id, PAYMENT_CASH, [_item(product_a, 3)])

    assert isinstance(excinfo.value.__cause__, OperationalError)
    assert db_session.query(Sale).count() == 0
    assert _stock(db_session, product_a.id).current_stock == 10


def test_failed_stock_read_after_commit_reports_sale(db_session, notification_service, product_a, cashier, caplog):
    inventory = OutageInventoryRepository()
    svc = SaleService(SqlSaleRepository(), inventory, notification_service)
    lines = [SaleLineRequest(product_a.id, 3, 100)]

    svc.check_availability(lines)
    sale = svc.build_sale(cashier.id, PAYMENT_CASH, lines)
    svc.commit_sale(sale)
    sale_number = sale.sale_number

    inventory.reads_fail = True
    with pytest.raises(PersistenceError) as excinfo:
        svc.deduct_stock(sale)

    assert excinfo.value.details["sale_number"] == sale_number
    assert "was not deducted" in caplog.text
    assert db_session.query(Sale).count() == 1
    assert _stock(db_session, product_a.id).current_stock == 10


def test_padded_product_id_is_trimmed(db_session, sale_service, product_a, cashier):
    line = {"product_id": f"  {product_a.id} ", "quantity": 2, "unit_price_cents": 100}
    sale = sale_service.create_sale(cashier.id, PAYMENT_CASH, [line])

    assert sale.items[0].product_id == product_a.id
    assert _stock(db_session, product_a.id).current_stock == 8


def test_notification_failure_does_not_fail_sale(db_session, product_a, cashier):
    notifications = NotificationService(FailingNotificationRepository())
    svc = SaleService(SqlSaleRepository(), SqlInventoryRepository(), notifications)

    sale = svc.create_sale(cashier.id, PAYMENT_CASH, [_item(product_a, 8)])

    assert sale.total_amount_cents == 800
    assert _stock(db_session, product_a.id).current_stock == 2
    assert db_session.query(Notification).count() == 0


def test_sale_number_collision_persists_nothing(db_session, sale_service, product_a, cashier, monkeypatch):
    monkeypatch.setattr("retail_pos.models.sales.generate_sale_number", lambda: "SALE-000001-1")

    sale_service.create_sale(cashier.id, PAYMENT_CASH, [_item(product_a, 1)])
    with pytest.raises(PersistenceError):
        sale_service.create_sale(cashier.id, PAYMENT_CASH, [_item(product_a, 1)])

    assert db_session.query(Sale).count() == 1
    assert db_session.query(SaleItem).count() == 1
    assert _stock(db_session, product_a.id).current_stock == 9


def test_get_sale(db_session, sale_service, product_a, cashier):
    sale = sale_service.create_sale(cashier.id, PAYMENT_CASH, [_item(product_a, 2)])

    fetched = sale_service.get_sale(sale.id)
    assert fetched.sale_number == sale.sale_number
    assert fetched.to_dict()["items"][0]["quantity"] == 2

    with pytest.raises(NotFoundError):
        sale_service.get_sale("missing")


def test_list_sales_filters(db_session, sale_service, product_b, cashier):
    first = sale_service.create_sale(cashier.id, PAYMENT_CASH, [_item(product_b, 1)])
    second = sale_service.create_sale("other-cashier", PAYMENT_CASH, [_item(product_b, 1)])

    assert [s.id for s in sale_service.list_sales(cashier_id=cashier.id)] == [first.id]

    today = utcnow().date()
    assert {s.id for s in sale_service.list_sales(start_date=today, end_date=today)} == {first.id, second.id}
    assert sale_service.list_sales(start_date=today + timedelta(days=1)) == []
    assert sale_service.list_sales(end_date=date(2000, 1, 1)) == []


def test_list_sales_rejects_inverted_range(db_session, sale_service):
    with pytest.raises(ValidationError):
        sale_service.list_sales(start_date="2026-02-01", end_date="2026-01-01")
    with pytest.raises(ValidationError):
        sale_service.list_sales(start_date="not-a-date")
