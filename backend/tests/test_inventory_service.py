import pytest

from retail_pos.models import Notification
from retail_pos.services.inventory_service import DIRECTION_IN, DIRECTION_OUT
from retail_pos.validation import InsufficientStockError, NotFoundError, ValidationError


def test_stock_in_and_out(db_session, inventory_service, product_b):
    inv = inventory_service.adjust_stock(product_b.id, 15, DIRECTION_IN)
    assert inv.current_stock == 65
    assert inv.last_restocked is not None

    inv = inventory_service.adjust_stock(product_b.id, 5, DIRECTION_OUT)
    assert inv.current_stock == 60
    assert inv.stock_in == 15 and inv.stock_out == 5


def test_stock_out_past_zero_is_rejected(db_session, inventory_service, product_a):
    with pytest.raises(InsufficientStockError):
        inventory_service.adjust_stock(product_a.id, 11, DIRECTION_OUT)

    db_session.expire_all()
    assert inventory_service.get_inventory(product_a.id).current_stock == 10


def test_bad_direction_rejected(db_session, inventory_service, product_a):
    with pytest.raises(ValidationError):
        inventory_service.adjust_stock(product_a.id, 1, "sideways")


def test_unknown_product(db_session, inventory_service):
    with pytest.raises(NotFoundError):
        inventory_service.adjust_stock("missing", 1, DIRECTION_IN)


def test_manual_stock_out_alerts_when_low(db_session, inventory_service, product_a):
    inventory_service.adjust_stock(product_a.id, 5, DIRECTION_OUT)
    alerts = db_session.query(Notification).filter_by(product_id=product_a.id).all()
    assert len(alerts) == 1


def test_low_stock_listing(db_session, inventory_service, product_a, product_b):
    assert inventory_service.list_low_stock() == []

    inventory_service.update_reorder_threshold(product_a.id, 10)
    low = inventory_service.list_low_stock()
    assert [inv.product_id for inv in low] == [product_a.id]

    # lowest stock first
    assert [inv.product_id for inv in inventory_service.list_inventory()] == [product_a.id, product_b.id]


def test_opening_stock_recompute(db_session, inventory_service, product_a):
    inventory_service.adjust_stock(product_a.id, 4, DIRECTION_OUT)
    inv = inventory_service.adjust_opening_stock(product_a.id, 20)
    assert inv.current_stock == 16

    with pytest.raises(ValidationError):
        inventory_service.adjust_opening_stock(product_a.id, 2)
