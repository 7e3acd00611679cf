# Overview: Threaded checks for the locked sale path against a file-backed SQLite database.

import itertools
import os
import tempfile
import threading
import unittest
from unittest import mock

from retail_pos import create_app
from retail_pos.extensions import db
from retail_pos.models import Inventory, Sale
from retail_pos.models.sales import PAYMENT_CASH
from retail_pos.validation import InsufficientStockError
from retail_pos.wiring import get_services


class LockedSaleConcurrencyTests(unittest.TestCase):
    def setUp(self):
        # Distinct sale numbers; random suffixes can repeat within one millisecond
        counter = itertools.count(1)
        patcher = mock.patch(
            "retail_pos.models.sales.generate_sale_number",
            lambda: f"SALE-{next(counter):06d}-0",
        )
        patcher.start()
        self.addCleanup(patcher.stop)

        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "SALE_LOCK_INVENTORY": True,
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            services = get_services()
            product = services.products.create_product({
                "sku": "CONCUR-1",
                "name": "Concurrent Product",
                "category": "General",
                "unit": "pcs",
                "cost_price_cents": 400,
                "selling_price_cents": 1000,
            })
            services.inventory.update_reorder_threshold(product.id, 2)
            services.inventory.adjust_opening_stock(product.id, 10)
            self.product_id = product.id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_competing_sales(self, count, quantity):
        results = []
        lock = threading.Lock()
        start = threading.Barrier(count)

        def worker():
            with self.app.app_context():
                try:
                    start.wait()
                    sale = get_services().sales.create_sale(
                        "cashier-1",
                        PAYMENT_CASH,
                        [{"product_id": self.product_id, "quantity": quantity, "unit_price_cents": 1000}],
                    )
                    with lock:
                        results.append(("ok", sale.sale_number))
                except Exception as exc:
                    with lock:
                        results.append(("error", exc))
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker) for _ in range(count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results

    def test_wiring_enables_locked_mode(self):
        with self.app.app_context():
            self.assertTrue(get_services().sales.lock_inventory)

    def test_concurrent_sales_do_not_oversell(self):
        results = self._run_competing_sales(2, 6)

        successes = [r for r in results if r[0] == "ok"]
        failures = [r[1] for r in results if r[0] == "error"]
        self.assertEqual(len(successes), 1)
        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0], InsufficientStockError)

        with self.app.app_context():
            inventory = db.session.query(Inventory).filter_by(product_id=self.product_id).one()
            self.assertEqual(inventory.current_stock, 4)
            self.assertEqual(inventory.stock_out, 6)
            self.assertEqual(db.session.query(Sale).count(), 1)

    def test_many_small_sales_never_go_negative(self):
        results = self._run_competing_sales(5, 3)

        successes = [r for r in results if r[0] == "ok"]
        self.assertEqual(len(successes), 3)
        for outcome, value in results:
            if outcome == "error":
                self.assertIsInstance(value, InsufficientStockError)

        with self.app.app_context():
            inventory = db.session.query(Inventory).filter_by(product_id=self.product_id).one()
            self.assertEqual(inventory.current_stock, 1)
            self.assertEqual(db.session.query(Sale).count(), 3)
            self.assertEqual(
                inventory.current_stock,
                inventory.opening_stock + inventory.stock_in - inventory.stock_out,
            )


if __name__ == "__main__":
    unittest.main()
