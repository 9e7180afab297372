# Overview: Threaded checkout tests against a file-backed SQLite database.

"""
Concurrency tests for checkout.

Each test runs real threads, each with its own app context and session,
against a temporary SQLite file (in-memory databases are per-connection).
"""
import os
import tempfile
import threading
import unittest
from datetime import timedelta

from storepos import create_app
from storepos.extensions import db
from storepos.models import CashierAccount, InventoryBatch, Product, Sale, Store
from storepos.services import inventory_service, sales_service
from storepos.services.identity_service import CASHIER, ActorRef
from storepos.services.sales_service import SaleError
from storepos.time_utils import utcnow


class CheckoutConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "SQLALCHEMY_ENGINE_OPTIONS": {
                "connect_args": {"check_same_thread": False, "timeout": 30},
            },
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            store = Store(store_code="CONC01", store_name="Concurrency Store")
            db.session.add(store)
            db.session.commit()
            self.store_id = store.id

            cashier = CashierAccount(
                store_id=self.store_id,
                full_name="Concurrent Cashier",
                phone_number="0700999000",
                password_hash="dummy",
                is_active=True,
            )
            db.session.add(cashier)
            db.session.commit()
            self.actor = ActorRef(CASHIER, cashier.id)

            product = Product(store_id=self.store_id, sku="CON-0001", name="Concurrent Product")
            db.session.add(product)
            db.session.flush()
            now = utcnow()
            # 10 units split over two batches so depletion crosses a batch boundary
            for qty, age in ((4, 2), (6, 1)):
                db.session.add(InventoryBatch(
                    store_id=self.store_id,
                    product_id=product.id,
                    quantity_added=qty,
                    quantity_remaining=qty,
                    cost_price_cents=400,
                    selling_price_cents=1000,
                    low_stock_threshold=2,
                    restock_date=now - timedelta(days=age),
                ))
            db.session.commit()
            self.product_id = product.id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_checkouts(self, count, quantity):
        results = []
        lock = threading.Lock()
        start = threading.Barrier(count)

        def worker():
            with self.app.app_context():
                try:
                    start.wait()
                    sale = sales_service.create_sale(
                        store_id=self.store_id,
                        items=[{"product_id": self.product_id, "quantity": quantity}],
                        payment_method="Cash",
                        amount_paid_cents=quantity * 1000,
                        actor=self.actor,
                    )
                    with lock:
                        results.append(sale)
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker) for _ in range(count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results

    def test_last_units_are_not_oversold(self):
        results = self._run_checkouts(8, 2)

        sales = [r for r in results if isinstance(r, dict)]
        errors = [r for r in results if not isinstance(r, dict)]

        self.assertEqual(len(sales), 5)
        self.assertEqual(len(errors), 3)
        for exc in errors:
            self.assertIsInstance(exc, SaleError)
            self.assertEqual(exc.code, "INSUFFICIENT_STOCK")

        with self.app.app_context():
            self.assertEqual(inventory_service.get_stock_quantity(self.product_id), 0)
            for batch in db.session.query(InventoryBatch).filter_by(product_id=self.product_id):
                self.assertGreaterEqual(batch.quantity_remaining, 0)
            self.assertEqual(db.session.query(Sale).count(), 5)

    def test_sale_numbers_are_unique(self):
        results = self._run_checkouts(6, 1)

        numbers = [r["sale_number"] for r in results if isinstance(r, dict)]
        self.assertEqual(len(numbers), 6)
        self.assertEqual(len(set(numbers)), 6)
        self.assertEqual(sorted(numbers), [f"SALE-{n:06d}" for n in range(1, 7)])

        with self.app.app_context():
            self.assertEqual(inventory_service.get_stock_quantity(self.product_id), 4)


if __name__ == "__main__":
    unittest.main()
