"""Shared fixtures: an in-memory record store standing in for Supabase."""

import copy
from itertools import count

import pytest

from shopkit.exceptions import StoreUnavailableError, StoreWriteError
from shopkit.ingest import RecordStore


class InMemoryStore(RecordStore):
    """
    Dict-backed RecordStore.

    fail_skus: writes for these skus raise StoreWriteError
    available: when False, check_connection raises StoreUnavailableError
    calls: log of (method, argument) tuples in call order
    """

    def __init__(self, records=None, fail_skus=None, available=True):
        self._ids = count(1)
        self.products = {}
        self.fail_skus = set(fail_skus or [])
        self.available = available
        self.calls = []
        for record in records or []:
            record = copy.deepcopy(record)
            record.setdefault("id", f"p{next(self._ids)}")
            self.products[record["id"]] = record

    def check_connection(self):
        self.calls.append(("check_connection", None))
        if not self.available:
            raise StoreUnavailableError("connection refused")

    def get_product_by_sku(self, sku):
        self.calls.append(("get_product_by_sku", sku))
        for record in self.products.values():
            if record.get("sku") == sku:
                return copy.deepcopy(record)
        return None

    def handle_exists(self, handle):
        self.calls.append(("handle_exists", handle))
        return any(record.get("handle") == handle for record in self.products.values())

    def update_product(self, product_id, fields):
        self.calls.append(("update_product", product_id))
        if fields.get("sku") in self.fail_skus:
            raise StoreWriteError('duplicate key value violates unique constraint "products_handle_key"')
        self.products[product_id].update(copy.deepcopy(fields))

    def insert_product(self, fields):
        self.calls.append(("insert_product", fields.get("sku")))
        if fields.get("sku") in self.fail_skus:
            raise StoreWriteError("canceling statement due to statement timeout")
        product_id = f"p{next(self._ids)}"
        record = copy.deepcopy(fields)
        record["id"] = product_id
        self.products[product_id] = record
        return product_id

    def list_products(self):
        self.calls.append(("list_products", None))
        return [copy.deepcopy(record) for record in self.products.values()]

    def by_sku(self, sku):
        for record in self.products.values():
            if record.get("sku") == sku:
                return record
        return None

    @property
    def writes(self):
        return [call for call in self.calls if call[0] in ("update_product", "insert_product")]


VARIANT_CONFIG = [
    {
        "id": "size",
        "name": "Size",
        "stockManagement": "individual",
        "sharedStock": None,
        "options": [
            {"id": "2kg", "value": "2kg", "priceAdjustment": 0, "stock": 4},
            {"id": "5kg", "value": "5kg", "priceAdjustment": 1500, "stock": 0},
        ],
    }
]


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def catalog_store():
    """Store with one plain product and one product with variations."""
    return InMemoryStore(records=[
        {
            "sku": "RICE-001",
            "title": "Koshihikari 5kg",
            "price": 3200,
            "stock": 12,
            "handle": "koshihikari-5kg",
            "is_active": True,
            "has_variants": False,
            "variants_config": [],
        },
        {
            "sku": "RICE-002",
            "title": "Kamenoo",
            "price": 2800,
            "stock": 0,
            "handle": "kamenoo",
            "is_active": True,
            "has_variants": True,
            "variants_config": copy.deepcopy(VARIANT_CONFIG),
        },
    ])


@pytest.fixture
def make_store():
    """Factory for stores with failures or outages configured."""
    return InMemoryStore
