"""
Tests for the bulk product import.

These tests verify that:
1. Counts in the report are exact and cover the whole document
2. Products with variations always end up with stock 0
3. Rows are written in order, so later rows see earlier writes
4. One failing write never stops the rest of the batch
5. Declining after the validation pass writes nothing
"""

import pytest

from shopkit.exceptions import ImportFormatError, StoreUnavailableError
from shopkit.ingest import ImportReport, format_import_report, import_products, ingest_products, prepare_import
from shopkit.config import Settings
from shopkit.normalizer import RowFailure


def make_csv(*rows: str, header: str = "sku,title,price,stock") -> str:
    return "\n".join((header,) + rows) + "\n"


# =============================================================================
# COUNTS AND FAILURES
# =============================================================================

class TestImportCounts:

    def test_rejected_row_is_counted_and_named(self, store):
        document = make_csv(
            "A-1,Alpha,100,1",
            "A-2,Beta,200,2",
            "A-3,,300,3",
            "A-4,Delta,400,4",
        )

        report = import_products(document, store)

        assert report.succeeded == 3
        assert report.failed == 1
        assert report.failures[0].sku == "A-3"
        assert store.by_sku("A-3") is None
        assert store.by_sku("A-4")["title"] == "Delta"

    def test_failing_write_does_not_stop_the_batch(self, make_store):
        store = make_store(fail_skus=["A-2"])
        document = make_csv("A-1,Alpha,100,1", "A-2,Beta,200,2", "A-3,Gamma,300,3")

        report = import_products(document, store)

        assert report.succeeded == 2
        assert report.failed == 1
        assert report.failures[0].sku == "A-2"
        assert report.failures[0].reason == "canceling statement due to statement timeout"
        assert store.by_sku("A-3") is not None

    def test_update_failure_reason_is_kept(self, catalog_store):
        catalog_store.fail_skus.add("RICE-001")

        report = import_products(make_csv("RICE-001,Koshihikari,3300,5"), catalog_store)

        assert report.failed == 1
        assert "products_handle_key" in report.failures[0].reason

    def test_whole_document_errors_raise(self, store):
        with pytest.raises(ImportFormatError):
            import_products("sku,title\nA,Alpha\n", store)
        assert store.writes == []


# =============================================================================
# UPDATE VS INSERT
# =============================================================================

class TestUpsert:

    def test_updates_existing_product(self, catalog_store):
        report = import_products(make_csv("RICE-001,Koshihikari 5kg (new crop),3400,20"), catalog_store)

        record = catalog_store.by_sku("RICE-001")
        assert report.succeeded == 1
        assert record["price"] == 3400
        assert record["stock"] == 20
        assert len(catalog_store.products) == 2

    def test_variant_product_stock_is_forced_to_zero(self, catalog_store):
        import_products(make_csv("RICE-002,Kamenoo,2900,50"), catalog_store)

        record = catalog_store.by_sku("RICE-002")
        assert record["stock"] == 0
        assert record["price"] == 2900
        assert record["variants_config"][0]["options"][0]["stock"] == 4

    def test_variant_product_with_empty_stock_gets_zero(self, catalog_store):
        import_products(make_csv("RICE-002,Kamenoo,2900,"), catalog_store)

        assert catalog_store.by_sku("RICE-002")["stock"] == 0

    def test_empty_stock_leaves_plain_product_alone(self, catalog_store):
        import_products(make_csv("RICE-001,Koshihikari,3200,"), catalog_store)

        assert catalog_store.by_sku("RICE-001")["stock"] == 12

    def test_derived_handle_is_not_written_on_update(self, catalog_store):
        import_products(make_csv("RICE-001,Koshihikari,3200,12"), catalog_store)

        assert catalog_store.by_sku("RICE-001")["handle"] == "koshihikari-5kg"

    def test_explicit_handle_is_written_on_update(self, catalog_store):
        document = make_csv("RICE-001,Koshihikari,3200,12,koshi", header="sku,title,price,stock,handle")

        import_products(document, catalog_store)

        assert catalog_store.by_sku("RICE-001")["handle"] == "koshi"

    def test_absent_columns_keep_stored_values(self, make_store):
        store = make_store(records=[{
            "sku": "A",
            "title": "Old",
            "price": 90,
            "description": "keep me",
            "category": "rice",
            "subcategory": "brown",
            "is_active": False,
            "status": "draft",
            "handle": "a",
        }])

        report = import_products("sku,title,price\nA,New,100\n", store)

        record = store.by_sku("A")
        assert report.succeeded == 1
        assert record["title"] == "New"
        assert record["price"] == 100
        assert record["description"] == "keep me"
        assert record["category"] == "rice"
        assert record["subcategory"] == "brown"
        assert record["is_active"] is False
        assert record["status"] == "draft"

    def test_status_column_is_written_on_update(self, make_store):
        store = make_store(records=[{"sku": "A", "title": "Old", "price": 90, "is_active": False, "status": "draft"}])

        import_products("sku,title,price,status\nA,Old,90,active\n", store)

        assert store.by_sku("A")["is_active"] is True
        assert store.by_sku("A")["status"] == "active"

    def test_insert_defaults(self, store):
        import_products(make_csv("NEW-1,New product,500,"), store)

        record = store.by_sku("NEW-1")
        assert record["stock"] == 0
        assert record["handle"] == "new-1"
        assert record["has_variants"] is False
        assert record["variants_config"] == []
        assert record["is_active"] is True
        assert record["status"] == "active"
        assert record["description"] is None
        assert record["category"] is None


# =============================================================================
# HANDLES
# =============================================================================

class TestHandles:

    def test_colliding_derived_handles_get_a_suffix(self, store):
        report = import_products(make_csv("AB-1,First,100,1", "ab 1,Second,100,1"), store)

        assert report.succeeded == 2
        assert store.by_sku("AB-1")["handle"] == "ab-1"
        assert store.by_sku("ab 1")["handle"] == "ab-1-2"

    def test_suffix_skips_taken_numbers(self, make_store):
        store = make_store(records=[
            {"sku": "X", "handle": "rice"},
            {"sku": "Y", "handle": "rice-2"},
        ])
        document = make_csv("NEW,New,100,1,rice", header="sku,title,price,stock,handle")

        import_products(document, store)

        assert store.by_sku("NEW")["handle"] == "rice-3"

    def test_sku_without_slug_characters_gets_a_generated_handle(self, store):
        import_products(make_csv("コシヒカリ,Rice,100,1"), store)

        assert store.by_sku("コシヒカリ")["handle"].startswith("prod-")


# =============================================================================
# CONFIRMATION AND STORE AVAILABILITY
# =============================================================================

class TestConfirmation:

    def test_declining_writes_nothing(self, store):
        seen = []

        def decline(plan):
            seen.append(plan)
            return False

        report = import_products(make_csv("A-1,Alpha,100,1", "A-2,,100,1"), store, confirm=decline)

        assert report.aborted is True
        assert report.succeeded == 0
        assert report.failed == 1
        assert store.writes == []
        assert len(seen[0].rows) == 1

    def test_accepting_writes_the_valid_rows(self, store):
        report = import_products(make_csv("A-1,Alpha,100,1", "A-2,,100,1"), store, confirm=lambda plan: True)

        assert report.aborted is False
        assert report.succeeded == 1
        assert report.failed == 1

    def test_confirm_is_not_asked_for_a_clean_document(self, store):
        def fail(plan):
            raise AssertionError("confirm called for a clean document")

        report = import_products(make_csv("A-1,Alpha,100,1"), store, confirm=fail)

        assert report.succeeded == 1

    def test_unreachable_store_fails_before_writing(self, make_store):
        store = make_store(available=False)

        with pytest.raises(StoreUnavailableError):
            import_products(make_csv("A-1,Alpha,100,1"), store)
        assert store.writes == []


class TestDocumentInput:

    def test_bytes_with_bom_and_export_headers(self, store):
        text = "sku（必須）,title（必須）,price（必須・数値）,description（改行可能）\r\n" \
               'A-1,Alpha,"1,200","line1\nline2, ""quoted"""\r\n'
        document = ("\ufeff" + text).encode("utf-8")

        report = import_products(document, store)

        record = store.by_sku("A-1")
        assert report.succeeded == 1
        assert record["price"] == 1200
        assert record["description"] == 'line1\nline2, "quoted"'

    def test_default_category_from_settings(self, store):
        settings = Settings(default_category="お米")

        import_products(make_csv("A-1,Alpha,100,1"), store, settings=settings)

        assert store.by_sku("A-1")["category"] == "お米"

    def test_rows_are_written_in_document_order(self, store):
        plan = prepare_import(make_csv("C,Gamma,1,1", "A,Alpha,1,1", "B,Beta,1,1"))

        ingest_products(plan, store)

        inserted = [sku for method, sku in store.calls if method == "insert_product"]
        assert inserted == ["C", "A", "B"]

    def test_repeated_sku_updates_the_first_insert(self, store):
        report = import_products(make_csv("A-1,Alpha,100,1", "A-1,Alpha v2,150,3"), store)

        assert report.succeeded == 2
        assert len(store.products) == 1
        assert store.by_sku("A-1")["title"] == "Alpha v2"


# =============================================================================
# REPORT FORMATTING
# =============================================================================

def make_failures(n: int):
    return [RowFailure(i + 2, f"SKU-{i}", f"Item {i}", "price is not a number: 'x'") for i in range(n)]


class TestFormatImportReport:

    def test_clean_report(self):
        text = format_import_report(ImportReport(succeeded=4))

        assert text == "CSV import finished.\n\nSucceeded: 4"

    def test_lists_failures_and_truncates(self):
        report = ImportReport(succeeded=2, failed=15, failures=make_failures(15))

        text = format_import_report(report)
        lines = text.splitlines()

        assert "Succeeded: 2" in lines
        assert "Failed: 15" in lines
        assert "SKU: SKU-9 (Item 9) - price is not a number: 'x'" in lines
        assert "SKU: SKU-10 (Item 10) - price is not a number: 'x'" not in lines
        assert lines[-1] == "...and 5 more"

    def test_no_more_line_at_the_limit(self):
        report = ImportReport(failed=10, failures=make_failures(10))

        assert "more" not in format_import_report(report)

    def test_custom_limit(self):
        report = ImportReport(failed=3, failures=make_failures(3))

        assert format_import_report(report, limit=1).endswith("...and 2 more")

    def test_aborted_report(self):
        report = ImportReport(failed=2, failures=make_failures(2), aborted=True)

        assert "cancelled" in format_import_report(report)
