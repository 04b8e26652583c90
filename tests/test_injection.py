"""Tests for batched deep injection into method results."""
import pytest

from lookaside import (
    ConfigurationError,
    Lookaside,
    MalformedPath,
    ShapeMismatch,
    StoreUnavailable,
    apply_injection,
    effective_injections,
    inject,
    locate,
)
from lookaside.injection import parse_path


class TestPaths:
    """Path parsing and node location."""

    def test_direct_key(self):
        assert [s.key for s in parse_path("table")] == ["table"]

    def test_dotted_path(self):
        assert [s.key for s in parse_path("$.table.menu")] == ["table", "menu"]

    def test_root(self):
        assert parse_path("$") == ()

    def test_filter_predicate(self):
        (table, menu) = parse_path("$.table.menu[?(@.item_id=5)]")
        assert menu.key == "menu"
        assert menu.filter_field == "item_id"
        assert menu.filter_value == "5"
        assert not table.has_filter

    @pytest.mark.parametrize("path", ["", "$.", "$table", "$.a..b", "$.a[?(@.x=1)].b", "$.a[0]"])
    def test_malformed(self, path):
        with pytest.raises(MalformedPath):
            parse_path(path)

    def test_locate(self):
        document = {"table": {"menu": [{"item_id": 1}]}}
        assert locate(document, "$.table.menu") == [{"item_id": 1}]
        assert locate(document, "table") == {"menu": [{"item_id": 1}]}

    def test_locate_missing_key(self):
        with pytest.raises(MalformedPath) as exc_info:
            locate({"table": {}}, "$.table.menu")
        assert exc_info.value.segment == "menu"

    def test_locate_through_scalar(self):
        with pytest.raises(MalformedPath):
            locate({"table": 3}, "$.table.menu")


class TestListOfRecords:

    def test_deep_lookup_and_inject(self, store):
        class Menu(Lookaside):
            __injections__ = [
                inject(after="metrics", at="$.table.menu", using="item_id", populate="item_name"),
            ]

            def metrics(self):
                return {"table": {"menu": [{"item_id": 1}, {"item_id": 2}]}}

        store.batches = [["Idly", "Pongal"]]
        assert Menu().metrics() == {
            "table": {
                "menu": [
                    {"item_id": 1, "item_name": "Idly"},
                    {"item_id": 2, "item_name": "Pongal"},
                ]
            }
        }
        assert store.calls == [("fetch_many", ("items/1", "items/2"))]

    def test_records_without_id_untouched(self, store):
        document = {"menu": [{"item_id": 1}, {"label": "no id"}, {"item_id": 3}]}
        store.data.update({"items/1": "Idly", "items/3": "Vada"})
        spec = inject(after="metrics", at="menu", using="item_id", populate="item_name")

        apply_injection(document, spec)

        assert document["menu"] == [
            {"item_id": 1, "item_name": "Idly"},
            {"label": "no id"},
            {"item_id": 3, "item_name": "Vada"},
        ]
        assert store.calls == [("fetch_many", ("items/1", "items/3"))]

    def test_empty_list_is_untouched(self, store):
        class EmptyMenu(Lookaside):
            __injections__ = [
                inject(after="metrics", at="$.table.menu", using="item_id", populate="item_name"),
            ]

            def metrics(self):
                return {"table": {"menu": []}}

        assert EmptyMenu().metrics() == {"table": {"menu": []}}
        assert store.calls == []

    def test_filter_predicate_narrows_records(self, store):
        class NewMenu(Lookaside):
            __injections__ = [
                inject(after="metrics", at="$.table.menu[?(@.item_id=5)]", using="item_id", populate="item_name"),
            ]

            def metrics(self):
                return {"table": {"menu": [{"item_id": 4, "item_name": "Idly"}, {"item_id": 5}]}}

        store.data["items/5"] = "Pongal"
        assert NewMenu().metrics() == {
            "table": {
                "menu": [
                    {"item_id": 4, "item_name": "Idly"},
                    {"item_id": 5, "item_name": "Pongal"},
                ]
            }
        }
        assert store.calls == [("fetch_many", ("items/5",))]

    def test_non_record_entries_rejected(self, store):
        spec = inject(after="m", at="menu", using="item_id", populate="item_name")
        with pytest.raises(MalformedPath):
            apply_injection({"menu": [1, 2]}, spec)
        assert store.calls == []


class TestColumnar:

    def test_deep_columnar(self, store):
        class DeepHash(Lookaside):
            __injections__ = [
                inject(after="metrics", at="$.table.inner_table", using="employee_id", populate="employee_name"),
            ]

            def metrics(self):
                return {"table": {"inner_table": {"employee_id": [10, 20]}}}

        store.batches = [["emp 1", "emp 2"]]
        assert DeepHash().metrics() == {
            "table": {"inner_table": {"employee_id": [10, 20], "employee_name": ["emp 1", "emp 2"]}}
        }
        assert store.calls == [("fetch_many", ("employees/10", "employees/20"))]

    def test_direct_key(self, store):
        class HashService(Lookaside):
            __injections__ = [
                inject(after="metrics", at="table", using="employee_id", populate="employee_name"),
            ]

            def metrics(self):
                return {"table": {"employee_id": [1, 2]}}

        store.batches = [["emp 1", "emp 2"]]
        assert HashService().metrics() == {
            "table": {"employee_id": [1, 2], "employee_name": ["emp 1", "emp 2"]}
        }

    def test_multiple_injections_same_node(self, store):
        class EmployeeHash(Lookaside):
            __injections__ = [
                inject(after="metrics", at="$.table.database", using="employee_id", populate="employee_name"),
                inject(after="metrics", at="$.table.database", using="employer_id", populate="employer_name"),
            ]

            def metrics(self):
                return {"table": {"database": {"employee_id": [15, 16], "employer_id": [13, 14]}}}

        store.batches = [["emp 15", "emp 16"], ["empr 13", "empr 14"]]
        assert EmployeeHash().metrics() == {
            "table": {
                "database": {
                    "employee_id": [15, 16],
                    "employer_id": [13, 14],
                    "employee_name": ["emp 15", "emp 16"],
                    "employer_name": ["empr 13", "empr 14"],
                }
            }
        }
        assert store.calls == [
            ("fetch_many", ("employees/15", "employees/16")),
            ("fetch_many", ("employers/13", "employers/14")),
        ]

    def test_empty_mappings_untouched(self, store):
        class EmptyResponse(Lookaside):
            __injections__ = [
                inject(after="empty", at="high_stock", using="sub_category_id", populate="sub_category"),
                inject(after="empty", at="$.low_shelf_life", using="sub_category_id", populate="sub_category"),
                inject(after="empty", at="$.in_elimination", using="sub_category_id", populate="sub_category"),
                inject(after="empty", at="$.inactive_with_stock", using="sub_category_id", populate="sub_category"),
            ]

            def empty(self):
                return {"high_stock": {}, "low_shelf_life": {}, "in_elimination": {}, "inactive_with_stock": {}}

        assert EmptyResponse().empty() == {
            "high_stock": {}, "low_shelf_life": {}, "in_elimination": {}, "inactive_with_stock": {},
        }
        assert store.calls == []

    def test_empty_id_column_untouched(self, store):
        document = {"table": {"employee_id": []}}
        apply_injection(document, inject(after="m", at="table", using="employee_id", populate="employee_name"))
        assert document == {"table": {"employee_id": []}}
        assert store.calls == []

    def test_none_ids_keep_alignment(self, store):
        store.data["employees/2"] = "emp 2"
        document = {"table": {"employee_id": [None, 2]}}
        apply_injection(document, inject(after="m", at="table", using="employee_id", populate="employee_name"))
        assert document["table"]["employee_name"] == [None, "emp 2"]
        assert store.calls == [("fetch_many", ("employees/2",))]

    def test_explicit_bucket(self, store):
        store.data["staff/1"] = "emp 1"
        document = {"table": {"employee_id": [1]}}
        apply_injection(
            document,
            inject(after="m", at="table", using="employee_id", populate="employee_name", bucket="staff"),
        )
        assert document["table"]["employee_name"] == ["emp 1"]

    def test_missing_id_column_rejected(self, store):
        document = {"table": {"employer_id": [1, 2]}}
        with pytest.raises(MalformedPath) as exc_info:
            apply_injection(document, inject(after="m", at="table", using="employee_id", populate="employee_name"))
        assert exc_info.value.segment == "employee_id"
        assert document == {"table": {"employer_id": [1, 2]}}
        assert store.calls == []

    def test_scalar_id_column_rejected(self, store):
        with pytest.raises(MalformedPath):
            apply_injection(
                {"table": {"employee_id": 3}},
                inject(after="m", at="table", using="employee_id", populate="employee_name"),
            )


class TestMethods:
    """Injection wiring on methods."""

    def test_multiple_methods(self, store):
        class HashServiceSuper(Lookaside):
            __injections__ = [
                inject(after="shrinkage", at="table", using="shrink_id", populate="shrink_name"),
                inject(after="stock", at="table", using="dc_id", populate="dc_name"),
            ]

            def shrinkage(self):
                return {"table": {"shrink_id": [1, 2]}}

            def stock(self):
                return {"table": {"dc_id": [7, 8]}}

        store.batches = [["shrink 1", "shrink 2"], ["dc 7", "dc 8"]]
        service = HashServiceSuper()
        assert service.shrinkage() == {"table": {"shrink_id": [1, 2], "shrink_name": ["shrink 1", "shrink 2"]}}
        assert service.stock() == {"table": {"dc_id": [7, 8], "dc_name": ["dc 7", "dc 8"]}}
        assert store.calls == [
            ("fetch_many", ("shrinks/1", "shrinks/2")),
            ("fetch_many", ("dcs/7", "dcs/8")),
        ]

    def test_each_call_fetches_again(self, store):
        class Stock(Lookaside):
            __injections__ = [inject(after="stock", at="table", using="dc_id", populate="dc_name")]

            def stock(self):
                return {"table": {"dc_id": [7]}}

        service = Stock()
        service.stock()
        service.stock()
        assert store.count("fetch_many") == 2

    def test_wrapper_keeps_metadata_and_arguments(self, store):
        class Report(Lookaside):
            __injections__ = [inject(after="metrics", at="table", using="dc_id", populate="dc_name")]

            def metrics(self, *ids):
                """Report metrics."""
                return {"table": {"dc_id": list(ids)}}

        store.data.update({"dcs/1": "one", "dcs/2": "two"})
        assert Report.metrics.__name__ == "metrics"
        assert Report.metrics.__doc__ == "Report metrics."
        assert Report().metrics(1, 2)["table"]["dc_name"] == ["one", "two"]

    def test_subclass_adds_injection_to_inherited_method(self, store):
        class Report(Lookaside):
            __injections__ = [inject(after="metrics", at="table", using="employee_id", populate="employee_name")]

            def metrics(self):
                return {"table": {"employee_id": [1], "employer_id": [2]}}

        class DetailedReport(Report):
            __injections__ = [inject(after="metrics", at="table", using="employer_id", populate="employer_name")]

        store.data.update({"employees/1": "emp 1", "employers/2": "empr 2"})
        assert Report().metrics()["table"] == {"employee_id": [1], "employer_id": [2], "employee_name": ["emp 1"]}
        assert DetailedReport().metrics()["table"] == {
            "employee_id": [1],
            "employer_id": [2],
            "employee_name": ["emp 1"],
            "employer_name": ["empr 2"],
        }

    def test_override_without_super_runs_only_own_injections(self, store):
        class Report(Lookaside):
            __injections__ = [inject(after="metrics", at="table", using="employee_id", populate="employee_name")]

            def metrics(self):
                return {"table": {"employee_id": [1]}}

        class Summary(Report):
            __injections__ = [inject(after="metrics", at="table", using="employer_id", populate="employer_name")]

            def metrics(self):
                return {"table": {"employee_id": [1], "employer_id": [2]}}

        store.data.update({"employees/1": "emp 1", "employers/2": "empr 2"})
        assert [s.using for s in effective_injections(Summary, "metrics")] == ["employee_id", "employer_id"]
        assert Summary().metrics()["table"] == {"employee_id": [1], "employer_id": [2], "employer_name": ["empr 2"]}

    def test_static_method_rejected(self):
        with pytest.raises(ConfigurationError):
            class Broken(Lookaside):
                __injections__ = [inject(after="metrics", at="table", using="dc_id", populate="dc_name")]

                @staticmethod
                def metrics():
                    return {}

    def test_missing_path_surfaces_on_call(self, store):
        class Broken(Lookaside):
            __injections__ = [inject(after="metrics", at="$.table.menu", using="item_id", populate="item_name")]

            def metrics(self):
                return {"table": {}}

        with pytest.raises(MalformedPath):
            Broken().metrics()

    def test_result_not_addressable(self, store):
        class Broken(Lookaside):
            __injections__ = [inject(after="metrics", at="$.table", using="item_id", populate="item_name")]

            def metrics(self):
                return {"table": "scalar"}

        with pytest.raises(MalformedPath):
            Broken().metrics()


class TestStoreResponses:

    def test_misaligned_batch(self, store):
        store.batches = [["only one"]]
        with pytest.raises(ShapeMismatch):
            apply_injection(
                {"table": {"employee_id": [1, 2]}},
                inject(after="m", at="table", using="employee_id", populate="employee_name"),
            )

    def test_store_failure_propagates(self, store):
        store.error = TimeoutError("slow")
        document = {"table": {"employee_id": [1, 2]}}
        with pytest.raises(StoreUnavailable):
            apply_injection(document, inject(after="m", at="table", using="employee_id", populate="employee_name"))
        assert document == {"table": {"employee_id": [1, 2]}}
