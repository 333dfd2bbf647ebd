"""Tests for windowed bulk export."""

import pytest

from indexsync.export import BulkExportPaginator, DocumentExporter, ExportSchema, PageWindow

from fakes import FakeRecord, FakeRecordStore


def make_store(count: int, with_visibility: bool = False, hidden=()) -> FakeRecordStore:
    fields = {"ID": "PrimaryKey", "Name": "Varchar", "Start": "Datetime"}
    if with_visibility:
        fields["ShowInSearch"] = "Boolean"

    store = FakeRecordStore()
    store.add_schema(ExportSchema(class_name="FAQ", fields=fields))
    for record_id in range(1, count + 1):
        values = {"ID": record_id, "Name": f"Question {record_id}", "Start": "2024-01-01 00:00:00"}
        if with_visibility:
            values["ShowInSearch"] = record_id not in hidden
        store.add(FakeRecord("FAQ", **values))
    return store


class TestBulkExportPaginator:
    """Pagination and termination of bulk export."""

    def test_exports_every_record_once(self):
        store = make_store(45)
        paginator = BulkExportPaginator(DocumentExporter(store))

        documents = paginator.bulk_export("FAQ")

        assert len(documents) == 45
        assert [d.external_id for d in documents] == list(range(1, 46))
        assert paginator.page_sizes == [20, 20, 5]
        assert [w.start for w in paginator.windows] == [0, 20, 40]

    def test_exact_multiple_fetches_one_empty_page(self):
        store = make_store(40)
        paginator = BulkExportPaginator(DocumentExporter(store))

        documents = paginator.bulk_export("FAQ")

        assert len(documents) == 40
        assert paginator.page_sizes == [20, 20, 0]

    def test_empty_collection(self):
        paginator = BulkExportPaginator(DocumentExporter(make_store(0)))
        assert paginator.bulk_export("FAQ") == []
        assert paginator.page_sizes == [0]

    @pytest.mark.parametrize("max_documents,expected", [(1, 1), (5, 5), (20, 20), (33, 33), (45, 45), (100, 45)])
    def test_max_documents(self, max_documents, expected):
        paginator = BulkExportPaginator(DocumentExporter(make_store(45)))

        documents = paginator.bulk_export("FAQ", max_documents=max_documents)

        assert len(documents) == expected

    def test_stops_mid_page(self):
        paginator = BulkExportPaginator(DocumentExporter(make_store(45)))

        paginator.bulk_export("FAQ", max_documents=5)

        assert [w.start for w in paginator.windows] == [0]

    def test_start_offset(self):
        paginator = BulkExportPaginator(DocumentExporter(make_store(45)))

        documents = paginator.bulk_export("FAQ", start_at=20, max_documents=20)

        assert [d.external_id for d in documents] == list(range(21, 41))
        assert [w.start for w in paginator.windows] == [20]

    def test_custom_page_length(self):
        paginator = BulkExportPaginator(DocumentExporter(make_store(7)), page_length=3)

        documents = paginator.bulk_export("FAQ")

        assert len(documents) == 7
        assert paginator.page_sizes == [3, 3, 1]

    def test_visibility_filter_applied_before_paging(self):
        store = make_store(25, with_visibility=True, hidden={2, 4, 6})
        paginator = BulkExportPaginator(DocumentExporter(store))

        documents = paginator.bulk_export("FAQ")

        ids = [d.external_id for d in documents]
        assert len(ids) == 22
        assert not {2, 4, 6} & set(ids)
        assert paginator.page_sizes == [20, 2]

    def test_invalid_record_is_skipped(self):
        store = make_store(5)
        store.records["FAQ"][2].values["Start"] = "not a date"
        paginator = BulkExportPaginator(DocumentExporter(store))

        documents = paginator.bulk_export("FAQ")

        assert [d.external_id for d in documents] == [1, 2, 4, 5]

    def test_versioned_records_without_live_version_are_skipped(self):
        store = FakeRecordStore()
        store.add_schema(ExportSchema(class_name="Page", fields={"ID": "PrimaryKey"}, versioned=True))
        for record_id in range(1, 6):
            record = store.add(FakeRecord("Page", ID=record_id))
            if record_id % 2:
                store.publish(record)
        paginator = BulkExportPaginator(DocumentExporter(store))

        documents = paginator.bulk_export("Page", max_documents=2)

        assert [d.external_id for d in documents] == [1, 3]

    def test_windows_reset_between_runs(self):
        paginator = BulkExportPaginator(DocumentExporter(make_store(25)))

        paginator.bulk_export("FAQ")
        paginator.bulk_export("FAQ", start_at=20)

        assert [w.start for w in paginator.windows] == [20]

    def test_invalid_page_length(self):
        with pytest.raises(ValueError):
            BulkExportPaginator(DocumentExporter(make_store(1)), page_length=0)


def test_page_window_advance():
    window = PageWindow(start=40, length=20)
    assert window.advance() == PageWindow(start=60, length=20)
