from __future__ import annotations

from pathlib import Path

import pytest
from openpyxl import load_workbook

from system_catalog.store.workbook import CellValueError, WorkbookStore

HEADERS = ("ID", "Name", "Status")


def test_new_store_has_no_tables() -> None:
    store = WorkbookStore()
    assert store.list_tables() == []
    assert store.get_table("systems") is None


def test_get_or_create_table_writes_styled_headers(tmp_path: Path) -> None:
    path = tmp_path / "catalog.xlsx"
    store = WorkbookStore(str(path))

    table = store.get_or_create_table("systems", HEADERS)

    assert table.headers == list(HEADERS)
    assert table.rows() == []
    assert store.get_or_create_table("systems", ("Other",)).headers == list(HEADERS)

    sheet = load_workbook(path)["systems"]
    assert sheet["A1"].value == "ID"
    assert sheet["A1"].font.bold is True
    assert sheet["A1"].fill.start_color.rgb.endswith("E0E0E0")


def test_append_update_and_delete_rows() -> None:
    store = WorkbookStore()
    table = store.get_or_create_table("systems", HEADERS)

    assert table.append_row(["INT-0001", "Core", "active"]) == 0
    assert table.append_row(["INT-0002", "Edge", "planning"]) == 1
    table.update_cells(1, {"Status": "retired"})

    assert table.records() == [
        {"ID": "INT-0001", "Name": "Core", "Status": "active"},
        {"ID": "INT-0002", "Name": "Edge", "Status": "retired"},
    ]

    table.delete_row(0)
    assert table.column_values("ID") == ["INT-0002"]

    # Rows appended after a delete land directly below the remaining data.
    assert table.append_row(["INT-0003", "New", ""]) == 1
    assert table.row_count() == 2


def test_records_fill_missing_cells_with_empty_string() -> None:
    table = WorkbookStore().get_or_create_table("systems", HEADERS)
    table.append_row(["INT-0001"])
    assert table.records() == [{"ID": "INT-0001", "Name": "", "Status": ""}]


def test_index_of_compares_as_strings() -> None:
    table = WorkbookStore().get_or_create_table("vendors", HEADERS)
    table.append_row([101, "Numeric", ""])
    assert table.index_of("ID", "101") == 0
    assert table.index_of("ID", 101) == 0
    assert table.index_of("ID", "102") is None
    assert table.index_of("Missing", "101") is None


def test_update_rejects_unknown_columns_and_rows() -> None:
    table = WorkbookStore().get_or_create_table("systems", HEADERS)
    table.append_row(["INT-0001", "Core", ""])
    with pytest.raises(KeyError):
        table.update_cells(0, {"Nope": "x"})
    with pytest.raises(IndexError):
        table.update_cells(5, {"Name": "x"})
    with pytest.raises(IndexError):
        table.delete_row(1)


def test_ensure_headers_restores_cleared_header_row() -> None:
    store = WorkbookStore()
    table = store.get_or_create_table("access_log", ("Timestamp", "Email"))
    for column in (1, 2):
        table._sheet.cell(row=1, column=column, value=None)
    assert table.has_headers() is False

    table.ensure_headers(("Timestamp", "Email"))

    assert table.headers == ["Timestamp", "Email"]


def test_store_reloads_saved_workbook(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "catalog.xlsx"
    store = WorkbookStore(str(path))
    store.get_or_create_table("systems", HEADERS).append_row(["INT-0001", "Core", "active"])

    reopened = WorkbookStore(str(path))

    assert reopened.list_tables() == ["systems"]
    assert reopened.get_table("systems").records()[0]["Name"] == "Core"


def test_unstorable_values_leave_rows_untouched() -> None:
    store = WorkbookStore()
    table = store.get_or_create_table("systems", ["ID", "Name", "Goal"])
    table.append_row(["INT-0001", "Core", "keep"])

    with pytest.raises(CellValueError, match="'Goal'"):
        table.append_row(["INT-0002", "Edge", "a\x01b"])
    with pytest.raises(CellValueError, match="'Goal'"):
        table.update_cells(0, {"Name": "Renamed", "Goal": "x\x02"})

    assert table.records() == [{"ID": "INT-0001", "Name": "Core", "Goal": "keep"}]
