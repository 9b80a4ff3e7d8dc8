# tests/test_ingestion.py

"""
Tests for reading uploads into import rows.
"""

import pytest
from datetime import datetime
from io import BytesIO

from openpyxl import Workbook

from fleetdesk.core.errors import SourceFormatError
from fleetdesk.core.ingestion import cell_text, read_csv, read_upload, rows_from_table


def make_xlsx(table: list[list]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    for line in table:
        sheet.append(line)
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class TestRowsFromTable:

    def test_header_first_rows(self):
        rows = rows_from_table([
            ["Rider Name", "Triev ID"],
            ["Suresh", "TRV-1"],
            ["Mahesh"],
        ])

        assert rows == [
            {"Rider Name": "Suresh", "Triev ID": "TRV-1"},
            {"Rider Name": "Mahesh", "Triev ID": ""},
        ]

    def test_blank_and_repeated_headers_dropped(self):
        rows = rows_from_table([
            ["Rider Name", "", "Rider Name"],
            ["Suresh", "ignored", "shadow"],
        ])

        assert rows == [{"Rider Name": "Suresh"}]

    def test_blank_rows_skipped(self):
        rows = rows_from_table([["Rider Name"], ["", ""], [None], ["Suresh"]])

        assert rows == [{"Rider Name": "Suresh"}]

    def test_empty_table(self):
        assert rows_from_table([]) == []

    def test_cell_text(self):
        assert cell_text(9876543210.0) == "9876543210"
        assert cell_text(12.5) == "12.5"
        assert cell_text(datetime(2025, 1, 5)) == "2025-01-05T00:00:00"
        assert cell_text(None) == ""


class TestReadUpload:

    def test_csv_with_bom(self):
        content = "\ufeffRider Name,Triev ID\nSuresh,TRV-1\n".encode("utf-8")

        assert read_upload("roster.csv", content) == [{"Rider Name": "Suresh", "Triev ID": "TRV-1"}]

    def test_semicolon_csv(self):
        table = read_csv(b"Rider Name;Wallet Amount\nSuresh;1,500\nMahesh;200\n")

        assert table[1] == ["Suresh", "1,500"]

    def test_xlsx(self):
        content = make_xlsx([
            ["Rider Name", "Mobile Number", "Wallet Amount"],
            ["Suresh", 9876543210, 150.0],
        ])

        rows = read_upload("Roster.XLSX", content)

        assert rows == [{"Rider Name": "Suresh", "Mobile Number": "9876543210", "Wallet Amount": "150"}]

    def test_unsupported_extension(self):
        with pytest.raises(SourceFormatError, match="Unsupported file type"):
            read_upload("roster.pdf", b"%PDF")

    def test_header_only_file_is_empty(self):
        with pytest.raises(SourceFormatError, match="File is empty"):
            read_upload("roster.csv", b"Rider Name,Triev ID\n")

    def test_corrupt_workbook(self):
        with pytest.raises(SourceFormatError, match="Failed to parse Excel file"):
            read_upload("roster.xlsx", b"not a zip")
