"""
Unit tests for CSV import/export helpers.
"""
import pytest

from app.domain.exceptions import MissingOrMalformedField
from app.utils.tabular import (
    EXPORT_COLUMNS,
    IMPORT_COLUMNS,
    build_export_csv,
    build_template_csv,
    parse_import_csv,
)


class TestParseImportCsv:
    """Tests for parse_import_csv."""

    def test_parses_rows_as_text(self):
        content = (
            b"project_code,location_name,x,y,remarks\n"
            b"P-001,BH-01,500000.5,2000000,first\n"
            b"P-001, BH-02 ,500100,2000100,\n"
        )

        candidates = parse_import_csv(content)

        assert len(candidates) == 2
        assert candidates[0].project_code == "P-001"
        assert candidates[0].x == "500000.5"
        assert candidates[0].remarks == "first"
        assert candidates[1].location_name == " BH-02 "
        assert candidates[1].remarks is None

    def test_keeps_leading_zero_codes(self):
        content = b"project_code,location_name,x,y,remarks\n007,A,1,2,\n"

        candidates = parse_import_csv(content)

        assert candidates[0].project_code == "007"

    def test_blank_cells_are_none(self):
        content = b"project_code,location_name,x,y,remarks\nP-001,  ,,2,\n"

        candidate = parse_import_csv(content)[0]

        assert candidate.location_name is None
        assert candidate.x is None
        assert candidate.y == "2"

    def test_handles_bom_and_extra_columns(self):
        content = (
            "\ufeffproject_code,location_name,x,y,remarks,extra\n"
            "P-001,A,1,2,r,ignored\n"
        ).encode("utf-8")

        candidate = parse_import_csv(content)[0]

        assert candidate.project_code == "P-001"
        assert not hasattr(candidate, "extra")

    def test_missing_column(self):
        content = b"project_code,location_name,x\nP-001,A,1\n"

        with pytest.raises(MissingOrMalformedField, match="y, remarks"):
            parse_import_csv(content)

    def test_empty_file(self):
        with pytest.raises(MissingOrMalformedField, match="empty"):
            parse_import_csv(b"")

    def test_header_only(self):
        assert parse_import_csv(b"project_code,location_name,x,y,remarks\n") == []

    def test_row_limit(self):
        content = b"project_code,location_name,x,y,remarks\n" + b"P,A,1,2,\n" * 3

        with pytest.raises(MissingOrMalformedField, match="limit"):
            parse_import_csv(content, max_rows=2)


class TestExportCsv:
    """Tests for export and template rendering."""

    def test_export_columns_and_values(self, sample_records):
        lines = build_export_csv(sample_records).splitlines()

        assert lines[0] == ",".join(EXPORT_COLUMNS)
        assert lines[1] == "1,BH-01,500000.0,2000000.0,"
        assert lines[2] == "2,BH-02,500250.0,2000400.0,near fence"
        assert len(lines) == 4

    def test_export_empty(self):
        assert build_export_csv([]).splitlines() == [",".join(EXPORT_COLUMNS)]

    def test_template(self):
        lines = build_template_csv().splitlines()

        assert lines == [",".join(IMPORT_COLUMNS), ",,,,"]

    def test_template_parses_to_blank_candidate(self):
        candidates = parse_import_csv(build_template_csv().encode("utf-8"))

        assert len(candidates) == 1
        assert candidates[0].model_dump() == {column: None for column in IMPORT_COLUMNS}
