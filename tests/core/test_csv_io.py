"""Tests for CSV parsing, writing and header aliases."""

import csv
import io

from core.csv_io import (
    IMPORT_TEMPLATE_HEADER,
    import_template,
    parse_csv,
    resolve_header,
    write_csv,
)


class TestResolveHeader:
    """Header aliases all land on internal names."""

    def test_internal_name(self):
        assert resolve_header("budget_max") == "budget_max"

    def test_camel_case(self):
        assert resolve_header("possessionTimeline") == "possession_timeline"

    def test_display_label_any_case(self):
        assert resolve_header(" full name ") == "full_name"
        assert resolve_header("BHK") == "bhk_requirement"
        assert resolve_header("bhk") == "bhk_requirement"

    def test_unknown_passes_through(self):
        assert resolve_header("Favourite Colour") == "Favourite Colour"


class TestParseCsv:
    """parse_csv() numbering and blank handling."""

    def test_row_numbers_count_header(self):
        """First data row is row 2."""
        header, records = parse_csv("a,b\n1,2\n3,4\n")

        assert header == ["a", "b"]
        assert [number for number, _ in records] == [2, 3]

    def test_blank_records_skipped(self):
        """Blank lines do not consume row numbers."""
        _, records = parse_csv("a,b\n\n1,2\n , \n3,4\n")
        assert records == [(2, ["1", "2"]), (3, ["3", "4"])]

    def test_quoted_newline_is_one_record(self):
        """Line breaks inside quotes stay in the value."""
        _, records = parse_csv('a,b\n"x\ny",2\n')
        assert records == [(2, ["x\ny", "2"])]

    def test_empty(self):
        """Empty input has no header."""
        assert parse_csv("") == ([], [])


class TestWriteCsv:
    """write_csv() quoting."""

    def test_minimal_quoting(self):
        """Only values that need it are quoted."""
        content = write_csv(["h1", "h2"], [["plain", "a,b"], ['say "hi"', "line\nbreak"]])

        assert content.splitlines()[1] == 'plain,"a,b"'
        assert '"say ""hi"""' in content
        assert '"line\nbreak"' in content


class TestTemplate:
    """Import template content."""

    def test_header_and_two_rows(self):
        """Template has canonical headers and two complete example rows."""
        rows = list(csv.reader(io.StringIO(import_template())))

        assert tuple(rows[0]) == IMPORT_TEMPLATE_HEADER
        assert len(rows) == 3
        assert all(len(row) == len(rows[0]) and all(row) for row in rows[1:])

    def test_template_imports_cleanly(self, lead_service, normalizer, as_agent):
        """The template is itself a valid import."""
        from core.services.csv_import import LeadImporter

        result = LeadImporter(lead_service, normalizer).import_csv(
            import_template().encode(), "buyers_import_template.csv"
        )

        assert (result.success, result.errors) == (2, [])
