# backend/tests/services/test_export.py
"""
Tests for CSV export.
"""

from decimal import Decimal

from fintrack.services.export import array_to_csv


class TestArrayToCsv:

    def test_empty_input(self):
        assert array_to_csv([]) == ""

    def test_header_from_first_row(self):
        csv_text = array_to_csv([
            {"name": "Rent", "amount": Decimal("15000")},
            {"name": "Salary", "amount": Decimal("90000")},
        ])

        assert csv_text == "name,amount\nRent,15000\nSalary,90000"

    def test_comma_is_quoted(self):
        assert array_to_csv([{"name": "a,b"}]) == 'name\n"a,b"'

    def test_inner_quotes_are_doubled(self):
        assert array_to_csv([{"name": 'say "hi"'}]) == 'name\n"say ""hi"""'

    def test_newline_is_quoted(self):
        assert array_to_csv([{"note": "line1\nline2"}]) == 'note\n"line1\nline2"'

    def test_none_and_bool_cells(self):
        csv_text = array_to_csv([{"a": None, "b": True, "c": False}])

        assert csv_text == "a,b,c\n,true,false"

    def test_headers_select_and_order_columns(self):
        csv_text = array_to_csv(
            [{"id": 1, "amount": 10, "description": "x"}],
            headers=["description", "amount"],
        )

        assert csv_text == "description,amount\nx,10"

    def test_missing_column_is_empty(self):
        csv_text = array_to_csv([{"a": 1}, {"b": 2}], headers=["a", "b"])

        assert csv_text == "a,b\n1,\n,2"

    def test_no_trailing_newline(self):
        assert not array_to_csv([{"a": 1}]).endswith("\n")
