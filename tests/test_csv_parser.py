"""Tests for statement parsing and column mapping."""

import pytest
from datetime import date
from decimal import Decimal

from moneyquest.domain.csv_parser import (
    detect_column_role,
    detect_delimiter,
    parse_csv_content,
    suggest_mappings,
    transform_with_mappings,
    validate_mappings,
)
from moneyquest.domain.entities import ColumnMapping, ColumnRole
from moneyquest.domain.errors import (
    MappingErrorKind,
    MappingValidationError,
    ParseError,
    ParseErrorKind,
)


def _mappings(*roles):
    return [ColumnMapping(i, f"col{i}", role) for i, role in enumerate(roles)]


class TestParseCsvContent:
    def test_semicolon_file_with_bom_and_crlf(self):
        text = "\ufeffData;Descrição;Valor\r\n15/01/2024;Padaria;-12,00\r\n\r\n16/01/2024;Mercado;-30,00\r\n"

        result = parse_csv_content(text)

        assert result.delimiter == ";"
        assert result.headers == ["Data", "Descrição", "Valor"]
        assert result.rows == [
            ["15/01/2024", "Padaria", "-12,00"],
            ["16/01/2024", "Mercado", "-30,00"],
        ]

    def test_quoted_fields_keep_delimiters_and_quotes(self):
        text = 'Date,Description,Amount\n2024-01-15,"Dinner, with ""friends""",-80.00\n'

        result = parse_csv_content(text)

        assert result.delimiter == ","
        assert result.rows[0][1] == 'Dinner, with "friends"'

    def test_cells_are_trimmed(self):
        result = parse_csv_content("Date\tDescription\n  2024-01-15 \t  Rent  \n")
        assert result.delimiter == "\t"
        assert result.rows == [["2024-01-15", "Rent"]]

    def test_empty_file(self):
        with pytest.raises(ParseError) as excinfo:
            parse_csv_content("  \n\n")
        assert excinfo.value.kind == ParseErrorKind.EMPTY_FILE

    def test_header_without_columns(self):
        with pytest.raises(ParseError) as excinfo:
            parse_csv_content(";;\n1;2;3\n")
        assert excinfo.value.kind == ParseErrorKind.NO_HEADERS

    def test_header_only_has_no_rows(self):
        result = parse_csv_content("Data;Valor\n")
        assert result.rows == []


class TestDetectDelimiter:
    def test_semicolon_wins_tie_with_comma(self):
        assert detect_delimiter("a;b,c\n1;2,3\n") == ";"

    def test_delimiters_inside_quotes_are_ignored(self):
        assert detect_delimiter('"a;b;c",d\n"1;2;3",4\n') == ","

    def test_defaults_to_comma(self):
        assert detect_delimiter("single column\nvalue\n") == ","


class TestDetectColumnRole:
    @pytest.mark.parametrize(
        "header,role",
        [
            ("Data", ColumnRole.DATE),
            ("Date", ColumnRole.DATE),
            ("Valor", ColumnRole.AMOUNT),
            ("Crédito", ColumnRole.CREDIT),
            ("Saída", ColumnRole.DEBIT),
            ("Histórico", ColumnRole.DESCRIPTION),
            ("Lançamento", ColumnRole.DESCRIPTION),
            ("Documento", ColumnRole.BANK_REFERENCE),
            ("Favorecido", ColumnRole.COUNTERPARTY),
        ],
    )
    def test_header_patterns(self, header, role):
        assert detect_column_role(header, []) == role

    def test_dates_detected_from_samples(self):
        assert detect_column_role("Col A", ["15/01/2024", "16.01.2024"]) == ColumnRole.DATE

    def test_signed_numbers_are_an_amount(self):
        assert detect_column_role("Col B", ["-12,00", "300,00"]) == ColumnRole.AMOUNT

    def test_unknown_text_is_ignored(self):
        assert detect_column_role("Notes", ["foo", "bar"]) == ColumnRole.IGNORE
        assert detect_column_role("Notes", []) == ColumnRole.IGNORE


def test_suggest_mappings_keeps_three_samples():
    headers = ["Data", "Descrição", "Valor"]
    rows = [[f"{day:02d}/01/2024", f"Item {day}", "-1,00"] for day in range(1, 6)]

    mappings = suggest_mappings(headers, rows)

    assert [m.role for m in mappings] == [ColumnRole.DATE, ColumnRole.DESCRIPTION, ColumnRole.AMOUNT]
    assert mappings[0].sample_values == ("01/01/2024", "02/01/2024", "03/01/2024")


class TestValidateMappings:
    def test_amount_mapping_is_valid(self):
        assert validate_mappings(_mappings(ColumnRole.DATE, ColumnRole.DESCRIPTION, ColumnRole.AMOUNT)) == []

    def test_credit_and_debit_replace_amount(self):
        mappings = _mappings(ColumnRole.DATE, ColumnRole.DESCRIPTION, ColumnRole.CREDIT, ColumnRole.DEBIT)
        assert validate_mappings(mappings) == []

    def test_credit_only_is_missing_value(self):
        mappings = _mappings(ColumnRole.DATE, ColumnRole.DESCRIPTION, ColumnRole.CREDIT)
        assert validate_mappings(mappings) == [MappingErrorKind.MISSING_VALUE]

    def test_every_missing_role_is_reported(self):
        assert validate_mappings(_mappings(ColumnRole.IGNORE)) == [
            MappingErrorKind.MISSING_DATE,
            MappingErrorKind.MISSING_DESCRIPTION,
            MappingErrorKind.MISSING_VALUE,
        ]


class TestTransformWithMappings:
    def test_amount_column(self):
        rows = [["15/01/2024", "  supermercado   bom preco ", "R$ 1.234,56", "Loja X"]]
        mappings = _mappings(
            ColumnRole.DATE, ColumnRole.DESCRIPTION, ColumnRole.AMOUNT, ColumnRole.COUNTERPARTY
        )

        (line,) = transform_with_mappings(rows, mappings, wallet_id=7)

        assert line.wallet_id == 7
        assert line.transaction_date == date(2024, 1, 15)
        assert line.description == "SUPERMERCADO BOM PRECO"
        assert line.amount == Decimal("1234.56")
        assert line.counterparty == "LOJA X"

    def test_credit_minus_debit(self):
        rows = [["2024-01-15", "Coffee", "", "12.50"], ["2024-01-16", "Salary", "3000.00", ""]]
        mappings = _mappings(ColumnRole.DATE, ColumnRole.DESCRIPTION, ColumnRole.CREDIT, ColumnRole.DEBIT)

        lines = transform_with_mappings(rows, mappings, wallet_id=1)

        assert [line.amount for line in lines] == [Decimal("-12.50"), Decimal("3000.00")]

    def test_bad_rows_are_reported_and_skipped(self):
        rows = [
            ["15/01/2024", "Padaria", "-12,00"],
            ["31/02/2024", "Data impossivel", "-10,00"],
            ["16/01/2024", "", "-5,00"],
            ["17/01/2024", "Sem valor", ""],
            ["18/01/2024", "Zerado", "0,00"],
        ]
        errors = []

        lines = transform_with_mappings(
            rows, _mappings(ColumnRole.DATE, ColumnRole.DESCRIPTION, ColumnRole.AMOUNT), 1, errors
        )

        assert len(lines) == 1
        assert errors == [
            "Row 3: Invalid date '31/02/2024'",
            "Row 4: Missing description",
            "Row 5: Missing amount",
            "Row 6: Amount is zero",
        ]

    def test_invalid_mappings_raise(self):
        with pytest.raises(MappingValidationError) as excinfo:
            transform_with_mappings([["x"]], _mappings(ColumnRole.DATE), 1)
        assert MappingErrorKind.MISSING_DESCRIPTION in excinfo.value.kinds
