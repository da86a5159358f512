from __future__ import annotations

import unittest

from app.parsing.csv_parser import (
    TabularParseError,
    decode_upload,
    iter_rows,
    parse_csv,
    parse_csv_with_headers,
    split_fields,
)


class TestCSVParser(unittest.TestCase):
    def test_doubled_quotes_inside_quoted_field_are_one_token(self) -> None:
        rows = parse_csv('name,amount\n"Smith, ""Bob"" Jones",10\n')

        self.assertEqual(rows[1], ['Smith, "Bob" Jones', "10"])

    def test_quoted_line_break_stays_in_one_record(self) -> None:
        rows = parse_csv('vendor,description\nAcme,"line one\nline two"\nBeta,plain\n')

        self.assertEqual(len(rows), 3)
        self.assertEqual(rows[1], ["Acme", "line one\nline two"])
        self.assertEqual(rows[2], ["Beta", "plain"])

    def test_odd_quote_count_joins_following_line(self) -> None:
        rows = parse_csv('a,b\n1,12" pipe\n2,x"y\n')

        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[1], ["1", "12 pipe\n2,xy"])

    def test_unterminated_quote_keeps_remaining_text_as_one_record(self) -> None:
        rows = parse_csv('a,b\n1,"open\n2,3\n')

        self.assertEqual(rows, [["a", "b"], ["1", "open\n2,3"]])

    def test_split_fields_handles_empty_and_quoted_delimiters(self) -> None:
        self.assertEqual(split_fields(',"a,b",,c'), ["", "a,b", "", "c"])

    def test_blank_lines_and_trailing_content_are_not_rows(self) -> None:
        rows = parse_csv("a,b\r\n1,2\r\n\r\n3,4\r\n\r\n")

        self.assertEqual(rows, [["a", "b"], ["1", "2"], ["3", "4"]])

    def test_fields_are_trimmed(self) -> None:
        self.assertEqual(parse_csv(" a , b \n"), [["a", "b"]])

    def test_empty_text_has_no_rows(self) -> None:
        self.assertEqual(parse_csv(""), [])
        self.assertEqual(parse_csv_with_headers("   \n"), ([], []))

    def test_iter_rows_restarts_on_same_text(self) -> None:
        text = "a,b\n1,2\n"

        self.assertEqual(list(iter_rows(text)), list(iter_rows(text)))

    def test_header_split(self) -> None:
        header, rows = parse_csv_with_headers("fiscal_year,amount\n2024,5\n2025,6\n")

        self.assertEqual(header, ["fiscal_year", "amount"])
        self.assertEqual(rows, [["2024", "5"], ["2025", "6"]])

    def test_decode_strips_byte_order_mark(self) -> None:
        self.assertEqual(decode_upload("\ufeffa,b".encode("utf-8")), "a,b")

    def test_decode_rejects_non_utf8(self) -> None:
        with self.assertRaises(TabularParseError):
            decode_upload(b"\xff\xfe\x00bad")


if __name__ == "__main__":
    unittest.main()
