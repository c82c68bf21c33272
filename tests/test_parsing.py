import unittest

import numpy as np

from uplot.errors import CoercionError, ParseError
from uplot.parsing import MISSING, coerce, normalize, parse_table


class TestParseTable(unittest.TestCase):
    def test_tab_separated_with_unterminated_last_line(self):
        table = parse_table("1\t2\n3\t4")
        self.assertEqual(table, [["1", "2"], ["3", "4"]])

    def test_blank_lines_are_dropped(self):
        table = parse_table("a,b\n\n1,2\n\n", delimiter=",")
        self.assertEqual(table, [["a", "b"], ["1", "2"]])

    def test_quoted_fields_keep_delimiter_and_newline(self):
        table = parse_table('"a,b",c\n"line\nbreak",d\n', delimiter=",")
        self.assertEqual(table, [["a,b", "c"], ["line\nbreak", "d"]])

    def test_malformed_quoting_is_a_parse_error(self):
        with self.assertRaises(ParseError):
            parse_table('1,"unterminated\n2,3\n', delimiter=",")

    def test_empty_delimiter_is_rejected(self):
        with self.assertRaises(ParseError):
            parse_table("1\n", delimiter="")

    def test_multi_character_delimiter_splits_literally(self):
        table = parse_table("1::2\n\n3::4\n", delimiter="::")
        self.assertEqual(table, [["1", "2"], ["3", "4"]])

    def test_multi_character_delimiter_honours_quotes(self):
        self.assertEqual(parse_table('"a::b"::c\n1::2\n', delimiter="::")[0], ["a::b", "c"])
        table = parse_table('"say ""hi""::\nthere"::2\r\n3::4', delimiter="::")
        self.assertEqual(table, [['say "hi"::\nthere', "2"], ["3", "4"]])

    def test_multi_character_delimiter_only_breaks_on_newlines(self):
        table = parse_table("a\x0bb::c\x0cd\u2028e\n", delimiter="::")
        self.assertEqual(table, [["a\x0bb", "c\x0cd\u2028e"]])

    def test_multi_character_delimiter_keeps_empty_quoted_field(self):
        self.assertEqual(parse_table('""::1\n', delimiter="::"), [["", "1"]])

    def test_multi_character_delimiter_malformed_quoting(self):
        with self.assertRaises(ParseError):
            parse_table('1::"open\n2::3\n', delimiter="::")
        with self.assertRaises(ParseError) as cm:
            parse_table('1::2\n"a"b::3\n', delimiter="::")
        self.assertIn("line 2", str(cm.exception))
        with self.assertRaises(ParseError):
            parse_table('1::a"b\n', delimiter="::")


class TestNormalize(unittest.TestCase):
    def test_column_major_with_headers(self):
        series, headers = normalize([["x", "y"], ["1", "2"], ["3", "4"]], want_headers=True)
        self.assertEqual(headers, ["x", "y"])
        self.assertEqual(series, [["1", "3"], ["2", "4"]])

    def test_ragged_rows_are_padded_not_truncated(self):
        table = [["1", "2", "3"], ["4"], ["5", "6"]]
        series, headers = normalize(table)
        self.assertIsNone(headers)
        self.assertEqual(len(series), 3)
        self.assertTrue(all(len(s) == 3 for s in series))
        self.assertEqual(series[0], ["1", "4", "5"])
        self.assertEqual(series[1], ["2", MISSING, "6"])
        self.assertEqual(series[2], ["3", MISSING, MISSING])

    def test_short_header_row_is_padded_to_series_count(self):
        series, headers = normalize([["a"], ["1", "2"]], want_headers=True)
        self.assertEqual(len(headers), len(series))
        self.assertEqual(headers, ["a", ""])

    def test_row_major_takes_first_field_as_header(self):
        series, headers = normalize([["a", "1", "2"], ["b", "3"]], want_headers=True, transpose=True)
        self.assertEqual(headers, ["a", "b"])
        self.assertEqual(series, [["1", "2"], ["3"]])

    def test_column_major_and_row_major_are_transposes(self):
        table = [["1", "2", "3"], ["4", "5", "6"]]
        transposed = [list(col) for col in zip(*table)]
        cols, _ = normalize(table)
        rows, _ = normalize(transposed, transpose=True)
        self.assertEqual(cols, transposed)
        self.assertEqual(rows, transposed)

    def test_empty_table_is_no_data(self):
        self.assertEqual(normalize([]), ([], None))
        self.assertEqual(normalize([], want_headers=True), ([], []))


class TestCoerce(unittest.TestCase):
    def test_missing_and_empty_become_nan(self):
        out = coerce(["1", "", MISSING, " 2.5 "])
        self.assertEqual(out[0], 1.0)
        self.assertTrue(np.isnan(out[1]))
        self.assertTrue(np.isnan(out[2]))
        self.assertEqual(out[3], 2.5)

    def test_non_numeric_reports_position(self):
        with self.assertRaises(CoercionError) as ctx:
            coerce(["1", "abc"], series_index=2)
        issue = ctx.exception.issue
        self.assertEqual(issue.series_index, 2)
        self.assertEqual(issue.position, 1)
        self.assertIn("series 3", str(ctx.exception))
        self.assertIn("position 2", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
