from Palm_Task.utils.delimited import encode_rows, parse_rows


def test_plain_rows_and_trailing_row_without_newline():
    assert parse_rows("a,b\n1,2") == [["a", "b"], ["1", "2"]]


def test_quoted_field_keeps_delimiters_and_newlines():
    text = 'id,desc\n1,"one, two\nthree"\n'
    assert parse_rows(text) == [["id", "desc"], ["1", "one, two\nthree"]]


def test_doubled_quote_is_literal_quote():
    assert parse_rows('"he said ""hi"""\n') == [['he said "hi"']]


def test_all_line_break_styles_end_a_row_once():
    assert parse_rows("a\r\nb\rc\nd") == [["a"], ["b"], ["c"], ["d"]]


def test_empty_input_and_empty_trailing_fragment_give_no_row():
    assert parse_rows("") == []
    assert parse_rows("a,b\n") == [["a", "b"]]


def test_blank_line_in_the_middle_is_a_single_empty_field():
    assert parse_rows("a\n\nb\n") == [["a"], [""], ["b"]]


def test_trailing_delimiter_gives_empty_last_field():
    assert parse_rows("a,\n") == [["a", ""]]


def test_unbalanced_quote_runs_to_end_of_input():
    assert parse_rows('a,"bc\nd,e') == [["a", "bc\nd,e"]]


def test_other_delimiter():
    assert parse_rows("a;b,c\n", delimiter=";") == [["a", "b,c"]]


def test_encode_then_parse_returns_same_fields():
    rows = [
        ["id", "name", "notes"],
        ["1", "Bar do Zé", 'said "ok", then left'],
        ["2", "multi\nline", ""],
        ["3", "crlf\r\ninside", "semi;colon"],
        [""],
    ]
    assert parse_rows(encode_rows(rows)) == rows


def test_encode_only_quotes_when_needed():
    assert encode_rows([["a", "b c", "d,e"]]) == 'a,b c,"d,e"\n'
