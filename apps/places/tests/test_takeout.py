import io

import pytest

from apps.places.exceptions import StreamError
from apps.places.takeout import TakeoutRow, read_takeout_rows

from .factories import maps_url, takeout_csv


def test_rows_are_typed_and_blank_fields_become_none():
    text = takeout_csv([
        ("Joe's Coffee", "", maps_url(), "Coffee, Brunch", "  "),
        ("", "", "", "", ""),
    ])

    rows = list(read_takeout_rows(io.StringIO(text)))

    assert rows[0] == TakeoutRow(
        line=1,
        title="Joe's Coffee",
        note=None,
        url=maps_url(),
        tags="Coffee, Brunch",
        comment=None,
    )
    assert rows[1] == TakeoutRow(line=2)


def test_headers_are_case_insensitive_and_bom_tolerant():
    text = "\ufefftitle,NOTE,url,tags,comment\nA,n,u,t,c\n"

    (only,) = read_takeout_rows(io.StringIO(text))

    assert (only.title, only.note, only.url, only.tags, only.comment) == ("A", "n", "u", "t", "c")


def test_missing_columns_and_extra_cells_are_tolerated():
    text = "Title,URL\nA,u,extra,cells\n"

    (only,) = read_takeout_rows(io.StringIO(text))

    assert only.title == "A"
    assert only.url == "u"
    assert only.tags is None


def test_rows_are_read_lazily():
    rows = read_takeout_rows(io.StringIO(takeout_csv([("A", "", "u", "", "")] * 3)))

    assert next(rows).line == 1
    assert next(rows).line == 2


def test_decode_error_becomes_stream_error():
    raw = io.BytesIO(b"Title,URL\n\xff\xfe\xfa,u\n")
    stream = io.TextIOWrapper(raw, encoding="utf-8", newline="")

    with pytest.raises(StreamError):
        list(read_takeout_rows(stream))


def test_corrupt_csv_becomes_stream_error():
    # 닫히지 않은 따옴표가 필드 크기 제한을 넘김
    text = "Title,URL\n\"" + "x" * 200_000 + "\n"

    with pytest.raises(StreamError):
        list(read_takeout_rows(io.StringIO(text)))
