import pytest

from core.browse import SORT_OPTIONS, filter_shows, paginate, sort_shows

SHOWS = [
    {"id": "1", "title": "Crime Junkie", "genres": [2, 5], "seasons": 3, "updated": "2022-11-03T07:00:00.000Z"},
    {"id": "2", "title": "armchair expert", "genres": [1], "seasons": 1, "updated": "2021-01-15T10:00:00.000Z"},
    {"id": "3", "title": "Business Wars", "genres": [5], "seasons": 7, "updated": "2023-05-20T08:30:00.000Z"},
    {"id": "4", "title": "Untimed", "genres": [], "seasons": None},
]


def titles(shows):
    return [show["title"] for show in shows]


def test_filter_by_title_is_case_insensitive():
    assert titles(filter_shows(SHOWS, "  CRIME ")) == ["Crime Junkie"]
    assert filter_shows(SHOWS, "") == SHOWS


def test_filter_by_genre_and_term_together():
    assert titles(filter_shows(SHOWS, genre_id=5)) == ["Crime Junkie", "Business Wars"]
    assert titles(filter_shows(SHOWS, "wars", genre_id=5)) == ["Business Wars"]
    assert filter_shows(SHOWS, "junkie", genre_id=1) == []


@pytest.mark.parametrize("order, expected", [
    ("recent", ["Business Wars", "Crime Junkie", "armchair expert", "Untimed"]),
    ("oldest", ["Untimed", "armchair expert", "Crime Junkie", "Business Wars"]),
    ("title-az", ["armchair expert", "Business Wars", "Crime Junkie", "Untimed"]),
    ("title-za", ["Untimed", "Crime Junkie", "Business Wars", "armchair expert"]),
    ("seasons", ["Business Wars", "Crime Junkie", "armchair expert", "Untimed"]),
    ("bogus", ["Business Wars", "Crime Junkie", "armchair expert", "Untimed"]),
])
def test_sort_orders(order, expected):
    assert titles(sort_shows(SHOWS, order)) == expected


def test_sort_returns_copy():
    sort_shows(SHOWS, "title-az")

    assert SHOWS[0]["title"] == "Crime Junkie"
    assert set(SORT_OPTIONS) == {"recent", "oldest", "title-az", "title-za", "seasons"}


def test_paginate_slices_and_counts_pages():
    items = list(range(17))

    assert paginate(items, 1) == (list(range(8)), 3, 1)
    assert paginate(items, 3) == ([16], 3, 3)


def test_paginate_out_of_range_falls_back_to_first_page():
    assert paginate(list(range(5)), 4, per_page=2) == ([0, 1], 3, 1)
    assert paginate([], 2) == ([], 0, 1)

    with pytest.raises(ValueError):
        paginate([1], 1, per_page=0)
