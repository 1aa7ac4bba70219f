import pytest

from contactbook.pagination import Page, clamp_per_page, coerce_page, last_page


@pytest.mark.parametrize(
    "raw, expected",
    [(None, 1), ("3", 3), (0, 1), (-4, 1), ("abc", 1), ("", 1)],
)
def test_coerce_page(raw, expected):
    assert coerce_page(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [(None, 5), ("10", 10), (0, 1), (-1, 1), (500, 100), ("x", 5), (100, 100)],
)
def test_clamp_per_page(raw, expected):
    assert clamp_per_page(raw) == expected


def test_last_page_is_at_least_one():
    assert last_page(0, 5) == 1
    assert last_page(5, 5) == 1
    assert last_page(6, 5) == 2
    assert last_page(101, 100) == 2


def test_page_bounds():
    page = Page(items=["d", "e"], total=5, current_page=2, per_page=3)
    assert page.meta() == {
        "current_page": 2,
        "per_page": 3,
        "total": 5,
        "last_page": 2,
        "from": 4,
        "to": 5,
    }


def test_page_beyond_last_is_empty():
    page = Page(items=[], total=5, current_page=9, per_page=3)
    assert page.from_ is None
    assert page.to is None
    assert page.links(lambda n: f"?page={n}")["next"] is None


def test_links_at_boundaries():
    first = Page(items=[1], total=3, current_page=1, per_page=1)
    links = first.links(lambda n: f"/contacts?page={n}")
    assert links == {
        "first": "/contacts?page=1",
        "last": "/contacts?page=3",
        "prev": None,
        "next": "/contacts?page=2",
    }

    last = Page(items=[3], total=3, current_page=3, per_page=1)
    assert last.links(lambda n: str(n))["prev"] == "2"
    assert last.links(lambda n: str(n))["next"] is None
