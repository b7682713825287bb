"""Tests for the built-in post, taxonomy and user search callbacks."""

from __future__ import annotations

import pytest

from flyouts.lib.search import ContentRecord, InMemoryContentBackend, SearchCallbacks, absint, parse_id_list


@pytest.fixture
def callbacks(content_backend) -> SearchCallbacks:
    return SearchCallbacks(content_backend)


@pytest.mark.parametrize(
    "value,expected",
    [(7, 7), ("7", 7), (-3, 3), ("4.9", 4), ("abc", 0), (None, 0), ("inf", 0)],
)
def test_absint(value, expected):
    assert absint(value) == expected


@pytest.mark.parametrize(
    "value,expected",
    [
        ("3,7", [3, 7]),
        (" 3 , x, 7 ", [3, 7]),
        ([3, "7", 0], [3, 7]),
        ("", []),
        (None, []),
    ],
)
def test_parse_id_list(value, expected):
    assert parse_id_list(value) == expected


class TestPostSearch:
    """Tests for the post callback."""

    def test_term_search_is_title_ordered_and_published_only(self, callbacks):
        search = callbacks.posts("product")

        assert search("mug") == {3: "Blue Mug", 7: "Red Mug"}
        assert search("teapot") == {}

    def test_empty_term_lists_all_of_type(self, callbacks):
        assert list(callbacks.posts("product")("")) == [3, 7]

    def test_ids_hydrate_in_requested_order(self, callbacks):
        search = callbacks.posts("product")

        assert list(search("ignored", [7, 3])) == [7, 3]

    def test_query_args_override_defaults(self, callbacks):
        search = callbacks.posts("product", {"post_status": "any"})

        assert search("teapot") == {9: "Green Teapot"}

    def test_multiple_post_types(self, callbacks):
        search = callbacks.posts(["product", "post"])

        assert set(search("")) == {3, 7, 11}


class TestTaxonomySearch:
    """Tests for the taxonomy callback."""

    def test_search_by_name(self, callbacks):
        assert callbacks.taxonomy("product_cat")("gard") == {22: "Garden"}

    def test_hydrate(self, callbacks):
        assert callbacks.taxonomy("product_cat")("", [21]) == {21: "Kitchen"}

    def test_other_taxonomy_is_empty(self, callbacks):
        assert callbacks.taxonomy("category")("") == {}


class TestUserSearch:
    """Tests for the user callback."""

    def test_search_matches_email(self, callbacks):
        assert callbacks.users()("sam@") == {32: "Sam Shopper"}

    def test_role_filter(self, callbacks):
        search = callbacks.users("administrator, editor")

        assert search("") == {31: "Ada Admin"}

    def test_role_list(self, callbacks):
        assert set(callbacks.users(["customer"])("")) == {32}


class TestInMemoryBackend:
    """Tests for the in-memory backend."""

    def test_limit_and_descending_order(self):
        backend = InMemoryContentBackend([ContentRecord(i, f"Item {i}", subtype="post") for i in range(1, 6)])

        records = backend.query_posts({"post_type": "post", "posts_per_page": 2, "order": "DESC"})

        assert [r.id for r in records] == [5, 4]

    def test_unlimited(self):
        backend = InMemoryContentBackend()
        for i in range(1, 4):
            backend.add(ContentRecord(i, f"Term {i}", kind="term", subtype="tag"))

        assert len(backend.query_terms({"taxonomy": "tag", "number": -1})) == 3
