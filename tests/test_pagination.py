"""Tests for the cumulative pagination cursor."""

import pytest

from clipmark.pagination import PaginationCursor


class TestVisibleCount:
    def test_first_page(self):
        assert PaginationCursor(10).visible_count(35) == 10

    def test_grows_cumulatively(self):
        cursor = PaginationCursor(10)
        counts = []
        for _ in range(5):
            counts.append(cursor.visible_count(35))
            cursor.advance()
        assert counts == [10, 20, 30, 35, 35]

    def test_non_decreasing_and_saturates(self):
        for per_page in (1, 3, 7):
            cursor = PaginationCursor(per_page)
            previous = 0
            for _ in range(20):
                count = cursor.visible_count(17)
                assert count >= previous
                if cursor.current_page * per_page >= 17:
                    assert count == 17
                previous = count
                cursor.advance()

    def test_empty_collection(self):
        assert PaginationCursor(5).visible_count(0) == 0

    def test_visible_is_prefix(self):
        cursor = PaginationCursor(2)
        cursor.advance()
        assert cursor.visible(list("abcdefg")) == ["a", "b", "c", "d"]

    def test_rejects_zero_page_size(self):
        with pytest.raises(ValueError):
            PaginationCursor(0)


class TestHasMore:
    def test_more_items(self):
        assert PaginationCursor.has_more(12, 10) is True

    def test_all_displayed(self):
        assert PaginationCursor.has_more(10, 10) is False

    def test_empty(self):
        assert PaginationCursor.has_more(0, 0) is False


class TestAdvanceAndReset:
    def test_reset(self):
        cursor = PaginationCursor(10)
        cursor.advance()
        cursor.advance()
        cursor.reset()
        assert cursor.current_page == 1

    def test_advance_ignored_while_loading(self):
        cursor = PaginationCursor(10)
        cursor.is_loading = True
        assert cursor.advance() is False
        assert cursor.current_page == 1


class TestLoadMore:
    def test_advances_once(self):
        cursor = PaginationCursor(10)
        assert cursor.load_more() is True
        assert cursor.current_page == 2
        assert cursor.is_loading is False

    def test_reentrant_trigger_ignored(self):
        cursor = PaginationCursor(10)
        results = []

        def render():
            results.append(cursor.load_more())
            results.append(cursor.advance())

        cursor.load_more(render)
        assert results == [False, False]
        assert cursor.current_page == 2

    def test_render_failure_reverts_page(self):
        cursor = PaginationCursor(10)

        def render():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            cursor.load_more(render)
        assert cursor.current_page == 1
        assert cursor.is_loading is False
