"""Tests for switchyard.context — dispatch-scoped ContextVar and Page."""

import pytest

from switchyard.context import Page, get_page, page_var


class TestPageVar:
    def test_get_page_raises_outside_context(self) -> None:
        """get_page raises LookupError when no dispatch is active."""
        with pytest.raises(LookupError):
            get_page()

    def test_set_and_get_page(self) -> None:
        page = Page("/test")
        token = page_var.set(page)
        try:
            assert get_page() is page
            assert get_page().path == "/test"
        finally:
            page_var.reset(token)

    def test_reset_restores_previous(self) -> None:
        outer = Page("/outer")
        outer_token = page_var.set(outer)
        try:
            inner_token = page_var.set(Page("/inner"))
            page_var.reset(inner_token)
            assert get_page() is outer
        finally:
            page_var.reset(outer_token)


class TestPage:
    def test_defaults(self) -> None:
        page = Page("/x")
        assert page.path == "/x"
        assert page.params == {}

    def test_params_not_shared(self) -> None:
        a, b = Page("/a"), Page("/b")
        a.params["k"] = "v"
        assert b.params == {}

    def test_extra_attributes(self) -> None:
        page = Page("/x")
        page.title = "X"
        assert page.title == "X"
