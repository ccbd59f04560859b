"""Tests for Router.use / Router.stage — named stages composed with routes."""

from typing import Any

import pytest

from switchyard.context import Page
from switchyard.middleware.chain import Cursor
from switchyard.routing.layer import error_handler
from switchyard.routing.router import Router


def _stage(router: Router, name: str, page: Any, path: str | None = None) -> BaseException | None:
    results: list[BaseException | None] = []
    router.stage(name, page, results.append, path)
    assert len(results) == 1, "done must be called exactly once"
    return results[0]


def _append(attr: str, value: str, *, first: bool = False) -> Any:
    def handler(page: Page, params: dict, cursor: Cursor) -> None:
        if first:
            setattr(page, attr, [])
        getattr(page, attr).append(value)
        cursor.proceed()

    return handler


class TestOnlyStages:
    @pytest.fixture
    def router(self) -> Router:
        router = Router()

        def first(page: Page, params: dict, cursor: Cursor) -> None:
            page.routed_to_first = True
            cursor.proceed()

        def second(page: Page, params: dict, cursor: Cursor) -> None:
            page.routed_to_second = True
            cursor.proceed()

        router.use("first", first)
        router.use("second", second)
        return router

    def test_two_stages(self, router: Router) -> None:
        assert sorted(router.stages) == ["first", "second"]

    def test_dispatch_first(self, router: Router) -> None:
        page = Page("/foo")
        assert _stage(router, "first", page, page.path) is None
        assert page.routed_to_first is True
        assert not hasattr(page, "routed_to_second")

    def test_dispatch_second(self, router: Router) -> None:
        page = Page("/bar")
        assert _stage(router, "second", page, page.path) is None
        assert not hasattr(page, "routed_to_first")
        assert page.routed_to_second is True

    def test_unknown_stage_runs_nothing(self, router: Router) -> None:
        page = Page("/baz")
        assert _stage(router, "third", page) is None
        assert not hasattr(page, "routed_to_first")
        assert not hasattr(page, "routed_to_second")

    def test_stage_layers_ignore_the_path(self, router: Router) -> None:
        page = Page("")
        assert _stage(router, "first", page) is None
        assert page.routed_to_first is True


class TestStageHandlers:
    def test_multiple_handlers(self) -> None:
        router = Router()
        router.use(
            "first",
            _append("stage_called", "1", first=True),
            _append("stage_called", "2"),
            _append("stage_called", "3"),
        )

        page = Page("/foo")
        assert _stage(router, "first", page) is None
        assert page.stage_called == ["1", "2", "3"]

    def test_skip_route_inside_stage(self) -> None:
        router = Router()

        def skip(page: Page, params: dict, cursor: Cursor) -> None:
            page.stage_called.append("a2")
            cursor.skip_route()

        router.use("first", _append("stage_called", "a1", first=True), skip, _append("stage_called", "a3"))
        router.use("first", _append("stage_called", "b1"))

        page = Page("/foo")
        assert _stage(router, "first", page) is None
        assert page.stage_called == ["a1", "a2", "b1"]

    def test_fail(self) -> None:
        router = Router()

        def broken(page: Page, params: dict, cursor: Cursor) -> None:
            cursor.fail(ValueError("something went wrong"))

        router.use("first", broken)

        error = _stage(router, "first", Page("/foo"))
        assert isinstance(error, ValueError)
        assert str(error) == "something went wrong"

    def test_exception(self) -> None:
        router = Router()

        def broken(page: Page, params: dict, cursor: Cursor) -> None:
            raise RuntimeError("something went horribly wrong")

        router.use("first", broken)

        error = _stage(router, "first", Page("/foo"))
        assert isinstance(error, RuntimeError)

    def test_error_handler_not_called(self) -> None:
        router = Router()

        @error_handler
        def on_error(error: Exception, page: Page, params: dict, cursor: Cursor) -> None:
            page.stage_called.append("error")
            cursor.proceed()

        router.use("first", _append("stage_called", "1", first=True), _append("stage_called", "2"), on_error)

        page = Page("/foo")
        assert _stage(router, "first", page) is None
        assert page.stage_called == ["1", "2"]

    def test_error_handler_called(self) -> None:
        router = Router()

        def broken(page: Page, params: dict, cursor: Cursor) -> None:
            page.stage_called = ["1"]
            cursor.fail(ValueError("1 error"))

        @error_handler
        def on_error(error: Exception, page: Page, params: dict, cursor: Cursor) -> None:
            page.stage_called.append(str(error))
            cursor.proceed()

        router.use("first", broken, _append("stage_called", "2"), on_error)

        page = Page("/foo")
        assert _stage(router, "first", page) is None
        assert page.stage_called == ["1", "1 error"]


class TestStagesAndRoutes:
    @pytest.fixture
    def router(self) -> Router:
        router = Router()

        def first(page: Page, params: dict, cursor: Cursor) -> None:
            page.routed_to_first = True
            cursor.proceed()

        def second(page: Page, params: dict, cursor: Cursor) -> None:
            page.routed_to_second = True
            cursor.proceed()

        def foo(page: Page, params: dict, cursor: Cursor) -> None:
            page.routed_to_foo = True
            cursor.proceed()

        def bar(page: Page, params: dict, cursor: Cursor) -> None:
            page.routed_to_bar = True
            cursor.proceed()

        router.use("first", first)
        router.use("second", second)
        router.route("/foo", foo)
        router.route("/bar", bar)
        return router

    def test_stage_then_matching_route(self, router: Router) -> None:
        page = Page("/foo")
        assert _stage(router, "first", page, page.path) is None
        assert page.routed_to_first is True
        assert page.routed_to_foo is True
        assert not hasattr(page, "routed_to_second")
        assert not hasattr(page, "routed_to_bar")

    def test_other_stage_other_route(self, router: Router) -> None:
        page = Page("/bar")
        assert _stage(router, "second", page, page.path) is None
        assert page.routed_to_second is True
        assert page.routed_to_bar is True
        assert not hasattr(page, "routed_to_first")
        assert not hasattr(page, "routed_to_foo")

    def test_unknown_stage_falls_through_to_routes(self, router: Router) -> None:
        page = Page("/foo")
        assert _stage(router, "third", page, page.path) is None
        assert page.routed_to_foo is True
        assert not hasattr(page, "routed_to_first")
        assert not hasattr(page, "routed_to_second")

    def test_stage_runs_before_routes(self) -> None:
        router = Router()
        calls = []

        def record(name: str) -> Any:
            def handler(page: Page, params: dict, cursor: Cursor) -> None:
                calls.append(name)
                cursor.proceed()

            return handler

        router.route("/foo", record("route"))
        router.use("first", record("stage"))

        _stage(router, "first", Page("/foo"))
        assert calls == ["stage", "route"]

    def test_skip_route_only_skips_the_current_layer(self) -> None:
        router = Router()

        def stage_skip(page: Page, params: dict, cursor: Cursor) -> None:
            page.stage_called.append("a2")
            cursor.skip_route()

        def route_skip(page: Page, params: dict, cursor: Cursor) -> None:
            page.routed_to.append("a2")
            cursor.skip_route()

        router.use(
            "first",
            _append("stage_called", "a1", first=True),
            stage_skip,
            _append("stage_called", "a3"),
        )
        router.use("first", _append("stage_called", "b1"))
        router.route("/foo", _append("routed_to", "a1", first=True), route_skip, _append("routed_to", "a3"))
        router.route("/foo", _append("routed_to", "b1"))

        page = Page("/foo")
        assert _stage(router, "first", page) is None
        assert page.stage_called == ["a1", "a2", "b1"]
        assert page.routed_to == ["a1", "a2", "b1"]

    def test_route_error_reaches_done(self) -> None:
        router = Router()
        router.use("first", lambda page, params, cursor: cursor.proceed())

        def broken(page: Page, params: dict, cursor: Cursor) -> None:
            cursor.fail(ValueError("something went wrong"))

        router.route("/foo", broken)

        error = _stage(router, "first", Page("/foo"))
        assert str(error) == "something went wrong"

    def test_route_exception_reaches_done(self) -> None:
        router = Router()
        router.use("first", lambda page, params, cursor: cursor.proceed())

        def broken(page: Page, params: dict, cursor: Cursor) -> None:
            raise RuntimeError("something went horribly wrong")

        router.route("/foo", broken)

        error = _stage(router, "first", Page("/foo"))
        assert str(error) == "something went horribly wrong"

    def test_error_handlers_not_called(self) -> None:
        router = Router()

        @error_handler
        def stage_error(error: Exception, page: Page, params: dict, cursor: Cursor) -> None:
            page.stage_called.append("error")
            cursor.proceed()

        @error_handler
        def route_error(error: Exception, page: Page, params: dict, cursor: Cursor) -> None:
            page.routed_to.append("error")
            cursor.proceed()

        router.use("first", _append("stage_called", "1", first=True), _append("stage_called", "2"), stage_error)
        router.route("/foo", _append("routed_to", "1", first=True), _append("routed_to", "2"), route_error)

        page = Page("/foo")
        assert _stage(router, "first", page) is None
        assert page.stage_called == ["1", "2"]
        assert page.routed_to == ["1", "2"]

    def test_stage_error_recovered_then_routes_run(self) -> None:
        router = Router()

        def stage_broken(page: Page, params: dict, cursor: Cursor) -> None:
            page.stage_called = ["1"]
            cursor.fail(ValueError("1 error"))

        def route_broken(page: Page, params: dict, cursor: Cursor) -> None:
            page.routed_to = ["1"]
            raise ValueError("1 error")

        @error_handler
        def stage_error(error: Exception, page: Page, params: dict, cursor: Cursor) -> None:
            page.stage_called.append(str(error))
            cursor.proceed()

        @error_handler
        def route_error(error: Exception, page: Page, params: dict, cursor: Cursor) -> None:
            page.routed_to.append(str(error))
            cursor.proceed()

        router.use("first", stage_broken, _append("stage_called", "2"), stage_error)
        router.route("/foo", route_broken, _append("routed_to", "2"), route_error)

        page = Page("/foo")
        assert _stage(router, "first", page) is None
        assert page.stage_called == ["1", "1 error"]
        assert page.routed_to == ["1", "1 error"]

    def test_stage_error_recovered_by_route_error_handler(self) -> None:
        router = Router()
        seen = []

        def broken(page: Page, params: dict, cursor: Cursor) -> None:
            cursor.fail(ValueError("from stage"))

        @error_handler
        def recover(error: Exception, page: Page, params: dict, cursor: Cursor) -> None:
            seen.append(str(error))
            cursor.proceed()

        router.use("first", broken)
        router.route("/foo", recover)

        assert _stage(router, "first", Page("/foo")) is None
        assert seen == ["from stage"]


class TestStageRegistration:
    def test_use_decorator(self) -> None:
        router = Router()

        @router.use("render")
        def layout(page: Page, params: dict, cursor: Cursor) -> None:
            page.layout = "default"
            cursor.proceed()

        page = Page("/x")
        assert _stage(router, "render", page) is None
        assert page.layout == "default"

    def test_use_appends_in_order(self) -> None:
        router = Router()
        a = router.use("s", lambda page, params, cursor: cursor.proceed())
        b = router.use("s", lambda page, params, cursor: cursor.proceed())
        assert router.stages["s"] == [a, b]
        assert a.stage == "s"
        assert a.pattern is None
