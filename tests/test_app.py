"""End-to-end dispatch tests for kima.App through the test client."""

import os
from pathlib import Path

import pytest

from conftest import write
from kima import App, AppConfig, Controller, Response
from kima.context import get_context
from kima.errors import ModuleNameError
from kima.http.headers import Headers
from kima.http.request import Request
from kima.testing import TestClient

ROUTES = {
    "/": "Index",
    "/users": "Users",
    "/users/\\d+": "User",
    "/pay": "Pay",
    "/broken": "Broken",
    "/forms": "FormOnly",
}


@pytest.fixture
def calls() -> list[str]:
    return []


@pytest.fixture
def make_app(site: Path, calls: list[str]):
    """Build an App rooted at a temporary site with the standard controllers."""

    def factory(routes=None, **config) -> App:
        app = App(ROUTES if routes is None else routes, AppConfig(root=site, **config))

        @app.controller()
        class Index(Controller):
            def get(self, params):
                calls.append("Index.get")
                return "home"

        @app.controller()
        class Users(Controller):
            def get(self, params):
                return f"users [{self.language}] {params}"

        @app.controller()
        class User(Controller):
            async def get(self, params):
                return {"id": int(params[-1])}

        @app.controller()
        class Pay(Controller):
            def get(self, params):
                calls.append("Pay.get")
                return "paid"

        @app.controller()
        class Broken(Controller):
            def get(self, params):
                raise ValueError("database on fire")

        @app.controller()
        class FormOnly(Controller):
            def post(self, params):
                calls.append("FormOnly.post")
                return "posted"

        return app

    return factory


class TestDispatch:
    async def test_root(self, make_app) -> None:
        async with TestClient(make_app()) as client:
            response = await client.get("/")
        assert response.status == 200
        assert response.text == "home"

    async def test_url_parameters_reach_handler(self, make_app) -> None:
        async with TestClient(make_app()) as client:
            response = await client.get("/users/42")
        assert response.status == 200
        assert response.content_type == "application/json"
        assert response.text == '{"id": 42}'

    async def test_anchored_segment_does_not_match(self, make_app) -> None:
        async with TestClient(make_app()) as client:
            response = await client.get("/users/42a")
        assert response.status == 404

    async def test_query_string_is_not_a_parameter(self, make_app) -> None:
        async with TestClient(make_app()) as client:
            response = await client.get("/users?page=2")
        assert response.text == "users [] ['users']"

    async def test_context_is_published(self, make_app) -> None:
        seen = {}
        app = make_app({"/ctx/\\w+": "Ctx"})

        @app.controller()
        class Ctx(Controller):
            def get(self, params):
                ctx = get_context()
                seen.update(controller=ctx.controller, method=ctx.method, params=params)
                return ""

        async with TestClient(app) as client:
            await client.get("/ctx/abc")
        assert seen == {"controller": "Ctx", "method": "get", "params": ["ctx", "abc"]}

    async def test_response_tuple_sets_status(self, make_app) -> None:
        app = make_app({"/new": "Create"})

        @app.controller()
        class Create(Controller):
            def get(self, params):
                return "created", 201

        async with TestClient(app) as client:
            response = await client.get("/new")
        assert response.status == 201

    async def test_head_has_no_body(self, make_app) -> None:
        app = make_app({"/": "Page"})

        @app.controller()
        class Page(Controller):
            def head(self, params):
                return "ignored body"

        async with TestClient(app) as client:
            response = await client.head("/")
        assert response.status == 200
        assert response.body == b""


class TestControllerFromFolder:
    async def test_loads_conventional_file(self, site: Path) -> None:
        write(
            site / "application" / "controller" / "About.py",
            "from kima.controller import Controller\n\n\n"
            "class About(Controller):\n"
            "    def get(self, params):\n"
            "        return 'about us'\n",
        )
        app = App({"/about": "About"}, AppConfig(root=site))
        async with TestClient(app) as client:
            response = await client.get("/about")
        assert response.text == "about us"

    async def test_missing_controller_file_is_fatal(self, site: Path) -> None:
        app = App({"/ghost": "Ghost"}, AppConfig(root=site))
        async with TestClient(app) as client:
            response = await client.get("/ghost")
        assert response.status == 500


class TestLanguage:
    async def test_language_prefix_is_consumed(self, make_app) -> None:
        app = make_app(default_language="en", languages=("en", "es"))
        async with TestClient(app) as client:
            response = await client.get("/es/users")
        assert response.text == "users [es] ['users']"

    async def test_default_language_prefix_is_kept(self, make_app) -> None:
        app = make_app(default_language="en", languages=("en", "es"))
        async with TestClient(app) as client:
            response = await client.get("/en/users")
        assert response.status == 404

    async def test_no_prefix_uses_default(self, make_app) -> None:
        app = make_app(default_language="en", languages=("en", "es"))
        async with TestClient(app) as client:
            response = await client.get("/users")
        assert response.text == "users [en] ['users']"


class TestErrors:
    async def test_not_found_default_page(self, make_app) -> None:
        async with TestClient(make_app()) as client:
            response = await client.get("/nowhere")
        assert response.status == 404
        assert response.text == "Not Found"

    async def test_error_controller_renders_404(self, make_app) -> None:
        app = make_app()
        received = []

        @app.controller()
        class Error(Controller):
            def get(self, params):
                received.append(params)
                return f"custom {get_context().controller}"

        async with TestClient(app) as client:
            response = await client.get("/no/such/page")
        assert response.status == 404
        assert response.text == "custom Error"
        assert received == [["no", "such", "page"]]

    async def test_error_controller_may_choose_status(self, make_app) -> None:
        app = make_app()

        @app.controller()
        class Error(Controller):
            def get(self, params):
                return Response("gone", status=410)

        async with TestClient(app) as client:
            response = await client.get("/nowhere")
        assert response.status == 410

    async def test_error_controller_without_get_falls_back(self, make_app) -> None:
        app = make_app()

        @app.controller()
        class Error(Controller):
            def post(self, params):
                return "never"

        async with TestClient(app) as client:
            response = await client.get("/nowhere")
        assert response.status == 404
        assert response.text == "Not Found"

    async def test_method_not_allowed(self, make_app, calls: list[str]) -> None:
        async with TestClient(make_app()) as client:
            response = await client.get("/forms")
        assert response.status == 405
        assert response.header("allow") == "POST"
        assert calls == []

    async def test_post_to_get_only_controller(self, make_app, calls: list[str]) -> None:
        async with TestClient(make_app()) as client:
            response = await client.post("/pay")
        assert response.status == 405
        assert response.header("allow") == "GET"
        assert calls == []

    async def test_method_dispatch(self, make_app, calls: list[str]) -> None:
        async with TestClient(make_app()) as client:
            response = await client.post("/forms")
        assert response.text == "posted"
        assert calls == ["FormOnly.post"]

    async def test_unexpected_exception_is_500(self, make_app) -> None:
        async with TestClient(make_app()) as client:
            response = await client.get("/broken")
        assert response.status == 500
        assert response.text == "Internal Server Error"

    async def test_debug_shows_diagnostic(self, make_app) -> None:
        async with TestClient(make_app(debug=True)) as client:
            response = await client.get("/broken")
        assert response.status == 500
        assert "ValueError: database on fire" in response.text

    async def test_unsupported_return_value_is_500(self, make_app) -> None:
        app = make_app({"/": "Odd"})

        @app.controller()
        class Odd(Controller):
            def get(self, params):
                return object()

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 500


class TestModules:
    async def test_module_from_configured_header(self, make_app) -> None:
        app = make_app({"/": "Index", "shop": {"/cart": "Cart"}}, module_header="x-module")

        @app.controller("Cart", module="shop")
        class ShopCart(Controller):
            def get(self, params):
                return f"cart in {get_context().module}"

        async with TestClient(app, headers={"X-Module": "shop"}) as client:
            response = await client.get("/cart")
        assert response.text == "cart in shop"

    async def test_module_header_ignored_by_default(self, make_app) -> None:
        async with TestClient(make_app(), headers={"X-Module": "blog"}) as client:
            response = await client.get("/")
        assert response.status == 200
        assert response.text == "home"

    async def test_module_from_environment(
        self, make_app, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        app = make_app({"/": "Index", "shop": {"/": "Catalog"}}, module_header="x-module")

        @app.controller("Catalog", module="shop")
        class Catalog(Controller):
            def get(self, params):
                return "catalog"

        monkeypatch.setenv("MODULE", "shop")
        async with TestClient(app, headers={"X-Module": "blog"}) as client:
            response = await client.get("/")
        assert response.text == "catalog"

    async def test_module_without_routes_is_fatal(
        self, make_app, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("MODULE", "blog")
        async with TestClient(make_app()) as client:
            response = await client.get("/")
        assert response.status == 500

    async def test_module_bootstrap_runs_before_routes_check(
        self, make_app, site: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        marker = site / "booted"
        write(
            site / "application" / "module" / "blog" / "bootstrap.py",
            "from pathlib import Path\n\n\n"
            "class Bootstrap:\n"
            "    def mark(self):\n"
            f"        Path({str(marker)!r}).write_text('blog')\n",
        )
        monkeypatch.setenv("MODULE", "blog")
        async with TestClient(make_app()) as client:
            response = await client.get("/")
        assert response.status == 500
        assert marker.read_text() == "blog"

    async def test_module_name_outside_application_is_rejected(
        self, make_app, site: Path, tmp_path_factory: pytest.TempPathFactory
    ) -> None:
        outside = tmp_path_factory.mktemp("outside")
        marker = outside / "ran"
        write(
            outside / "bootstrap.py",
            "from pathlib import Path\n\n\n"
            "class Bootstrap:\n"
            "    def mark(self):\n"
            f"        Path({str(marker)!r}).write_text('yes')\n",
        )
        escape = os.path.relpath(outside, site / "application" / "module")
        app = make_app(module_header="x-module")
        async with TestClient(app, headers={"X-Module": escape}) as client:
            response = await client.get("/")
        assert response.status == 500
        assert not marker.exists()

    async def test_module_error_controller(self, make_app) -> None:
        app = make_app({"shop": {"/": "Catalog"}}, module_header="x-module")

        @app.controller("Error", module="shop")
        class ShopError(Controller):
            def get(self, params):
                return "shop error page"

        async with TestClient(app, headers={"X-Module": "shop"}) as client:
            response = await client.get("/missing")
        assert response.status == 404
        assert response.text == "shop error page"


class TestHttpsPolicy:
    async def test_https_controller_redirects_plain_request(
        self, make_app, calls: list[str]
    ) -> None:
        app = make_app()
        app.set_https_controllers(["Pay"])
        async with TestClient(app) as client:
            response = await client.get("/pay?amount=10")
        assert response.status == 302
        assert response.header("location") == "https://testserver/pay?amount=10"
        assert calls == []

    async def test_https_controller_served_over_https(self, make_app, calls: list[str]) -> None:
        app = make_app(https_controllers=("Pay",))
        async with TestClient(app, scheme="https", port=443) as client:
            response = await client.get("/pay")
        assert response.status == 200
        assert calls == ["Pay.get"]

    async def test_other_controllers_go_back_to_http(self, make_app, calls: list[str]) -> None:
        app = make_app(https_controllers=("Pay",))
        async with TestClient(app, scheme="https", port=443) as client:
            response = await client.get("/")
        assert response.status == 302
        assert response.header("location") == "http://testserver/"
        assert calls == []

    async def test_port_443_counts_as_https(self, make_app) -> None:
        app = make_app(https_controllers=("Pay",))
        async with TestClient(app, port=443) as client:
            response = await client.get("/pay")
        assert response.status == 200

    async def test_enforced_https_redirects_everything(self, make_app) -> None:
        app = make_app().enforce_https()
        async with TestClient(app) as client:
            response = await client.get("/users")
        assert response.status == 302
        assert response.header("location") == "https://testserver/users"

    async def test_enforced_https_serves_https(self, make_app) -> None:
        app = make_app(enforce_https=True)
        async with TestClient(app, scheme="https", port=443) as client:
            response = await client.get("/")
        assert response.status == 200

    async def test_redirect_status_is_configurable(self, make_app) -> None:
        app = make_app(enforce_https=True, https_redirect_status=301)
        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 301

    async def test_unmatched_path_is_404_not_redirect(self, make_app) -> None:
        app = make_app(enforce_https=True)
        async with TestClient(app) as client:
            response = await client.get("/nowhere")
        assert response.status == 404


class TestHooks:
    async def test_bootstrap_then_predispatcher_then_controller(self, make_app) -> None:
        order: list[str] = []
        app = make_app({"/": "Home"})

        class Boot:
            def first(self):
                order.append("bootstrap")

        class Pre:
            async def check(self):
                order.append(f"predispatch {get_context().controller}")

        @app.controller()
        class Home(Controller):
            def get(self, params):
                order.append("controller")
                return ""

        app.set_bootstrap(Boot).set_predispatcher(Pre)
        async with TestClient(app) as client:
            await client.get("/")
        assert order == ["bootstrap", "predispatch Home", "controller"]

    async def test_predispatcher_skipped_without_match(self, make_app) -> None:
        order: list[str] = []

        class Pre:
            def check(self):
                order.append("predispatch")

        app = make_app().set_predispatcher(Pre)
        async with TestClient(app) as client:
            response = await client.get("/nowhere")
        assert response.status == 404
        assert order == []

    async def test_predispatcher_runs_before_https_redirect(
        self, make_app, calls: list[str]
    ) -> None:
        class Pre:
            def check(self):
                calls.append(f"predispatch {get_context().controller}")

        app = make_app(https_controllers=("Pay",)).set_predispatcher(Pre)
        async with TestClient(app) as client:
            response = await client.get("/pay")
        assert response.status == 302
        assert response.header("location") == "https://testserver/pay"
        assert calls == ["predispatch Pay"]

    async def test_bootstrap_file_runs(self, make_app, site: Path) -> None:
        marker = site / "booted"
        write(
            site / "application" / "bootstrap.py",
            "from pathlib import Path\n\n\n"
            "class Bootstrap:\n"
            "    def mark(self):\n"
            f"        Path({str(marker)!r}).write_text('yes')\n",
        )
        async with TestClient(make_app()) as client:
            response = await client.get("/")
        assert response.status == 200
        assert marker.read_text() == "yes"

    async def test_bootstrap_file_without_class_is_fatal(self, make_app, site: Path) -> None:
        write(site / "application" / "bootstrap.py", "VALUE = 1\n")
        async with TestClient(make_app()) as client:
            response = await client.get("/")
        assert response.status == 500

    async def test_unresolvable_predispatcher_fails_at_freeze(self, make_app) -> None:
        app = make_app(predispatcher="nonexistent_module_xyz:Pre")
        with pytest.raises(Exception, match="not accessible"):
            async with TestClient(app):
                pass


class TestSetup:
    def test_setup_derives_context(self, make_app) -> None:
        app = make_app(default_language="en", module_header="x-module")
        request = Request(
            method="POST",
            path="/",
            headers=Headers.from_dict({"x-module": "shop"}),
            scheme="https",
            server=("example.com", 443),
        )
        context = app.setup(request)
        assert context.module == "shop"
        assert context.method == "post"
        assert context.is_https is True
        assert context.language == "en"
        assert context.span is None

    def test_setup_rejects_path_like_module(self, make_app) -> None:
        app = make_app(module_header="x-module")
        request = Request(
            method="GET", path="/", headers=Headers.from_dict({"x-module": "../../etc"})
        )
        with pytest.raises(ModuleNameError):
            app.setup(request)

    async def test_failed_freeze_without_lifespan_is_500(self, make_app) -> None:
        app = make_app(predispatcher="nonexistent_module_xyz:Pre")
        request = Request(method="GET", path="/", headers=Headers())
        response = await app.run(request)
        assert response.status == 500

    async def test_app_is_frozen_after_first_request(self, make_app) -> None:
        app = make_app()
        async with TestClient(app) as client:
            await client.get("/")
        with pytest.raises(RuntimeError, match="Cannot modify the app"):
            app.enforce_https()

    async def test_run_without_asgi(self, make_app) -> None:
        app = make_app()
        request = Request(method="GET", path="/users", headers=Headers())
        response = await app.run(request)
        assert response.text == "users [] ['users']"

    def test_time_zone(self, make_app) -> None:
        assert make_app(time_zone="UTC").time_zone == "UTC"
        assert make_app().time_zone

    def test_config_from_file(self, site: Path) -> None:
        path = site / "kima.toml"
        path.write_text('[language]\ndefault = "es"\navailable = ["es", "en"]\n')
        app = App({}, path)
        assert app.config.default_language == "es"

    def test_db_not_configured(self, make_app) -> None:
        with pytest.raises(RuntimeError, match="No database configured"):
            _ = make_app().db


class TestLifespan:
    async def test_startup_and_shutdown(self, make_app) -> None:
        app = make_app()
        messages = iter([{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}])
        sent: list[dict] = []

        async def receive():
            return next(messages)

        async def send(message):
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)
        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]

    async def test_startup_failure_is_reported(self, make_app) -> None:
        app = make_app({"/(": "Bad"})
        sent: list[dict] = []

        async def receive():
            return {"type": "lifespan.startup"}

        async def send(message):
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)
        assert sent[0]["type"] == "lifespan.startup.failed"
