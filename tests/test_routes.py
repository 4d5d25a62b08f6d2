"""
Tests for route wiring.
"""
import inspect

from fastapi.routing import APIRoute

from apkdepot.main import app


def test_api_handlers_run_in_threadpool():
    """Handlers hash passwords and use blocking sessions, so none may be a coroutine."""
    handlers = [
        route for route in app.routes
        if isinstance(route, APIRoute) and route.path.startswith("/api/v1")
    ]

    assert handlers
    assert [route.path for route in handlers if inspect.iscoroutinefunction(route.endpoint)] == []


def test_version_routes_are_registered():
    paths = {route.path for route in app.routes if isinstance(route, APIRoute)}

    assert "/api/v1/application/{application_id}/version" in paths
    assert "/api/v1/application/{application_id}/version/latest" in paths
    assert "/api/v1/application/{application_id}/version/{version_code}/apk" in paths
