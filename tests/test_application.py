import logging

import pytest
from fastapi.testclient import TestClient

from conftest import DB_ENV, FakePool, configured_app, make_settings
from hlf_lab.core.application import ApplicationBuilder, create_application


def test_unknown_path_echoes_path(unconfigured_client):
    r = unconfigured_client.get("/does/not/exist")
    assert r.status_code == 404
    assert r.json() == {"error": "Not found", "path": "/does/not/exist"}


@pytest.mark.parametrize("method, path", [
    ("GET", "/db/write-test"),
    ("POST", "/health"),
    ("DELETE", "/"),
])
def test_wrong_method_is_not_found(unconfigured_client, method, path):
    r = unconfigured_client.request(method, path)
    assert r.status_code == 404
    assert r.json() == {"error": "Not found", "path": path}


def test_unhandled_exception_returns_500():
    app = create_application(make_settings())

    @app.get("/boom")
    def boom():
        raise RuntimeError("kaboom")

    client = TestClient(app, raise_server_exceptions=False)
    r = client.get("/boom")

    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error", "message": "kaboom"}


def test_error_details_can_be_hidden():
    app = create_application(make_settings(EXPOSE_ERROR_DETAILS=False))

    @app.get("/boom")
    def boom():
        raise RuntimeError("secret internals")

    client = TestClient(app, raise_server_exceptions=False)
    r = client.get("/boom")

    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error"}


def test_unconfigured_app_has_no_pool():
    app = create_application(make_settings())
    assert app.state.pool is None
    assert app.state.pool_config.is_configured is False


def test_shutdown_closes_pool_once():
    pool = FakePool()
    app = configured_app(pool)

    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert app.state.startup_probe is not None
        assert pool.close_calls == 0

    assert pool.close_calls == 1


def test_startup_does_not_gate_readiness():
    pool = FakePool(probe_ok=False)
    app = configured_app(pool)

    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert client.get("/ready").status_code == 503


def test_builder_requires_every_step():
    builder = ApplicationBuilder(make_settings()).add_request_logging_middleware().finalize_middlewares()
    with pytest.raises(RuntimeError):
        builder.build()


def test_bad_pool_setting_does_not_stop_startup():
    app = create_application(make_settings(DB_CONNECTION_LIMIT="ten", **DB_ENV))

    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        r = client.get("/ready")
        assert r.status_code == 503
        assert r.json()["checks"]["database"] is False

    assert app.state.pool.probe().error.code == "POOL_CLOSED"


def test_pool_created_logged_only_on_success(caplog):
    with caplog.at_level(logging.INFO, logger="hlf_lab"):
        ApplicationBuilder(make_settings(DB_QUEUE_UNBOUNDED="maybe", **DB_ENV))
    messages = [record.getMessage() for record in caplog.records]
    assert "Failed to create database connection pool" in messages
    assert "Database connection pool created" not in messages

    caplog.clear()
    with caplog.at_level(logging.INFO, logger="hlf_lab"):
        builder = ApplicationBuilder(make_settings(**DB_ENV))
    builder.pool.close()
    messages = [record.getMessage() for record in caplog.records]
    assert "Database connection pool created" in messages
