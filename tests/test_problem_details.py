"""Tests for exception-to-problem-details translation."""

import logging

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from catalog.errors import (
    UnsupportedApiVersionError,
    UnsupportedOperationError,
    UpstreamUnavailableError,
)
from catalog.pipeline.problem_details import (
    ProblemDetailsMiddleware,
    build_problem,
    exception_details,
    install_problem_handlers,
    problem_type,
    status_for_exception,
)
from catalog.pipeline.request_logging import RequestLoggingMiddleware


def _failing_app(*, development: bool = False, request_logging: bool = False) -> FastAPI:
    app = FastAPI()

    @app.get("/not-implemented")
    def not_implemented() -> None:
        raise NotImplementedError("coming soon")

    @app.get("/upstream")
    def upstream() -> None:
        raise UpstreamUnavailableError("inventory service unreachable")

    @app.get("/connection")
    def connection() -> None:
        raise ConnectionRefusedError("refused")

    @app.get("/boom")
    def boom() -> None:
        try:
            {}["missing"]
        except KeyError as exc:
            raise RuntimeError("secret database password in message") from exc

    @app.get("/version")
    def version() -> None:
        raise UnsupportedApiVersionError("9.0", ["1.0"])

    @app.get("/unsupported")
    def unsupported() -> None:
        raise UnsupportedOperationError("must be handled by the host")

    @app.get("/items/{item_id}")
    def item(item_id: int) -> dict:
        return {"id": item_id}

    install_problem_handlers(app)
    if request_logging:
        app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(ProblemDetailsMiddleware, include_exception_details=development)
    return app


@pytest.fixture
def client():
    with TestClient(_failing_app()) as test_client:
        yield test_client


@pytest.fixture
def dev_client():
    with TestClient(_failing_app(development=True)) as test_client:
        yield test_client


@pytest.mark.parametrize(
    "path, status",
    [
        ("/not-implemented", 501),
        ("/upstream", 503),
        ("/connection", 503),
        ("/boom", 500),
        ("/version", 400),
    ],
)
def test_exceptions_map_to_status(client, path, status) -> None:
    response = client.get(path)

    assert response.status_code == status
    assert response.headers["content-type"] == "application/problem+json"
    problem = response.json()
    assert problem["status"] == status
    assert problem["type"] == f"https://httpstatuses.io/{status}"
    assert problem["instance"] == path


def test_server_error_detail_hidden_outside_development(client) -> None:
    problem = client.get("/boom").json()

    assert problem["title"] == "Internal Server Error"
    assert "detail" not in problem
    assert "exceptionDetails" not in problem
    assert "secret" not in str(problem)


def test_client_facing_errors_keep_their_message(client) -> None:
    problem = client.get("/version").json()
    assert "9.0" in problem["detail"]


def test_development_includes_exception_chain(dev_client) -> None:
    problem = dev_client.get("/boom").json()

    assert problem["detail"] == "secret database password in message"
    chain = problem["exceptionDetails"]
    assert [entry["type"] for entry in chain] == ["RuntimeError", "KeyError"]
    assert chain[0]["stackTrace"]


def test_unsupported_operation_is_rethrown(client) -> None:
    with pytest.raises(UnsupportedOperationError):
        client.get("/unsupported")


def test_validation_errors_become_400(client) -> None:
    response = client.get("/items/not-a-number")

    assert response.status_code == 400
    problem = response.json()
    assert problem["title"] == "Bad Request"
    assert "item_id" in problem["detail"]


def test_server_errors_are_logged(client, caplog) -> None:
    with caplog.at_level(logging.ERROR, logger="catalog.pipeline.problem_details"):
        client.get("/upstream")
    assert any("UpstreamUnavailableError" in r.getMessage() for r in caplog.records)


def test_status_lookup_prefers_specific_types() -> None:
    assert status_for_exception(ConnectionResetError()) == 503
    assert status_for_exception(NotImplementedError()) == 501
    assert status_for_exception(ValueError()) == 500


def test_build_problem_defaults_title_from_status() -> None:
    problem = build_problem(404, detail="gone")
    assert problem.title == "Not Found"
    assert problem.type == problem_type(404)


def test_exception_details_stop_on_cycles() -> None:
    first = ValueError("first")
    second = KeyError("second")
    first.__cause__ = second
    second.__cause__ = first
    assert [d.type for d in exception_details(first)] == ["ValueError", "KeyError"]


def test_request_log_records_translated_status(caplog) -> None:
    app = _failing_app(request_logging=True)
    with TestClient(app) as client, caplog.at_level(logging.INFO, logger="catalog.requests"):
        client.get("/not-implemented")

    records = [r for r in caplog.records if r.name == "catalog.requests"]
    assert [r.status_code for r in records] == [501]
