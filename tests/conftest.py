"""Shared fixtures: an app built from explicit settings and a TestClient over it."""

from collections.abc import Callable, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from catalog.api.api import create_app
from catalog.settings import AppSettings


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return AppSettings(environment="Production", content_root=tmp_path)


@pytest.fixture
def make_app(tmp_path) -> Callable[..., FastAPI]:
    def _make(**overrides) -> FastAPI:
        overrides.setdefault("environment", "Production")
        overrides.setdefault("content_root", tmp_path)
        return create_app(AppSettings(**overrides))

    return _make


@pytest.fixture
def client(settings: AppSettings) -> Iterator[TestClient]:
    with TestClient(create_app(settings)) as test_client:
        yield test_client
