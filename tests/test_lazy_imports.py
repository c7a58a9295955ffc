"""The HTTP layer is only imported when an application is actually built."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

import pytest


@pytest.fixture()
def fresh_package():
    saved = {name: module for name, module in sys.modules.items() if name.split(".")[0] == "userstore"}
    for name in saved:
        del sys.modules[name]
    try:
        yield
    finally:
        for name in [m for m in sys.modules if m.split(".")[0] == "userstore"]:
            del sys.modules[name]
        sys.modules.update(saved)


def test_importing_package_does_not_load_api(fresh_package) -> None:
    package = importlib.import_module("userstore")

    assert hasattr(package, "UserRepository")
    assert "userstore.api" not in sys.modules


def test_create_app_loads_api_on_demand(fresh_package, tmp_path: Path) -> None:
    package = importlib.import_module("userstore")
    factory = package.ConnectionFactory(tmp_path / "app.db")
    factory.initialize()

    app = package.create_app(package.UserRepository(factory))

    assert "userstore.api" in sys.modules
    assert isinstance(app.state.repository, package.AsyncUserRepository)
