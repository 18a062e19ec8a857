"""Shared fixtures: a small permission catalog used across the test suite."""
from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from view_matrix_auth.permissions.catalog import PermissionCatalog
from view_matrix_auth.permissions.catalog_loader import CatalogLoader

CATALOG_CONFIG: dict[str, object] = {
    "version": "1.0",
    "permissions": [
        {"id": "Overall.Administer", "scopes": ["global"]},
        {"id": "Overall.Read", "implied_by": "Overall.Administer", "scopes": ["global"]},
        {"id": "View.Configure", "implied_by": "Overall.Administer", "scopes": ["view"]},
        {"id": "View.Read", "implied_by": "View.Configure", "scopes": ["view"]},
        {"id": "View.Write", "implied_by": "View.Configure", "scopes": ["view"]},
        {"id": "View.Delete", "implied_by": "View.Configure", "scopes": ["view"], "enabled": False},
        {"id": "Item.Build", "implied_by": "Overall.Administer", "scopes": ["item"]},
    ],
}


@pytest.fixture()
def catalog() -> PermissionCatalog:
    return CatalogLoader().load_from_dict(CATALOG_CONFIG)


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    package_logger = logging.getLogger("view_matrix_auth")
    level = package_logger.level
    yield
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(level)
