"""Tests for PermissionCatalog and CatalogLoader."""
from __future__ import annotations

import pathlib

import pytest

from view_matrix_auth.permissions.catalog import (
    CatalogConfigError,
    Permission,
    PermissionCatalog,
    PermissionScope,
)
from view_matrix_auth.permissions.catalog_loader import CatalogLoader


# ---------------------------------------------------------------------------
# Permission
# ---------------------------------------------------------------------------

class TestPermission:
    def test_group_and_name(self) -> None:
        permission = Permission("View.Configure")
        assert permission.group == "View"
        assert permission.name == "Configure"

    def test_id_without_group(self) -> None:
        permission = Permission("Root")
        assert permission.group == ""
        assert permission.name == "Root"

    def test_equality_by_id(self) -> None:
        assert Permission("View.Read") == Permission("View.Read", enabled=False)
        assert hash(Permission("View.Read")) == hash(Permission("View.Read"))

    def test_ancestors_nearest_first(self) -> None:
        root = Permission("Overall.Administer")
        middle = Permission("View.Configure", implied_by=root)
        leaf = Permission("View.Read", implied_by=middle)
        assert [p.id for p in leaf.ancestors()] == ["View.Configure", "Overall.Administer"]

    def test_default_scope_is_global(self) -> None:
        assert Permission("X.Y").is_contained_by(PermissionScope.GLOBAL)


# ---------------------------------------------------------------------------
# PermissionCatalog
# ---------------------------------------------------------------------------

class TestPermissionCatalog:
    def test_resolve_known(self, catalog: PermissionCatalog) -> None:
        permission = catalog.resolve("View.Read")
        assert permission is not None
        assert permission.implied_by is not None
        assert permission.implied_by.id == "View.Configure"

    def test_resolve_unknown_returns_none(self, catalog: PermissionCatalog) -> None:
        assert catalog.resolve("View.Missing") is None

    def test_contains_and_len(self, catalog: PermissionCatalog) -> None:
        assert "Overall.Read" in catalog
        assert "Nope" not in catalog
        assert len(catalog) == 7

    def test_iteration_in_declaration_order(self, catalog: PermissionCatalog) -> None:
        assert [p.id for p in catalog][:2] == ["Overall.Administer", "Overall.Read"]

    def test_duplicate_id_raises(self) -> None:
        with pytest.raises(CatalogConfigError, match="Duplicate"):
            PermissionCatalog([Permission("A.B"), Permission("A.B")])

    def test_missing_parent_raises(self) -> None:
        orphan = Permission("A.Child", implied_by=Permission("A.Parent"))
        with pytest.raises(CatalogConfigError, match="unknown"):
            PermissionCatalog([orphan])

    def test_groups_for_view_scope(self, catalog: PermissionCatalog) -> None:
        names = [g.name for g in catalog.groups_for_scope(PermissionScope.VIEW)]
        assert names == ["View"]

    def test_show_permission_hides_disabled(self, catalog: PermissionCatalog) -> None:
        delete = catalog.resolve("View.Delete")
        read = catalog.resolve("View.Read")
        assert delete is not None and read is not None
        assert catalog.show_permission(read, PermissionScope.VIEW) is True
        assert catalog.show_permission(delete, PermissionScope.VIEW) is False

    def test_show_permission_requires_scope(self, catalog: PermissionCatalog) -> None:
        build = catalog.resolve("Item.Build")
        assert build is not None
        assert catalog.show_permission(build, PermissionScope.VIEW) is False


# ---------------------------------------------------------------------------
# CatalogLoader
# ---------------------------------------------------------------------------

class TestCatalogLoader:
    def test_forward_reference_allowed(self) -> None:
        catalog = CatalogLoader().load_from_dict(
            {
                "permissions": [
                    {"id": "View.Read", "implied_by": "Overall.Administer"},
                    {"id": "Overall.Administer"},
                ]
            }
        )
        read = catalog.resolve("View.Read")
        assert read is not None
        assert read.implied_by is catalog.resolve("Overall.Administer")

    def test_cycle_raises(self) -> None:
        with pytest.raises(CatalogConfigError, match="cycle"):
            CatalogLoader().load_from_dict(
                {
                    "permissions": [
                        {"id": "A.One", "implied_by": "A.Two"},
                        {"id": "A.Two", "implied_by": "A.One"},
                    ]
                }
            )

    def test_unknown_parent_raises(self) -> None:
        with pytest.raises(CatalogConfigError, match="unknown permission"):
            CatalogLoader().load_from_dict(
                {"permissions": [{"id": "A.One", "implied_by": "A.Ghost"}]}
            )

    def test_missing_permissions_list_raises(self) -> None:
        with pytest.raises(CatalogConfigError, match="permissions"):
            CatalogLoader().load_from_dict({"version": "1.0"})

    def test_unsupported_version_raises(self) -> None:
        with pytest.raises(CatalogConfigError, match="version"):
            CatalogLoader().load_from_dict({"version": "9", "permissions": []})

    def test_unknown_scope_raises(self) -> None:
        with pytest.raises(CatalogConfigError, match="scopes"):
            CatalogLoader().load_from_dict(
                {"permissions": [{"id": "A.One", "scopes": ["galaxy"]}]}
            )

    def test_non_bool_enabled_raises(self) -> None:
        with pytest.raises(CatalogConfigError, match="enabled"):
            CatalogLoader().load_from_yaml_string(
                "permissions:\n  - id: A.One\n    enabled: \"false\"\n"
            )

    def test_entry_without_id_raises(self) -> None:
        with pytest.raises(CatalogConfigError, match="no 'id'"):
            CatalogLoader().load_from_dict({"permissions": [{"scopes": ["view"]}]})

    def test_scope_string_accepted(self) -> None:
        catalog = CatalogLoader().load_from_dict(
            {"permissions": [{"id": "View.Read", "scopes": "view"}]}
        )
        read = catalog.resolve("View.Read")
        assert read is not None
        assert read.scopes == frozenset({PermissionScope.VIEW})

    def test_load_from_yaml_string(self) -> None:
        catalog = CatalogLoader().load_from_yaml_string(
            "permissions:\n  - id: Overall.Administer\n  - id: Overall.Read\n"
            "    implied_by: Overall.Administer\n"
        )
        assert len(catalog) == 2

    def test_invalid_yaml_raises(self) -> None:
        with pytest.raises(CatalogConfigError, match="parse"):
            CatalogLoader().load_from_yaml_string("permissions: [unclosed")

    def test_load_file(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "permissions.yaml"
        path.write_text("permissions:\n  - id: Overall.Administer\n", encoding="utf-8")
        catalog = CatalogLoader().load(path)
        assert "Overall.Administer" in catalog

    def test_load_missing_file_raises(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(FileNotFoundError):
            CatalogLoader().load(tmp_path / "absent.yaml")
