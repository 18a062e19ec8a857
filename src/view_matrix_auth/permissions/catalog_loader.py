"""YAML loader for the permission catalog.

Schema
------
::

    version: "1.0"
    permissions:
      - id: "Overall.Administer"
        scopes: ["global"]
        description: "Full control"
      - id: "Overall.Read"
        implied_by: "Overall.Administer"
      - id: "View.Read"
        implied_by: "Overall.Read"
        scopes: ["view"]
      - id: "View.Configure"
        implied_by: "Overall.Administer"
        scopes: ["view"]
        enabled: true

Entries may appear in any order; ``implied_by`` may reference a permission
declared further down the list.

Example
-------
::

    loader = CatalogLoader()
    catalog = loader.load("permissions.yaml")
    assert catalog.resolve("View.Read") is not None
"""
from __future__ import annotations

import logging
from pathlib import Path

import yaml

from view_matrix_auth.permissions.catalog import (
    CatalogConfigError,
    Permission,
    PermissionCatalog,
    PermissionScope,
)

logger = logging.getLogger(__name__)

_SUPPORTED_VERSIONS: frozenset[str] = frozenset(["1.0", "1"])


class CatalogLoader:
    """Builds a :class:`PermissionCatalog` from YAML files or dicts."""

    def load(self, config_path: str | Path) -> PermissionCatalog:
        """Load a catalog from a YAML file on disk.

        Raises
        ------
        FileNotFoundError
            If the file does not exist.
        CatalogConfigError
            If the file cannot be parsed or describes an invalid catalog.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Permission catalog not found: {config_path}")

        try:
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise CatalogConfigError(
                f"Failed to parse YAML: {exc}", str(config_path)
            ) from exc

        return self._build_catalog(raw, config_path=str(config_path))

    def load_from_dict(
        self,
        config: dict[str, object],
        config_path: str | None = None,
    ) -> PermissionCatalog:
        return self._build_catalog(config, config_path=config_path)

    def load_from_yaml_string(
        self,
        yaml_string: str,
        config_path: str | None = None,
    ) -> PermissionCatalog:
        try:
            raw = yaml.safe_load(yaml_string) or {}
        except yaml.YAMLError as exc:
            raise CatalogConfigError(
                f"Failed to parse YAML string: {exc}", config_path
            ) from exc
        return self._build_catalog(raw, config_path=config_path)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_catalog(
        self,
        raw: object,
        config_path: str | None = None,
    ) -> PermissionCatalog:
        if not isinstance(raw, dict):
            raise CatalogConfigError(
                "Permission catalog must be a YAML mapping (dict).", config_path
            )

        version = str(raw.get("version", "1.0"))
        if version not in _SUPPORTED_VERSIONS:
            raise CatalogConfigError(
                f"Unsupported catalog version {version!r}. "
                f"Supported: {sorted(_SUPPORTED_VERSIONS)}.",
                config_path,
            )

        entries = raw.get("permissions")
        if not isinstance(entries, list):
            raise CatalogConfigError(
                "Permission catalog must contain a 'permissions' list.", config_path
            )

        specs: dict[str, dict[str, object]] = {}
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise CatalogConfigError(
                    f"Entry at index {index} must be a mapping; got {entry!r}.",
                    config_path,
                )
            permission_id = str(entry.get("id", "")).strip()
            if not permission_id:
                raise CatalogConfigError(
                    f"Entry at index {index} has no 'id'.", config_path
                )
            if permission_id in specs:
                raise CatalogConfigError(
                    f"Duplicate permission id {permission_id!r}.", config_path
                )
            specs[permission_id] = entry

        built: dict[str, Permission] = {}
        for permission_id in specs:
            self._build_permission(permission_id, specs, built, (), config_path)

        catalog = PermissionCatalog(
            (built[pid] for pid in specs), config_path=config_path
        )
        logger.info(
            "Loaded %d permissions from %s", len(catalog), config_path or "<dict>"
        )
        return catalog

    def _build_permission(
        self,
        permission_id: str,
        specs: dict[str, dict[str, object]],
        built: dict[str, Permission],
        path: tuple[str, ...],
        config_path: str | None,
    ) -> Permission:
        if permission_id in built:
            return built[permission_id]
        if permission_id in path:
            cycle = " -> ".join((*path, permission_id))
            raise CatalogConfigError(f"Implication cycle: {cycle}.", config_path)

        entry = specs[permission_id]
        parent: Permission | None = None
        parent_id = entry.get("implied_by")
        if parent_id is not None:
            parent_id = str(parent_id)
            if parent_id not in specs:
                raise CatalogConfigError(
                    f"Permission {permission_id!r} is implied by unknown "
                    f"permission {parent_id!r}.",
                    config_path,
                )
            parent = self._build_permission(
                parent_id, specs, built, (*path, permission_id), config_path
            )

        permission = Permission(
            id=permission_id,
            implied_by=parent,
            scopes=self._parse_scopes(permission_id, entry, config_path),
            enabled=self._parse_enabled(permission_id, entry, config_path),
            description=str(entry.get("description", "")),
        )
        built[permission_id] = permission
        return permission

    def _parse_enabled(
        self,
        permission_id: str,
        entry: dict[str, object],
        config_path: str | None,
    ) -> bool:
        enabled = entry.get("enabled", True)
        if not isinstance(enabled, bool):
            raise CatalogConfigError(
                f"Permission {permission_id!r}: 'enabled' must be a boolean, "
                f"got {enabled!r}.",
                config_path,
            )
        return enabled

    def _parse_scopes(
        self,
        permission_id: str,
        entry: dict[str, object],
        config_path: str | None,
    ) -> frozenset[PermissionScope]:
        raw_scopes = entry.get("scopes", [PermissionScope.GLOBAL.value])
        if isinstance(raw_scopes, str):
            raw_scopes = [raw_scopes]
        if not isinstance(raw_scopes, list):
            raise CatalogConfigError(
                f"Permission {permission_id!r}: 'scopes' must be a list.", config_path
            )
        try:
            return frozenset(PermissionScope(str(s)) for s in raw_scopes)
        except ValueError as exc:
            raise CatalogConfigError(
                f"Permission {permission_id!r}: {exc}. "
                f"Known scopes: {sorted(s.value for s in PermissionScope)}.",
                config_path,
            ) from exc
