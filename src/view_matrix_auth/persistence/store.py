"""YAML persistence for a whole :class:`MatrixStrategy`.

Schema
------
::

    version: "1"
    global:
      - permission: "Overall.Administer:admin"
      - permission: "Overall.Read:anonymous"
    views:
      Frontend:
        - blocksInheritance: "true"
        - permission: "View.Read:alice"
      Backend:                       # legacy field dump, still accepted
        grantedPermissions:
          View.Read: [bob]
        sids: [bob]
      Drafts: null                   # view without a grant table

``global`` may be omitted (no global table: views without a local table
deny everything). Record problems are collected on the returned
:class:`DecodeContext`; only structural problems raise.
"""
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

import yaml

from view_matrix_auth.permissions.catalog import PermissionCatalog
from view_matrix_auth.permissions.grant_table import GrantTable
from view_matrix_auth.permissions.strategy import MatrixStrategy, View
from view_matrix_auth.persistence.codec import (
    DecodeContext,
    GrantTableCodec,
    records_from_document,
    records_to_document,
)

logger = logging.getLogger(__name__)

_SUPPORTED_VERSIONS: frozenset[str] = frozenset(["1.0", "1"])


class StoreFormatError(ValueError):
    """Raised when a matrix document is structurally invalid.

    Attributes
    ----------
    source:
        The file or label the document was read from, if known.
    """

    def __init__(self, message: str, source: str | None = None) -> None:
        self.source = source
        prefix = f"[{source}] " if source else ""
        super().__init__(f"{prefix}{message}")


class MatrixStore:
    """Loads and saves matrix strategies as YAML documents.

    Parameters
    ----------
    catalog:
        Used to resolve permission ids while decoding.
    """

    def __init__(self, catalog: PermissionCatalog) -> None:
        self._codec = GrantTableCodec(catalog)

    @property
    def codec(self) -> GrantTableCodec:
        return self._codec

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, path: str | Path) -> tuple[MatrixStrategy, DecodeContext]:
        """Load a strategy from a YAML file.

        Raises
        ------
        FileNotFoundError
            If ``path`` does not exist.
        StoreFormatError
            If the file is not valid YAML or not a matrix document.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Matrix document not found: {path}")
        with path.open("r", encoding="utf-8") as fh:
            text = fh.read()
        return self.load_string(text, source=str(path))

    def load_string(
        self,
        yaml_content: str,
        source: str | None = None,
    ) -> tuple[MatrixStrategy, DecodeContext]:
        try:
            raw = yaml.safe_load(yaml_content) or {}
        except yaml.YAMLError as exc:
            raise StoreFormatError(f"Failed to parse YAML: {exc}", source) from exc
        return self.load_from_dict(raw, source=source)

    def load_from_dict(
        self,
        raw: object,
        source: str | None = None,
    ) -> tuple[MatrixStrategy, DecodeContext]:
        if not isinstance(raw, dict):
            raise StoreFormatError("Matrix document must be a mapping.", source)

        version = str(raw.get("version", "1"))
        if version not in _SUPPORTED_VERSIONS:
            raise StoreFormatError(
                f"Unsupported document version {version!r}. "
                f"Supported: {sorted(_SUPPORTED_VERSIONS)}.",
                source,
            )

        raw_views = raw.get("views") or {}
        if not isinstance(raw_views, dict):
            raise StoreFormatError("'views' must be a mapping of name to records.", source)

        context = DecodeContext()
        global_table: GrantTable | None = None
        if raw.get("global") is not None:
            global_table = self._decode_node(raw["global"], context, "global", source)

        views: list[View] = []
        for name, node in raw_views.items():
            label = f"views.{name}"
            table = None if node is None else self._decode_node(node, context, label, source)
            views.append(View(str(name), table))

        strategy = MatrixStrategy(global_table=global_table, views=views)
        logger.info(
            "Loaded matrix from %s: global=%s views=%d skipped=%d",
            source or "<dict>",
            "yes" if global_table is not None else "no",
            len(views),
            len(context.warnings),
        )
        return strategy, context

    def _decode_node(
        self,
        node: object,
        context: DecodeContext,
        label: str,
        source: str | None,
    ) -> GrantTable:
        try:
            records = records_from_document(node, context, label)
        except ValueError as exc:
            raise StoreFormatError(f"{label}: {exc}", source) from exc
        return self._codec.decode(records, context, source=label)

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def to_dict(self, strategy: MatrixStrategy) -> dict[str, object]:
        document: dict[str, object] = {"version": "1"}
        if strategy.global_table is not None:
            document["global"] = records_to_document(self._codec.encode(strategy.global_table))
        views: dict[str, object] = {}
        for view in strategy.views():
            table = view.grant_table
            views[view.name] = (
                None if table is None else records_to_document(self._codec.encode(table))
            )
        document["views"] = views
        return document

    def dump(self, strategy: MatrixStrategy) -> str:
        return yaml.safe_dump(
            self.to_dict(strategy),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )

    def save(self, strategy: MatrixStrategy, path: str | Path) -> None:
        """Write ``strategy`` to ``path``, replacing the file atomically."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        content = self.dump(strategy)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.info("Saved matrix to %s", path)
