"""view-matrix-auth - per-view permission matrix authorization.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import view_matrix_auth as vma
>>> catalog = vma.CatalogLoader().load_from_dict({
...     "permissions": [
...         {"id": "Overall.Administer"},
...         {"id": "View.Read", "implied_by": "Overall.Administer", "scopes": ["view"]},
...     ]
... })
>>> strategy, _ = vma.MatrixStore(catalog).load_from_dict({
...     "global": [{"permission": "Overall.Administer:admin"}],
...     "views": {"Frontend": [{"permission": "View.Read:alice"}]},
... })
>>> acl = strategy.get_acl_for("Frontend")
>>> acl.has_permission("admin", catalog.resolve("View.Read"))
True
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------
from view_matrix_auth.permissions.catalog import (
    CatalogConfigError,
    Permission,
    PermissionCatalog,
    PermissionGroup,
    PermissionScope,
)
from view_matrix_auth.permissions.catalog_loader import CatalogLoader
from view_matrix_auth.permissions.evaluator import (
    AccessDecision,
    AclEvaluator,
    CatalogIntegrityError,
    EvalChain,
)
from view_matrix_auth.permissions.grant_table import GrantTable
from view_matrix_auth.permissions.strategy import MatrixStrategy, View, ViewConfigError
from view_matrix_auth.permissions.submission import (
    GrantSubmissionError,
    GrantSubmissionParser,
)

# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------
from view_matrix_auth.persistence.codec import (
    DecodeContext,
    DecodeWarning,
    GrantTableCodec,
    Record,
)
from view_matrix_auth.persistence.store import MatrixStore, StoreFormatError

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
from view_matrix_auth.config import ConfigLoader, MatrixAuthConfig

__all__ = [
    "__version__",
    # Permissions
    "AccessDecision",
    "AclEvaluator",
    "CatalogConfigError",
    "CatalogIntegrityError",
    "CatalogLoader",
    "EvalChain",
    "GrantSubmissionError",
    "GrantSubmissionParser",
    "GrantTable",
    "MatrixStrategy",
    "Permission",
    "PermissionCatalog",
    "PermissionGroup",
    "PermissionScope",
    "View",
    "ViewConfigError",
    # Persistence
    "DecodeContext",
    "DecodeWarning",
    "GrantTableCodec",
    "MatrixStore",
    "Record",
    "StoreFormatError",
    # Configuration
    "ConfigLoader",
    "MatrixAuthConfig",
]
