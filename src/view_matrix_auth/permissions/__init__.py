"""Permission catalog, grant tables and ACL resolution for views.

Example
-------
::

    from view_matrix_auth.permissions import (
        GrantTable, MatrixStrategy, Permission, View,
    )

    administer = Permission("Overall.Administer")
    read = Permission("Overall.Read", implied_by=administer)

    global_table = GrantTable({read: {"alice"}})
    frontend = View("Frontend", GrantTable({administer: {"bob"}}))
    strategy = MatrixStrategy(global_table=global_table, views=[frontend])

    acl = strategy.get_acl(frontend)
    assert acl.has_permission("alice", read)     # global fallback
    assert acl.has_permission("bob", read)       # implied by Administer
"""
from __future__ import annotations

from view_matrix_auth.permissions.catalog import (
    CatalogConfigError,
    Permission,
    PermissionCatalog,
    PermissionGroup,
    PermissionScope,
)
from view_matrix_auth.permissions.catalog_loader import CatalogLoader
from view_matrix_auth.permissions.evaluator import (
    MAX_IMPLICATION_DEPTH,
    AccessDecision,
    AclEvaluator,
    CatalogIntegrityError,
    EvalChain,
)
from view_matrix_auth.permissions.grant_table import ANONYMOUS, GrantTable
from view_matrix_auth.permissions.strategy import MatrixStrategy, View, ViewConfigError
from view_matrix_auth.permissions.submission import (
    GrantSubmissionError,
    GrantSubmissionParser,
)

__all__ = [
    # Catalog
    "CatalogConfigError",
    "CatalogLoader",
    "Permission",
    "PermissionCatalog",
    "PermissionGroup",
    "PermissionScope",
    # Grants
    "ANONYMOUS",
    "GrantTable",
    # Evaluation
    "MAX_IMPLICATION_DEPTH",
    "AccessDecision",
    "AclEvaluator",
    "CatalogIntegrityError",
    "EvalChain",
    # Strategy
    "MatrixStrategy",
    "View",
    "ViewConfigError",
    # Form ingestion
    "GrantSubmissionError",
    "GrantSubmissionParser",
]
