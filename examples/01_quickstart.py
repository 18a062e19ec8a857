#!/usr/bin/env python3
"""Example: Quickstart - view-matrix-auth

Minimal working example: load a permission catalog, attach grant tables
to views, and check access with and without global inheritance.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install view-matrix-auth
"""
from __future__ import annotations

import view_matrix_auth as vma


def main() -> None:
    print(f"view-matrix-auth version: {vma.__version__}")

    # Step 1: Load the permission catalog
    catalog = vma.CatalogLoader().load_from_dict({
        "permissions": [
            {"id": "Overall.Administer"},
            {"id": "Overall.Read", "implied_by": "Overall.Administer"},
            {"id": "View.Read", "implied_by": "Overall.Administer", "scopes": ["view"]},
            {"id": "View.Write", "implied_by": "Overall.Administer", "scopes": ["view"]},
        ]
    })
    read = catalog.resolve("View.Read")
    assert read is not None
    print(f"Catalog ready: {len(catalog)} permissions")

    # Step 2: Load the global table and per-view tables
    strategy, context = vma.MatrixStore(catalog).load_from_dict({
        "global": [{"permission": "View.Read:alice"}],
        "views": {
            "R": [{"permission": "View.Write:bob"}],
            "Legacy": [{"permission": "View.Removed:carol"}],
        },
    })
    print(f"Skipped records: {len(context.warnings)}")

    # Step 3: Check access
    view = strategy.get_view("R")
    assert view is not None
    for principal in ("alice", "bob"):
        allowed = strategy.get_acl(view).has_permission(principal, read)
        print(f"  {principal:<6} View.Read on R -> {'ALLOW' if allowed else 'DENY'}")

    # Step 4: Block inheritance with a fresh table and check again
    replacement = view.grant_table.copy() if view.grant_table else vma.GrantTable()
    replacement.set_blocks_inheritance(True)
    view.replace_grant_table(replacement)
    allowed = strategy.get_acl(view).has_permission("alice", read)
    print(f"  alice  View.Read on R (blocked) -> {'ALLOW' if allowed else 'DENY'}")

    print(f"Known principals: {sorted(strategy.get_all_known_principals())}")


if __name__ == "__main__":
    main()
