"""
Reconciler plugins package.

Reconciler plugins own the reconciliation logic for one or more resource types.
They are discovered via Python entry points (group: 'awssec.reconcilers').
"""

from plugins.reconcilers.base import (
    ReconcilerPlugin,
    ReconcilerContext,
    ReconcileResult,
)

__all__ = ["ReconcilerPlugin", "ReconcilerContext", "ReconcileResult"]
