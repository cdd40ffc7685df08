"""
Plugin system for the AWS security reconcilers.

This package provides the resource handlers for each supported resource type
and the reconciler plugins that dispatch resource records to them.
"""

from plugins.base import Field, FieldType, ResourceData, ResourceSchema
from plugins.reconcilers.base import (
    ReconcilerPlugin,
    ReconcilerContext,
    ReconcileResult,
)
from plugins.registry import PluginRegistry, get_registry

__all__ = [
    "Field",
    "FieldType",
    "ResourceData",
    "ResourceSchema",
    "ReconcilerPlugin",
    "ReconcilerContext",
    "ReconcileResult",
    "PluginRegistry",
    "get_registry",
]
