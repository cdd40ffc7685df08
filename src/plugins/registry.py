"""
Plugin Registry - Discovery and registration of plugins.

Resource handlers are registered as classes and instantiated per reconcile
call with the caller's retry policy. Reconciler plugins are instantiated once
at registration and claim the resource types they dispatch; a resource type
belongs to at most one reconciler.
"""

import logging
from importlib.metadata import entry_points
from typing import Any, Dict, List, Optional, Type

from plugins.resources.base import ResourceHandler
from retry import RetryPolicy

logger = logging.getLogger(__name__)


class PluginRegistry:
    """
    Central registry for resource handlers and reconciler plugins.
    """

    def __init__(self):
        self._resource_handlers: Dict[str, Type[ResourceHandler]] = {}
        self._resource_handler_info: Dict[str, Dict[str, Any]] = {}

        # Reconciler instances by name, and resource type -> reconciler name
        self._reconcilers: Dict[str, Any] = {}
        self._claims: Dict[str, str] = {}

    # Resource handlers

    def register_resource_handler(self, handler_class: Type[ResourceHandler]) -> None:
        """
        Register a resource handler class.

        Args:
            handler_class: The ResourceHandler subclass to register
        """
        handler = handler_class()
        type_name = handler.type_name

        if type_name in self._resource_handlers:
            logger.warning(f"Replacing resource handler for {type_name}")

        self._resource_handlers[type_name] = handler_class
        self._resource_handler_info[type_name] = {
            "name": type_name,
            "service": handler.service,
            "fields": [f.name for f in handler.schema.fields],
        }
        logger.info(f"Registered resource handler: {type_name} ({handler.service})")

    def get_resource_handler(
        self, name: str, retry_policy: Optional[RetryPolicy] = None
    ) -> ResourceHandler:
        """
        Build a handler for a resource type.

        Args:
            name: The resource type name
            retry_policy: Retry policy for the handler's mutating calls

        Returns:
            A new ResourceHandler instance

        Raises:
            ValueError: If the resource type is not registered
        """
        handler_class = self._resource_handlers.get(name)
        if handler_class is None:
            known = ", ".join(sorted(self._resource_handlers)) or "none"
            raise ValueError(f"Unknown resource type: {name}. Available types: {known}")
        return handler_class(retry_policy)

    def list_resource_types(self) -> List[str]:
        """Registered resource type names, in registration order."""
        return list(self._resource_handlers)

    def has_resource_handler(self, name: str) -> bool:
        return name in self._resource_handlers

    def get_resource_handler_info(self, name: str) -> Optional[Dict[str, Any]]:
        """
        Get metadata about a resource handler.

        Returns:
            Dictionary with 'name', 'service' and 'fields', or None if not found
        """
        return self._resource_handler_info.get(name)

    # Reconciler plugins

    def _check_claims(self, name: str, resource_types: List[str]) -> None:
        for type_name in resource_types:
            owner = self._claims.get(type_name)
            if owner is not None and owner != name:
                raise ValueError(
                    f"Resource type '{type_name}' is already claimed by "
                    f"reconciler '{owner}', cannot register '{name}'"
                )

    def register_reconciler_plugin(self, plugin_class: Type) -> None:
        """
        Instantiate a reconciler plugin and let it claim its resource types.

        Args:
            plugin_class: The ReconcilerPlugin subclass to register

        Raises:
            ValueError: If a resource type is already claimed by another reconciler
        """
        reconciler = plugin_class()
        name = reconciler.name
        resource_types = list(reconciler.resource_types)

        self._check_claims(name, resource_types)

        if name in self._reconcilers:
            logger.warning(f"Replacing reconciler plugin {name}")
            self._claims = {
                rt: owner for rt, owner in self._claims.items() if owner != name
            }

        self._reconcilers[name] = reconciler
        for type_name in resource_types:
            self._claims[type_name] = name

        logger.info(f"Registered reconciler plugin {name} for {resource_types}")

    def get_reconciler_plugin(self, name: str) -> Any:
        """
        Get a registered reconciler plugin.

        Raises:
            ValueError: If the reconciler name is not registered
        """
        try:
            return self._reconcilers[name]
        except KeyError:
            known = ", ".join(sorted(self._reconcilers)) or "none"
            raise ValueError(
                f"Unknown reconciler plugin: {name}. Available reconcilers: {known}"
            )

    def list_reconciler_plugins(self) -> List[str]:
        return list(self._reconcilers)

    def has_reconciler_for_resource_type(self, resource_type_name: str) -> bool:
        return resource_type_name in self._claims

    def get_reconciler_for_resource_type(
        self, resource_type_name: str
    ) -> Optional[Any]:
        """The reconciler that claimed a resource type, or None."""
        name = self._claims.get(resource_type_name)
        return self._reconcilers[name] if name is not None else None

    def get_reconciler_plugin_info(self, name: str) -> Optional[Dict[str, Any]]:
        """
        Get metadata about a reconciler plugin.

        Returns:
            Dictionary with 'name' and 'resource_types', or None if not found
        """
        if name not in self._reconcilers:
            return None
        return {
            "name": name,
            "resource_types": [rt for rt, owner in self._claims.items() if owner == name],
        }


_registry: Optional[PluginRegistry] = None


def get_registry() -> PluginRegistry:
    """Get the global plugin registry singleton."""
    global _registry
    if _registry is None:
        _registry = PluginRegistry()
    return _registry


def reset_registry() -> None:
    """Reset the global registry (mainly for testing)."""
    global _registry
    _registry = None


def _load_entry_points(group: str, register) -> None:
    for ep in entry_points(group=group):
        try:
            register(ep.load())
        except Exception as e:
            logger.warning(f"Could not load plugin {ep.name} from {group}: {e}")


def register_builtin_plugins() -> None:
    """
    Register the built-in resource handlers and reconciler, plus any found
    via the 'awssec.resources' and 'awssec.reconcilers' entry points.

    Handlers are registered first: the built-in reconciler claims every
    resource type known when it is registered.
    """
    registry = get_registry()

    from plugins.resources import BUILTIN_HANDLERS

    for handler_class in BUILTIN_HANDLERS:
        registry.register_resource_handler(handler_class)
    _load_entry_points("awssec.resources", registry.register_resource_handler)

    from plugins.reconcilers.aws_security import AwsSecurityReconciler

    registry.register_reconciler_plugin(AwsSecurityReconciler)
    _load_entry_points("awssec.reconcilers", registry.register_reconciler_plugin)
