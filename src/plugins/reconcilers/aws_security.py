"""
AWS security services reconciler.

Dispatches resource records for Detective and Macie resource types to their
resource handlers, choosing the operation from the record's state.
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from plugins.base import ResourceData
from plugins.reconcilers.base import (
    ReconcilerContext,
    ReconcilerPlugin,
    ReconcileResult,
)
from plugins.registry import PluginRegistry, get_registry
from plugins.resources.base import ResourceHandler
from validation import validate_desired_state

logger = logging.getLogger(__name__)

ACTION_CREATE = "create"
ACTION_UPDATE = "update"
ACTION_REPLACE = "replace"
ACTION_DELETE = "delete"
ACTION_REFRESH = "refresh"
ACTION_NOOP = "noop"

# Seconds before a host should retry a reconcile refused during shutdown
SHUTDOWN_REQUEUE_AFTER = 30


class AwsSecurityReconciler(ReconcilerPlugin):
    """
    Reconciler for every registered AWS security resource type.

    A resource record is a dict with:
      - name: human-readable resource name
      - resource_type_name: registered handler type name
      - spec: desired state
      - identity: identity from the last successful pass ("" if absent)
      - last_applied_spec: spec of the last successful pass
      - observed: observed state from the last successful pass
      - deleted: True when the resource should be removed
    """

    def __init__(self, registry: Optional[PluginRegistry] = None):
        self.registry = registry or get_registry()

    @property
    def name(self) -> str:
        return "aws_security"

    @property
    def resource_types(self) -> List[str]:
        return self.registry.list_resource_types()

    def determine_action(self, resource: Dict[str, Any], data: ResourceData) -> str:
        """Decide which operation brings the resource to its desired state."""
        if resource.get("deleted"):
            return ACTION_DELETE if data.exists else ACTION_NOOP
        if not data.exists:
            return ACTION_CREATE
        # A force-new field with no applied or observed value (a create that
        # failed after assigning the identity) is completed by update instead
        if any(
            data.has_change(name) and (name in data.previous or name in data.observed)
            for name in data.schema.force_new_fields
        ):
            return ACTION_REPLACE
        if any(data.has_change(f.name) for f in data.schema.settable_fields):
            return ACTION_UPDATE
        return ACTION_REFRESH

    async def _execute(
        self,
        handler: ResourceHandler,
        action: str,
        data: ResourceData,
        client: Any,
    ) -> None:
        if action == ACTION_CREATE:
            await handler.create(data, client)
        elif action == ACTION_UPDATE:
            await handler.update(data, client)
        elif action == ACTION_REPLACE:
            await handler.replace(data, client)
        elif action == ACTION_DELETE:
            await handler.delete(data, client)
            data.set_id("")
        elif action == ACTION_REFRESH:
            await handler.read(data, client)

    async def reconcile(
        self, resource: Dict[str, Any], ctx: ReconcilerContext
    ) -> ReconcileResult:
        resource_name = resource.get("name", "")
        type_name = resource.get("resource_type_name", "")
        action = ""
        data: Optional[ResourceData] = None
        start_time = time.monotonic()

        if ctx.shutdown_event.is_set():
            return ReconcileResult(
                success=False,
                message="Shutdown in progress",
                identity=resource.get("identity") or "",
                observed=resource.get("observed") or {},
                requeue_after=SHUTDOWN_REQUEUE_AFTER,
            )

        try:
            handler = self.registry.get_resource_handler(type_name, ctx.retry_policy)
            data = handler.new_data(
                desired=resource.get("spec"),
                previous=resource.get("last_applied_spec"),
                identity=resource.get("identity") or "",
                observed=resource.get("observed"),
            )
            action = self.determine_action(resource, data)

            if action in (ACTION_CREATE, ACTION_UPDATE, ACTION_REPLACE):
                is_valid, error = validate_desired_state(handler.schema, data.desired)
                if not is_valid:
                    return ReconcileResult(
                        success=False,
                        message=f"Invalid spec: {error}",
                        action=action,
                        identity=data.id,
                        observed=data.state,
                    )

            if action != ACTION_NOOP:
                logger.info(f"Reconciling {type_name} {resource_name}: {action}")
                client = ctx.client_for(handler.service)
                operation = self._execute(handler, action, data, client)
                if ctx.timeout:
                    await asyncio.wait_for(operation, timeout=ctx.timeout)
                else:
                    await operation

        except Exception as e:
            logger.error(
                f"Error reconciling {type_name} {resource_name}: {e}", exc_info=True
            )
            # Sub-calls that succeeded before the failure may have created or
            # removed the resource
            if data is not None:
                identity, observed = data.id, data.state
            else:
                identity = resource.get("identity") or ""
                observed = resource.get("observed") or {}
            return ReconcileResult(
                success=False,
                message=f"Reconciliation error: {e}",
                action=action,
                identity=identity,
                observed=observed,
            )

        duration = time.monotonic() - start_time
        if action in (ACTION_DELETE, ACTION_NOOP):
            message = "Resource deleted"
        elif not data.exists:
            message = "Resource no longer exists"
        else:
            message = "Reconciliation successful"
        logger.info(
            f"Reconciled {type_name} {resource_name} ({action}) in {duration:.2f}s: "
            f"{message}"
        )

        return ReconcileResult(
            success=True,
            message=message,
            action=action,
            identity=data.id,
            observed=data.state,
            desired=data.desired,
        )

    async def import_resource(
        self, resource_type_name: str, identity: str, ctx: ReconcilerContext
    ) -> ReconcileResult:
        handler = self.registry.get_resource_handler(
            resource_type_name, ctx.retry_policy
        )
        client = ctx.client_for(handler.service)
        try:
            data = await handler.import_state(identity, client)
        except Exception as e:
            logger.error(
                f"Error importing {resource_type_name} ({identity}): {e}",
                exc_info=True,
            )
            return ReconcileResult(
                success=False, message=f"Import error: {e}", action="import"
            )

        logger.info(f"Imported {resource_type_name} ({identity})")
        return ReconcileResult(
            success=True,
            message="Resource imported",
            action="import",
            identity=data.id,
            observed=data.state,
            desired=data.desired,
        )
