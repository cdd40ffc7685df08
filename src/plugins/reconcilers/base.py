"""
Reconciler Plugin Base - Abstract interface for reconciler plugins.

Reconciler plugins own the reconciliation logic for one or more resource
types. The host runtime hands them one resource record at a time; they
decide which operation brings the external resource to the desired state and
report back the identity and observed state.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from clients import ClientFactory
from retry import RetryPolicy

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Result from a reconciler's reconcile() call."""

    success: bool = False
    message: str = ""
    action: str = ""
    identity: str = ""
    observed: Dict[str, Any] = field(default_factory=dict)
    desired: Optional[Dict[str, Any]] = None
    requeue_after: Optional[int] = None

    @property
    def exists(self) -> bool:
        return bool(self.identity)


class ReconcilerContext:
    """
    Context provided to reconciler plugins by the host.

    Gives reconcilers their AWS clients, the retry policy, an optional
    deadline for a whole reconcile call, and the host's shutdown signal.
    """

    def __init__(
        self,
        clients: ClientFactory,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: Optional[float] = None,
        shutdown_event: Optional[asyncio.Event] = None,
    ):
        self.clients = clients
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout = timeout
        self.shutdown_event = shutdown_event or asyncio.Event()

    def client_for(self, service: str) -> Any:
        """
        Get the AWS client for a service.

        Args:
            service: boto3 service name

        Returns:
            A boto3 client
        """
        return self.clients.client(service)


class ReconcilerPlugin(ABC):
    """
    Abstract base class for reconciler plugins.

    Reconcilers are discovered via Python entry points in the
    'awssec.reconcilers' group.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this reconciler."""
        pass

    @property
    @abstractmethod
    def resource_types(self) -> List[str]:
        """Resource type names this reconciler handles."""
        pass

    @abstractmethod
    async def reconcile(
        self, resource: Dict[str, Any], ctx: ReconcilerContext
    ) -> ReconcileResult:
        """
        Reconcile a single resource.

        Compare desired state against the last applied state and take action.

        Args:
            resource: The resource record from the host.
            ctx: ReconcilerContext for clients and retry settings.

        Returns:
            ReconcileResult indicating success/failure.
        """
        pass

    @abstractmethod
    async def import_resource(
        self, resource_type_name: str, identity: str, ctx: ReconcilerContext
    ) -> ReconcileResult:
        """
        Adopt an existing external resource by identity.

        Args:
            resource_type_name: The resource type name.
            identity: Raw identity string of the external resource.
            ctx: ReconcilerContext for clients and retry settings.

        Returns:
            ReconcileResult with desired state re-populated from the read.
        """
        pass
