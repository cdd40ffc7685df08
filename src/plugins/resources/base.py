"""
Resource Handler Base - Abstract interface for resource handlers.

A resource handler maps one resource type's fields onto calls against an AWS
service. Every operation takes the boto3 client explicitly and works on a
ResourceData: create assigns the identity, read fills in observed state (or
clears the identity when the resource is gone), update applies changed
fields, delete is idempotent.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, TypeVar

from botocore.exceptions import ClientError

from clients import call_api
from errors import (
    InvalidIdentityError,
    ReconcileError,
    ResourceNotFoundError,
    never_retry,
)
from plugins.base import ResourceData, ResourceSchema
from retry import RetryPolicy, retry_call

logger = logging.getLogger(__name__)

T = TypeVar("T")

ID_SEPARATOR = "/"


def compose_id(*parts: str) -> str:
    """Join identity parts with the separator."""
    return ID_SEPARATOR.join(parts)


def parse_composite_id(identity: str) -> Tuple[str, str]:
    """
    Split a "<graph-arn>/<account-id>" identity.

    The split happens at the last separator; account ids never contain one.

    Raises:
        InvalidIdentityError: If the separator is missing or a part is empty.
    """
    head, sep, tail = (identity or "").rpartition(ID_SEPARATOR)
    if not sep or not head or not tail:
        raise InvalidIdentityError(
            f"unexpected format for ID ({identity}), "
            f"expected GRAPH_ARN{ID_SEPARATOR}ACCOUNT_ID"
        )
    return head, tail


def format_timestamp(value: Optional[datetime]) -> str:
    """Format an API timestamp as RFC 3339 in UTC; missing values become ""."""
    if value is None:
        return ""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class TagParams:
    """Parameter names of a service's tagging API."""

    arn: str
    tags: str
    keys: str


DETECTIVE_TAGS = TagParams(arn="ResourceArn", tags="Tags", keys="TagKeys")
MACIE2_TAGS = TagParams(arn="resourceArn", tags="tags", keys="tagKeys")


async def resync_tags(
    client: Any, arn: str, tags: Dict[str, str], params: TagParams
) -> None:
    """
    Replace every tag on a resource with exactly the given map.

    There is no merge primitive, so current tags are read, all removed, and
    the new set applied. A failure between untag and tag leaves the resource
    without tags.

    Raises:
        ClientError: Any API error, including not-found.
    """
    current = await call_api(client.list_tags_for_resource, **{params.arn: arn})
    current_keys = list((current.get(params.tags) or {}).keys())

    if current_keys:
        logger.debug(f"Removing tags {current_keys} from {arn}")
        await call_api(
            client.untag_resource, **{params.arn: arn, params.keys: current_keys}
        )

    if tags:
        logger.debug(f"Applying tags {sorted(tags)} to {arn}")
        await call_api(client.tag_resource, **{params.arn: arn, params.tags: tags})


class ResourceHandler(ABC):
    """
    Abstract base class for resource handlers.

    Subclasses declare the resource type name, the boto3 service they talk
    to and their schema, and implement the four CRUD operations.
    """

    # Errors from mutating calls are not retried unless a handler says so
    retryable: Callable[[BaseException], bool] = staticmethod(never_retry)

    def __init__(self, retry_policy: Optional[RetryPolicy] = None):
        self.retry_policy = retry_policy or RetryPolicy()

    @property
    @abstractmethod
    def type_name(self) -> str:
        """Unique resource type name (e.g. 'DetectiveGraph')."""
        pass

    @property
    @abstractmethod
    def service(self) -> str:
        """boto3 service name the handler's client is built for."""
        pass

    @property
    @abstractmethod
    def schema(self) -> ResourceSchema:
        """Field declarations for this resource type."""
        pass

    @abstractmethod
    async def create(self, data: ResourceData, client: Any) -> None:
        """Create the resource from desired state, then read it back."""
        pass

    @abstractmethod
    async def read(self, data: ResourceData, client: Any) -> None:
        """
        Refresh observed state.

        Clears the identity instead of raising when the resource is gone.
        """
        pass

    @abstractmethod
    async def update(self, data: ResourceData, client: Any) -> None:
        """Apply changed fields, then read the resource back."""
        pass

    @abstractmethod
    async def delete(self, data: ResourceData, client: Any) -> None:
        """Delete the resource; an already-absent resource is not an error."""
        pass

    def new_data(
        self,
        desired: Optional[Dict[str, Any]] = None,
        previous: Optional[Dict[str, Any]] = None,
        identity: str = "",
        observed: Optional[Dict[str, Any]] = None,
    ) -> ResourceData:
        """Build a ResourceData bound to this handler's schema."""
        return ResourceData(
            self.schema,
            desired=desired,
            previous=previous,
            identity=identity,
            observed=observed,
        )

    async def replace(self, data: ResourceData, client: Any) -> None:
        """
        Delete the resource and create it again from desired state.

        Used where the API has no in-place update. The two steps are not
        atomic: after the delete and until the create succeeds the resource
        does not exist, and a failed create leaves it absent.
        """
        logger.warning(
            f"Replacing {self.type_name} ({data.id}); it will be absent until "
            f"the new one is created"
        )
        if data.exists:
            await self.delete(data, client)
            data.set_id("")
        await self.create(data, client)

    async def import_state(self, identity: str, client: Any) -> ResourceData:
        """
        Adopt an existing resource by identity.

        Reads the resource and re-populates desired state from what was read.

        Raises:
            ResourceNotFoundError: If nothing exists under the identity.
        """
        data = self.new_data(identity=identity)
        await self.read(data, client)
        if not data.exists:
            raise ResourceNotFoundError(
                f"cannot import non-existent {self.type_name} ({identity})",
                resource_type=self.type_name,
            )
        data.desired = data.desired_from_observed()
        data.previous = dict(data.desired)
        return data

    async def mutate(
        self,
        description: str,
        operation: Callable[[], Awaitable[T]],
        retryable: Optional[Callable[[BaseException], bool]] = None,
    ) -> T:
        """Run a mutating call under this handler's retry window."""
        return await retry_call(
            operation,
            retryable=retryable or self.retryable,
            policy=self.retry_policy,
            description=f"{description} ({self.type_name})",
        )

    async def delete_tolerant(
        self,
        description: str,
        operation: Callable[[], Awaitable[Any]],
        is_absent: Callable[[BaseException], bool],
        identity: str,
    ) -> None:
        """
        Run a delete call under the retry window, treating absence as success.

        Raises:
            ReconcileError: For any error that does not mean the resource is
                already gone.
        """

        async def attempt():
            try:
                return await operation()
            except ClientError as e:
                if is_absent(e):
                    logger.info(
                        f"{self.type_name} ({identity}) already gone: {e}"
                    )
                    return None
                raise

        try:
            await self.mutate(description, attempt)
        except ClientError as e:
            raise ReconcileError(
                f"error {description} ({identity}): {e}",
                resource_type=self.type_name,
            ) from e

    def remove_from_state(self, data: ResourceData, reason: str = "") -> None:
        """Clear the identity after finding the resource gone."""
        logger.warning(
            f"{self.type_name} ({data.id}) does not seem to exist, "
            f"removing from state{': ' + reason if reason else ''}"
        )
        data.set_id("")

    def wrap(self, message: str, err: ClientError) -> ReconcileError:
        return ReconcileError(f"{message}: {err}", resource_type=self.type_name)
