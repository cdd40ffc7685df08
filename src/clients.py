"""
AWS client construction and invocation.

Clients are built once per service by a ClientFactory and handed to resource
handlers explicitly. boto3 calls are blocking, so call_api() runs them on a
worker thread to keep the event loop responsive.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

import boto3
from botocore.config import Config as BotoConfig

from config import AWSConfig

logger = logging.getLogger(__name__)

USER_AGENT_EXTRA = "awssec-reconciler"


class ClientFactory:
    """Creates and caches boto3 clients for one AWS session."""

    def __init__(
        self,
        aws_config: Optional[AWSConfig] = None,
        session: Optional[boto3.session.Session] = None,
    ):
        self.aws_config = aws_config or AWSConfig()
        self._session = session
        self._clients: Dict[str, Any] = {}

    @property
    def session(self) -> boto3.session.Session:
        if self._session is None:
            self._session = boto3.session.Session(
                profile_name=self.aws_config.profile,
                region_name=self.aws_config.region,
            )
        return self._session

    def client(self, service: str) -> Any:
        """
        Get a boto3 client for a service, creating it on first use.

        Args:
            service: boto3 service name (e.g. 'detective', 'macie2')

        Returns:
            A boto3 client
        """
        if service not in self._clients:
            boto_config = BotoConfig(
                retries={
                    "mode": "standard",
                    "max_attempts": self.aws_config.max_attempts,
                },
                user_agent_extra=USER_AGENT_EXTRA,
            )
            kwargs: Dict[str, Any] = {"config": boto_config}
            if self.aws_config.endpoint_url:
                kwargs["endpoint_url"] = self.aws_config.endpoint_url
            self._clients[service] = self.session.client(service, **kwargs)
            logger.debug(
                f"Created {service} client in region "
                f"{self._clients[service].meta.region_name}"
            )
        return self._clients[service]


async def call_api(method: Callable[..., Any], **kwargs: Any) -> Any:
    """Invoke a blocking boto3 client method on a worker thread."""
    return await asyncio.to_thread(method, **kwargs)
