"""
Acceptance of a Detective invitation by a member account.

Identity is the ARN of the graph the invitation came from. The API offers no
way to modify an accepted invitation, so update is a replacement.
"""

import logging
from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

from clients import call_api
from errors import is_gone
from plugins.base import Field, FieldType, ResourceData, ResourceSchema
from plugins.resources.base import ResourceHandler

logger = logging.getLogger(__name__)


class DetectiveInvitationAccept(ResourceHandler):
    """Accepts a Detective membership invitation."""

    _schema = ResourceSchema(
        [
            Field("graph_arn", FieldType.STRING, required=True),
            Field("status", FieldType.STRING, computed=True),
        ]
    )

    @property
    def type_name(self) -> str:
        return "DetectiveInvitationAccept"

    @property
    def service(self) -> str:
        return "detective"

    @property
    def schema(self) -> ResourceSchema:
        return self._schema

    async def create(self, data: ResourceData, client: Any) -> None:
        graph_arn = data.get("graph_arn")

        try:
            await self.mutate(
                "accepting invitation",
                lambda: call_api(client.accept_invitation, GraphArn=graph_arn),
            )
        except ClientError as e:
            raise self.wrap("error accepting Detective invitation", e) from e

        data.set_id(graph_arn)
        logger.info(f"Accepted Detective invitation for graph {graph_arn}")

        await self.read(data, client)

    async def _find_invitation(
        self, client: Any, graph_arn: str
    ) -> Optional[Dict[str, Any]]:
        request: Dict[str, Any] = {}
        while True:
            response = await call_api(client.list_invitations, **request)
            for invitation in response.get("Invitations", []):
                if invitation.get("GraphArn") == graph_arn:
                    return invitation
            next_token = response.get("NextToken")
            if not next_token:
                return None
            request["NextToken"] = next_token

    async def read(self, data: ResourceData, client: Any) -> None:
        try:
            invitation = await self._find_invitation(client, data.id)
        except ClientError as e:
            raise self.wrap(
                f"error reading Detective invitation ({data.id})", e
            ) from e

        if invitation is None:
            self.remove_from_state(data, "no invitation found for graph")
            return

        data.set("graph_arn", invitation.get("GraphArn"))
        data.set("status", invitation.get("Status", ""))

    async def update(self, data: ResourceData, client: Any) -> None:
        await self.replace(data, client)

    async def delete(self, data: ResourceData, client: Any) -> None:
        await self.delete_tolerant(
            "disassociating Detective membership",
            lambda: call_api(client.disassociate_membership, GraphArn=data.id),
            is_absent=is_gone,
            identity=data.id,
        )
        logger.info(f"Left Detective graph {data.id}")
