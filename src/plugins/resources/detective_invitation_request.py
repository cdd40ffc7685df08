"""
Invitation of a member account into a Detective graph.

Identity is "<graph-arn>/<account-id>". Invitations cannot be edited, so
update is a replacement.
"""

import logging
from typing import Any, Dict

from botocore.exceptions import ClientError

from clients import call_api
from errors import UnprocessedItemError, is_gone, is_not_found
from plugins.base import Field, FieldType, ResourceData, ResourceSchema
from plugins.resources.base import (
    ResourceHandler,
    compose_id,
    format_timestamp,
    parse_composite_id,
)

logger = logging.getLogger(__name__)


class DetectiveInvitationRequest(ResourceHandler):
    """Invites an account to become a member of a Detective graph."""

    _schema = ResourceSchema(
        [
            Field("graph_arn", FieldType.STRING, required=True),
            Field("account", FieldType.STRING, required=True),
            Field("email", FieldType.STRING, required=True),
            Field("message", FieldType.STRING, optional=True),
            Field(
                "disable_email_notification",
                FieldType.BOOL,
                optional=True,
                default=False,
            ),
            Field("status", FieldType.STRING, computed=True),
            Field("invited_time", FieldType.STRING, computed=True),
            Field("updated_time", FieldType.STRING, computed=True),
        ]
    )

    @property
    def type_name(self) -> str:
        return "DetectiveInvitationRequest"

    @property
    def service(self) -> str:
        return "detective"

    @property
    def schema(self) -> ResourceSchema:
        return self._schema

    async def create(self, data: ResourceData, client: Any) -> None:
        graph_arn = data.get("graph_arn")
        account = data.get("account")
        request: Dict[str, Any] = {
            "GraphArn": graph_arn,
            "DisableEmailNotification": bool(data.get("disable_email_notification")),
            "Accounts": [{"AccountId": account, "EmailAddress": data.get("email")}],
        }
        message, ok = data.get_ok("message")
        if ok:
            request["Message"] = message

        try:
            response = await self.mutate(
                "inviting member",
                lambda: call_api(client.create_members, **request),
            )
        except ClientError as e:
            raise self.wrap("error inviting Detective member", e) from e

        unprocessed = response.get("UnprocessedAccounts") or []
        if unprocessed:
            raise UnprocessedItemError(
                "inviting Detective member",
                unprocessed[0].get("AccountId", account),
                None,
                unprocessed[0].get("Reason"),
            )

        data.set_id(compose_id(graph_arn, account))
        logger.info(f"Invited account {account} to Detective graph {graph_arn}")

        await self.read(data, client)

    async def read(self, data: ResourceData, client: Any) -> None:
        graph_arn, account = parse_composite_id(data.id)

        try:
            response = await call_api(
                client.get_members, GraphArn=graph_arn, AccountIds=[account]
            )
        except ClientError as e:
            if is_not_found(e):
                self.remove_from_state(data, "graph or member not found")
                return
            raise self.wrap(
                f"error reading Detective member invitation ({data.id})", e
            ) from e

        members = response.get("MemberDetails") or []
        if not members:
            self.remove_from_state(data, "no member details returned")
            return

        member = members[0]
        data.set("graph_arn", member.get("GraphArn"))
        data.set("account", member.get("AccountId"))
        data.set("email", member.get("EmailAddress"))
        data.set("status", member.get("Status", ""))
        data.set("invited_time", format_timestamp(member.get("InvitedTime")))
        data.set("updated_time", format_timestamp(member.get("UpdatedTime")))

    async def update(self, data: ResourceData, client: Any) -> None:
        await self.replace(data, client)

    async def delete(self, data: ResourceData, client: Any) -> None:
        graph_arn, account = parse_composite_id(data.id)
        await self.delete_tolerant(
            "deleting Detective member",
            lambda: call_api(
                client.delete_members, GraphArn=graph_arn, AccountIds=[account]
            ),
            is_absent=is_gone,
            identity=data.id,
        )
        logger.info(f"Removed account {account} from Detective graph {graph_arn}")
