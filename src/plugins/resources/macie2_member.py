"""
Macie member account.

Identity is the member's account id. Besides creating the member, the
handler can invite it (and wait until Macie reports it invited), withdraw
the association, pause or resume the member session, and keep tags in sync.
"""

import logging
from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

from clients import call_api
from errors import (
    UnprocessedItemError,
    is_gone,
    is_member_absent,
    is_retryable_client_error,
)
from plugins.base import Field, FieldType, ResourceData, ResourceSchema
from plugins.resources.base import (
    MACIE2_TAGS,
    ResourceHandler,
    format_timestamp,
    resync_tags,
)
from retry import wait_for_state

logger = logging.getLogger(__name__)

RELATIONSHIP_ENABLED = "Enabled"
RELATIONSHIP_PAUSED = "Paused"
RELATIONSHIP_INVITED = "Invited"
RELATIONSHIP_CREATED = "Created"
RELATIONSHIP_REMOVED = "Removed"
RELATIONSHIP_EMAIL_VERIFICATION_IN_PROGRESS = "EmailVerificationInProgress"

MACIE_STATUS_ENABLED = "ENABLED"
MACIE_STATUS_PAUSED = "PAUSED"

INVITED_RELATIONSHIPS = frozenset(
    {
        RELATIONSHIP_ENABLED,
        RELATIONSHIP_INVITED,
        RELATIONSHIP_EMAIL_VERIFICATION_IN_PROGRESS,
        RELATIONSHIP_PAUSED,
    }
)
NOT_INVITED_RELATIONSHIPS = frozenset({RELATIONSHIP_REMOVED})

INVITE_PENDING = (RELATIONSHIP_CREATED, RELATIONSHIP_EMAIL_VERIFICATION_IN_PROGRESS)
INVITE_TARGET = (RELATIONSHIP_INVITED, RELATIONSHIP_ENABLED, RELATIONSHIP_PAUSED)


def derive_invite(relationship_status: Optional[str]) -> Optional[bool]:
    """
    Map a relationship status onto the boolean invite field.

    Returns None for statuses that say nothing about the invitation.
    """
    if relationship_status in INVITED_RELATIONSHIPS:
        return True
    if relationship_status in NOT_INVITED_RELATIONSHIPS:
        return False
    return None


def derive_status(relationship_status: Optional[str]) -> str:
    """
    Synthesize the one-way member status from the relationship status.

    Only PAUSED is reported faithfully; everything else reads as ENABLED.
    The member session can only be switched to PAUSED or back, while an
    accepted relationship reports Enabled, so passing the real value through
    would show a permanent diff.
    """
    if relationship_status == RELATIONSHIP_PAUSED:
        return MACIE_STATUS_PAUSED
    return MACIE_STATUS_ENABLED


class Macie2Member(ResourceHandler):
    """Manages a Macie member account and its invitation."""

    retryable = staticmethod(is_retryable_client_error)

    _schema = ResourceSchema(
        [
            Field("account_id", FieldType.STRING, required=True, force_new=True),
            Field("email", FieldType.STRING, required=True),
            Field("tags", FieldType.MAP, optional=True),
            Field("tags_all", FieldType.MAP, computed=True),
            Field("arn", FieldType.STRING, computed=True),
            Field("relationship_status", FieldType.STRING, computed=True),
            Field("administrator_account_id", FieldType.STRING, computed=True),
            Field("master_account_id", FieldType.STRING, computed=True),
            Field("invited_at", FieldType.STRING, computed=True),
            Field("updated_at", FieldType.STRING, computed=True),
            Field(
                "status",
                FieldType.STRING,
                optional=True,
                computed=True,
                allowed_values=[MACIE_STATUS_ENABLED, MACIE_STATUS_PAUSED],
            ),
            Field("invite", FieldType.BOOL, optional=True, computed=True),
            Field(
                "invitation_disable_email_notification",
                FieldType.BOOL,
                optional=True,
            ),
            Field("invitation_message", FieldType.STRING, optional=True),
        ]
    )

    @property
    def type_name(self) -> str:
        return "Macie2Member"

    @property
    def service(self) -> str:
        return "macie2"

    @property
    def schema(self) -> ResourceSchema:
        return self._schema

    async def create(self, data: ResourceData, client: Any) -> None:
        account_id = data.get("account_id")
        request: Dict[str, Any] = {
            "account": {"accountId": account_id, "email": data.get("email")},
        }
        tags, ok = data.get_ok("tags")
        if ok:
            request["tags"] = dict(tags)

        try:
            await self.mutate(
                "creating member",
                lambda: call_api(client.create_member, **request),
            )
        except ClientError as e:
            raise self.wrap("error creating Macie member", e) from e

        data.set_id(account_id)
        logger.info(f"Created Macie member {account_id}")

        if data.get("invite"):
            await self._invite(data, client)

        await self.read(data, client)

    async def _invite(self, data: ResourceData, client: Any) -> None:
        """Send the invitation and wait until Macie reports it sent."""
        request: Dict[str, Any] = {"accountIds": [data.id]}
        disable_email, ok = data.get_ok("invitation_disable_email_notification")
        if ok:
            request["disableEmailNotification"] = bool(disable_email)
        message, ok = data.get_ok("invitation_message")
        if ok:
            request["message"] = message

        logger.info(f"Inviting Macie member {data.id}")
        try:
            response = await self.mutate(
                "inviting member",
                lambda: call_api(client.create_invitations, **request),
            )
        except ClientError as e:
            raise self.wrap("error inviting Macie member", e) from e

        unprocessed = response.get("unprocessedAccounts") or []
        if unprocessed:
            first = unprocessed[0]
            raise UnprocessedItemError(
                "inviting Macie member",
                first.get("accountId", data.id),
                first.get("errorCode"),
                first.get("errorMessage"),
            )

        async def relationship_status() -> Optional[str]:
            try:
                member = await call_api(client.get_member, id=data.id)
            except ClientError as e:
                if is_member_absent(e):
                    return None
                raise
            return member.get("relationshipStatus")

        try:
            await wait_for_state(
                relationship_status,
                target=INVITE_TARGET,
                pending=INVITE_PENDING,
                timeout=self.retry_policy.wait_timeout,
                poll_interval=self.retry_policy.poll_interval,
                description=f"Macie member ({data.id}) invitation",
            )
        except ClientError as e:
            raise self.wrap(
                f"error waiting for Macie member ({data.id}) invitation", e
            ) from e

    async def read(self, data: ResourceData, client: Any) -> None:
        try:
            member = await call_api(client.get_member, id=data.id)
        except ClientError as e:
            if is_member_absent(e):
                self.remove_from_state(data, str(e))
                return
            raise self.wrap(f"error reading Macie member ({data.id})", e) from e

        relationship = member.get("relationshipStatus")
        tags = member.get("tags") or {}

        data.set("account_id", member.get("accountId"))
        data.set("email", member.get("email"))
        data.set("relationship_status", relationship or "")
        data.set("administrator_account_id", member.get("administratorAccountId", ""))
        data.set("master_account_id", member.get("masterAccountId", ""))
        data.set("invited_at", format_timestamp(member.get("invitedAt")))
        data.set("updated_at", format_timestamp(member.get("updatedAt")))
        data.set("arn", member.get("arn", ""))
        data.set("tags", tags)
        data.set("tags_all", tags)

        invite = derive_invite(relationship)
        if invite is not None:
            data.set("invite", invite)
        data.set("status", derive_status(relationship))

    async def _member_arn(self, data: ResourceData, client: Any) -> str:
        """The member ARN, read from Macie when observed state lacks it."""
        arn = data.observed.get("arn")
        if arn:
            return arn
        try:
            member = await call_api(client.get_member, id=data.id)
        except ClientError as e:
            raise self.wrap(f"error reading Macie member ({data.id})", e) from e
        return member.get("arn", "")

    async def update(self, data: ResourceData, client: Any) -> None:
        if data.has_change("tags"):
            try:
                arn = await self._member_arn(data, client)
                await resync_tags(client, arn, data.get("tags") or {}, MACIE2_TAGS)
            except ClientError as e:
                raise self.wrap(
                    f"error updating Macie member ({data.id}) tags", e
                ) from e

        if data.has_change("invite"):
            if data.get("invite"):
                await self._invite(data, client)
            else:
                await self._disassociate(data, client)

        if data.has_change("status"):
            status = data.get("status")
            logger.info(f"Setting Macie member {data.id} session status to {status}")
            try:
                await call_api(client.update_member_session, id=data.id, status=status)
            except ClientError as e:
                raise self.wrap(f"error updating Macie member ({data.id})", e) from e

        await self.read(data, client)

    async def _disassociate(self, data: ResourceData, client: Any) -> None:
        logger.info(f"Disassociating Macie member {data.id}")
        try:
            await call_api(client.disassociate_member, id=data.id)
        except ClientError as e:
            if is_gone(e):
                logger.info(f"Macie member ({data.id}) already disassociated: {e}")
                return
            raise self.wrap(
                f"error disassociating Macie member invite ({data.id})", e
            ) from e

    async def delete(self, data: ResourceData, client: Any) -> None:
        await self.delete_tolerant(
            "deleting Macie member",
            lambda: call_api(client.delete_member, id=data.id),
            is_absent=is_member_absent,
            identity=data.id,
        )
        logger.info(f"Deleted Macie member {data.id}")
