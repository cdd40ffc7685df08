"""
Detective behavior graph.

Identity is the graph ARN. The only settable field is the tag map, which is
re-synchronized in full on change.
"""

import logging
from typing import Any

from botocore.exceptions import ClientError

from clients import call_api
from errors import is_gone, is_not_found
from plugins.base import Field, FieldType, ResourceData, ResourceSchema
from plugins.resources.base import DETECTIVE_TAGS, ResourceHandler, resync_tags

logger = logging.getLogger(__name__)


class DetectiveGraph(ResourceHandler):
    """Manages a Detective behavior graph and its tags."""

    _schema = ResourceSchema(
        [
            Field("graph_tags", FieldType.MAP, optional=True),
            Field("arn", FieldType.STRING, computed=True),
        ]
    )

    @property
    def type_name(self) -> str:
        return "DetectiveGraph"

    @property
    def service(self) -> str:
        return "detective"

    @property
    def schema(self) -> ResourceSchema:
        return self._schema

    async def create(self, data: ResourceData, client: Any) -> None:
        request = {}
        tags, ok = data.get_ok("graph_tags")
        if ok:
            request["Tags"] = dict(tags)

        try:
            response = await self.mutate(
                "creating graph",
                lambda: call_api(client.create_graph, **request),
            )
        except ClientError as e:
            raise self.wrap("error creating Detective graph", e) from e

        data.set_id(response["GraphArn"])
        logger.info(f"Created Detective graph {data.id}")

        await self.read(data, client)

    async def read(self, data: ResourceData, client: Any) -> None:
        try:
            response = await call_api(
                client.list_tags_for_resource, ResourceArn=data.id
            )
        except ClientError as e:
            if is_not_found(e):
                self.remove_from_state(data)
                return
            raise self.wrap(f"error reading Detective graph ({data.id})", e) from e

        data.set("graph_tags", response.get("Tags") or {})
        data.set("arn", data.id)

    async def update(self, data: ResourceData, client: Any) -> None:
        if data.has_change("graph_tags"):
            try:
                await resync_tags(
                    client, data.id, data.get("graph_tags") or {}, DETECTIVE_TAGS
                )
            except ClientError as e:
                if is_not_found(e):
                    self.remove_from_state(data)
                    return
                raise self.wrap(
                    f"error updating Detective graph ({data.id}) tags", e
                ) from e

        await self.read(data, client)

    async def delete(self, data: ResourceData, client: Any) -> None:
        await self.delete_tolerant(
            "deleting Detective graph",
            lambda: call_api(client.delete_graph, GraphArn=data.id),
            is_absent=is_gone,
            identity=data.id,
        )
        logger.info(f"Deleted Detective graph {data.id}")
