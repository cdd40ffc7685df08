"""
Resource handlers package.

Each handler maps one resource type onto an AWS service API. Additional
handlers are discovered via Python entry points (group: 'awssec.resources').
"""

from plugins.resources.base import ResourceHandler
from plugins.resources.detective_graph import DetectiveGraph
from plugins.resources.detective_invitation_accept import DetectiveInvitationAccept
from plugins.resources.detective_invitation_request import DetectiveInvitationRequest
from plugins.resources.macie2_member import Macie2Member

BUILTIN_HANDLERS = [
    DetectiveGraph,
    DetectiveInvitationAccept,
    DetectiveInvitationRequest,
    Macie2Member,
]

__all__ = [
    "BUILTIN_HANDLERS",
    "ResourceHandler",
    "DetectiveGraph",
    "DetectiveInvitationAccept",
    "DetectiveInvitationRequest",
    "Macie2Member",
]
