from .connection_schemas import SendConnectionRequest, RespondToRequest
from .group_schemas import AddMembersRequest, UpdateMemberRoleRequest

__all__ = [
    "SendConnectionRequest",
    "RespondToRequest",
    "AddMembersRequest",
    "UpdateMemberRoleRequest",
]
