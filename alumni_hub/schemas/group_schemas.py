# alumni_hub/schemas/group_schemas.py
from typing import List, Optional, Union
from pydantic import BaseModel


class AddMembersRequest(BaseModel):
    member_ids: Union[List[int], str, None] = None


class UpdateMemberRoleRequest(BaseModel):
    role: Optional[str] = None  # 'admin' or 'member'
