# alumni_hub/schemas/connection_schemas.py
from typing import Optional
from pydantic import BaseModel


class SendConnectionRequest(BaseModel):
    receiver_id: Optional[int] = None


class RespondToRequest(BaseModel):
    status: Optional[str] = None  # 'accepted' or 'rejected'
