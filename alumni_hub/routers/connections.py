# alumni_hub/routers/connections.py
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.security import Principal, get_current_principal
from ..schemas.connection_schemas import SendConnectionRequest, RespondToRequest
from ..services.connection_service import ConnectionService
from ..services.email_service import EmailService, get_email_service
from ..services.notification_service import NotificationEmitter, get_notification_emitter

router = APIRouter(prefix="/api/v1/connections", tags=["Connections"])


def get_connection_service(
    db: AsyncSession = Depends(get_db),
    emitter: NotificationEmitter = Depends(get_notification_emitter),
    mailer: EmailService = Depends(get_email_service),
) -> ConnectionService:
    return ConnectionService(db, emitter=emitter, mailer=mailer)


@router.get("")
async def get_my_connections(
    search: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_current_principal),
    service: ConnectionService = Depends(get_connection_service),
):
    """Accepted connections with current job and verified school"""
    result = await service.get_my_connections(principal, search=search, limit=limit, offset=offset)
    return {"success": True, **result}


@router.get("/with-details")
async def get_connections_with_details(
    principal: Principal = Depends(get_current_principal),
    service: ConnectionService = Depends(get_connection_service),
):
    connections = await service.get_connections_with_details(principal)
    return {"success": True, "connections": connections}


@router.get("/pending")
async def get_pending_requests(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_current_principal),
    service: ConnectionService = Depends(get_connection_service),
):
    result = await service.get_pending_requests(principal, limit=limit, offset=offset)
    return {"success": True, **result}


@router.get("/sent")
async def get_sent_requests(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_current_principal),
    service: ConnectionService = Depends(get_connection_service),
):
    result = await service.get_sent_requests(principal, limit=limit, offset=offset)
    return {"success": True, **result}


@router.get("/status/{user_id}")
async def get_connection_status(
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    service: ConnectionService = Depends(get_connection_service),
):
    status = await service.get_connection_status(principal, user_id)
    return {"success": True, **status}


@router.post("/send", status_code=201)
async def send_request(
    request: SendConnectionRequest,
    principal: Principal = Depends(get_current_principal),
    service: ConnectionService = Depends(get_connection_service),
):
    connection_id = await service.send_request(principal, request.receiver_id)
    return {
        "success": True,
        "message": "Connection request sent successfully",
        "connection_id": connection_id
    }


@router.put("/{connection_id}/accept")
async def accept_request(
    connection_id: int,
    principal: Principal = Depends(get_current_principal),
    service: ConnectionService = Depends(get_connection_service),
):
    await service.accept_request(principal, connection_id)
    return {"success": True, "message": "Connection request accepted"}


@router.put("/{connection_id}/reject")
async def reject_request(
    connection_id: int,
    principal: Principal = Depends(get_current_principal),
    service: ConnectionService = Depends(get_connection_service),
):
    await service.reject_request(principal, connection_id)
    return {"success": True, "message": "Connection request rejected"}


@router.put("/{connection_id}/respond")
async def respond_to_request(
    connection_id: int,
    request: RespondToRequest,
    principal: Principal = Depends(get_current_principal),
    service: ConnectionService = Depends(get_connection_service),
):
    decision = await service.respond_to_request(principal, connection_id, request.status)
    return {"success": True, "message": f"Connection request {decision}"}


@router.delete("/request/{connection_id}/cancel")
async def cancel_request(
    connection_id: int,
    principal: Principal = Depends(get_current_principal),
    service: ConnectionService = Depends(get_connection_service),
):
    await service.cancel_request(principal, connection_id)
    return {"success": True, "message": "Connection request cancelled"}


@router.delete("/{connection_id}")
async def remove_connection(
    connection_id: int,
    principal: Principal = Depends(get_current_principal),
    service: ConnectionService = Depends(get_connection_service),
):
    await service.remove_connection(principal, connection_id)
    return {"success": True, "message": "Connection removed successfully"}
