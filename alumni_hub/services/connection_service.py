# alumni_hub/services/connection_service.py
"""Connection lifecycle between alumni and the messaging eligibility derived from it."""
from typing import Any, Dict, Iterable, Optional, Set
import logging

from sqlalchemy import select, update, func, and_, or_, case, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from .base_service import BaseService
from .email_service import EmailService
from .notification_service import NotificationEmitter
from ..core.exceptions import InvalidArgumentError, ForbiddenError, NotFoundError, ConflictError
from ..core.security import is_peer_eligible, is_admin_role
from ..models.base import utcnow
from ..models.connection import (
    Connection, Mentorship,
    CONNECTION_PENDING, CONNECTION_ACCEPTED, MENTORSHIP_RELATIONSHIP_STATUSES
)
from ..models.user import User, AlumniEducation, WorkExperience, School, ROLE_ALUMNI
from ..utils.pagination import Paginator

logger = logging.getLogger(__name__)

RESPONSE_DECISIONS = (CONNECTION_ACCEPTED, "rejected")


def pair_key(a: int, b: int):
    return min(a, b), max(a, b)


class ConnectionService(BaseService[Connection]):
    def __init__(
        self,
        db: AsyncSession,
        emitter: Optional[NotificationEmitter] = None,
        mailer: Optional[EmailService] = None,
    ):
        super().__init__(Connection, db)
        self.emitter = emitter or NotificationEmitter()
        self.mailer = mailer or EmailService()

    # ---- lookups ----

    async def get_pair(self, a: int, b: int) -> Optional[Connection]:
        low, high = pair_key(a, b)
        stmt = select(Connection).where(
            Connection.user_low_id == low,
            Connection.user_high_id == high,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _get_active_user(self, user_id: int) -> Optional[User]:
        stmt = select(User).where(User.user_id == user_id, User.is_active == True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _get_with_status(self, connection_id: int, status: str) -> Optional[Connection]:
        stmt = select(Connection).where(
            Connection.connection_id == connection_id,
            Connection.status == status,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _active_mentorship(self, a: int, b: int) -> Optional[Mentorship]:
        stmt = (
            select(Mentorship)
            .where(
                or_(
                    and_(Mentorship.mentor_id == a, Mentorship.mentee_id == b),
                    and_(Mentorship.mentor_id == b, Mentorship.mentee_id == a),
                ),
                Mentorship.status.in_(MENTORSHIP_RELATIONSHIP_STATUSES),
            )
            .order_by(desc(Mentorship.mentorship_id))
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def are_connected(self, a: int, b: int) -> bool:
        connection = await self.get_pair(a, b)
        return connection is not None and connection.status == CONNECTION_ACCEPTED

    async def can_message(self, a: int, b: int) -> bool:
        """Accepted connection or a requested/active/completed mentorship."""
        if a == b:
            return False
        if await self.are_connected(a, b):
            return True
        return await self._active_mentorship(a, b) is not None

    async def accepted_connection_ids(self, user_id: int, candidate_ids: Iterable[int]) -> Set[int]:
        """The subset of candidate_ids that are accepted connections of user_id."""
        candidates = set(candidate_ids)
        if not candidates:
            return set()
        other_id = case(
            (Connection.sender_id == user_id, Connection.receiver_id),
            else_=Connection.sender_id,
        )
        stmt = select(other_id).where(
            or_(Connection.sender_id == user_id, Connection.receiver_id == user_id),
            Connection.status == CONNECTION_ACCEPTED,
            other_id.in_(candidates),
        )
        result = await self.db.execute(stmt)
        return set(result.scalars().all())

    # ---- state transitions ----

    async def send_request(self, principal, receiver_id: Optional[int]) -> int:
        if not is_peer_eligible(principal):
            raise ForbiddenError("Administrators cannot send connection requests")
        if receiver_id is None:
            raise InvalidArgumentError("Receiver ID is required")
        if receiver_id == principal.user_id:
            raise InvalidArgumentError("Cannot send connection request to yourself")

        receiver = await self._get_active_user(receiver_id)
        if receiver is None:
            raise NotFoundError("User not found")
        if not is_peer_eligible(receiver):
            raise ForbiddenError("Cannot send connection requests to administrators")

        existing = await self.get_pair(principal.user_id, receiver_id)
        if existing is not None:
            if existing.status == CONNECTION_PENDING:
                if existing.sender_id == principal.user_id:
                    raise ConflictError("Connection request already pending")
                raise ConflictError("This user has already sent you a connection request")
            raise ConflictError("Already connected with this user")

        connection = Connection(
            sender_id=principal.user_id,
            receiver_id=receiver_id,
            status=CONNECTION_PENDING,
        )
        self.db.add(connection)
        try:
            await self.db.commit()
        except IntegrityError:
            # Another request for the same pair committed first
            await self.db.rollback()
            raise ConflictError("A connection already exists with this user")
        connection_id = connection.connection_id
        logger.info(f"Connection request {connection_id}: {principal.user_id} -> {receiver_id}")

        await self.emitter.notify(
            receiver_id,
            "connection_request",
            "New Connection Request",
            f"{principal.full_name} sent you a connection request",
            related_id=principal.user_id,
            category="connection",
        )
        await self.mailer.send(receiver.email, "connection_request", {
            "receiver_name": receiver.full_name,
            "sender_name": principal.full_name,
            "sender_id": principal.user_id,
        })
        return connection_id

    async def accept_request(self, principal, connection_id: int):
        if not is_peer_eligible(principal):
            raise ForbiddenError("Administrators cannot manage connection requests")

        stmt = (
            select(Connection, User)
            .join(User, User.user_id == Connection.sender_id)
            .where(Connection.connection_id == connection_id, User.is_active == True)
        )
        row = (await self.db.execute(stmt)).first()
        if row is None:
            raise NotFoundError("Connection request not found")
        connection, sender = row

        if not is_peer_eligible(sender):
            raise ForbiddenError("Cannot accept connection from administrators")
        if connection.receiver_id != principal.user_id:
            raise ForbiddenError("Not authorized to accept this request")
        if connection.status == CONNECTION_ACCEPTED:
            raise ConflictError("Connection already accepted")

        # Conditional on the prior status so two accepts cannot both succeed
        result = await self.db.execute(
            update(Connection)
            .where(
                Connection.connection_id == connection_id,
                Connection.status == CONNECTION_PENDING,
            )
            .values(status=CONNECTION_ACCEPTED, updated_at=utcnow())
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise ConflictError("Connection already accepted")
        await self.db.commit()
        logger.info(f"Connection {connection_id} accepted by {principal.user_id}")

        await self.emitter.notify(
            sender.user_id,
            "connection_accepted",
            "Connection Accepted",
            f"{principal.full_name} accepted your connection request",
            related_id=principal.user_id,
            category="connection",
        )
        await self.mailer.send(sender.email, "connection_accepted", {
            "sender_name": sender.full_name,
            "accepter_name": principal.full_name,
            "accepter_id": principal.user_id,
        })

    async def reject_request(self, principal, connection_id: int):
        if not is_peer_eligible(principal):
            raise ForbiddenError("Administrators cannot manage connection requests")
        connection = await self._get_with_status(connection_id, CONNECTION_PENDING)
        if connection is None:
            raise NotFoundError("Connection request not found")
        if connection.receiver_id != principal.user_id:
            raise ForbiddenError("Not authorized to reject this request")
        await self.hard_delete(connection)

    async def cancel_request(self, principal, connection_id: int):
        if not is_peer_eligible(principal):
            raise ForbiddenError("Administrators cannot manage connection requests")
        connection = await self._get_with_status(connection_id, CONNECTION_PENDING)
        if connection is None:
            raise NotFoundError("Connection request not found")
        if connection.sender_id != principal.user_id:
            raise ForbiddenError("Not authorized to cancel this request")
        await self.hard_delete(connection)

    async def remove_connection(self, principal, connection_id: int):
        if not is_peer_eligible(principal):
            raise ForbiddenError("Administrators cannot manage connections")
        connection = await self._get_with_status(connection_id, CONNECTION_ACCEPTED)
        if connection is None:
            raise NotFoundError("Connection not found")
        if principal.user_id not in (connection.sender_id, connection.receiver_id):
            raise ForbiddenError("Not authorized to remove this connection")
        await self.hard_delete(connection)
        logger.info(f"Connection {connection_id} removed by {principal.user_id}")

    async def respond_to_request(self, principal, connection_id: int, decision: Optional[str]) -> str:
        if not is_peer_eligible(principal):
            raise ForbiddenError("Administrators cannot manage connection requests")
        if decision not in RESPONSE_DECISIONS:
            raise InvalidArgumentError('Invalid status. Must be "accepted" or "rejected"')
        if decision == CONNECTION_ACCEPTED:
            await self.accept_request(principal, connection_id)
        else:
            await self.reject_request(principal, connection_id)
        return decision

    # ---- queries ----

    async def get_connection_status(self, principal, target_id: int) -> Dict[str, Any]:
        if target_id == principal.user_id:
            return {"status": "self"}

        result = await self.db.execute(select(User.role).where(User.user_id == target_id))
        if is_admin_role(result.scalar_one_or_none()):
            return {"status": "admin"}
        if not is_peer_eligible(principal):
            return {"status": "admin_user"}

        connection = await self.get_pair(principal.user_id, target_id)
        if connection is None:
            status = {"status": "none"}
        elif connection.status == CONNECTION_ACCEPTED:
            status = {"status": "accepted", "connection_id": connection.connection_id}
        elif connection.sender_id == principal.user_id:
            status = {"status": "sent", "connection_id": connection.connection_id}
        else:
            status = {"status": "received", "connection_id": connection.connection_id}

        mentorship = await self._active_mentorship(principal.user_id, target_id)
        if mentorship is None:
            status["mentorship_relationship"] = False
        else:
            status.update({
                "mentorship_relationship": True,
                "mentorship_status": mentorship.status,
                "is_mentor": mentorship.mentor_id == principal.user_id,
            })
        return status

    async def get_my_connections(
        self, principal, search: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> Dict[str, Any]:
        if not is_peer_eligible(principal):
            return {"connections": [], "pagination": Paginator.offset_meta(limit, offset, 0)}

        user_id = principal.user_id
        other = aliased(User)
        other_id = case(
            (Connection.sender_id == user_id, Connection.receiver_id),
            else_=Connection.sender_id,
        )
        stmt = (
            select(
                Connection.connection_id,
                Connection.status,
                Connection.created_at,
                other.user_id.label("connection_user_id"),
                other.first_name,
                other.last_name,
                other.profile_picture,
                other.current_city,
                other.current_country,
                WorkExperience.company_name,
                WorkExperience.position,
                School.school_name,
                AlumniEducation.end_year.label("graduation_year"),
            )
            .select_from(Connection)
            .join(other, other.user_id == other_id)
            .outerjoin(WorkExperience, and_(
                WorkExperience.user_id == other.user_id, WorkExperience.is_current == True
            ))
            .outerjoin(AlumniEducation, and_(
                AlumniEducation.user_id == other.user_id, AlumniEducation.is_verified == True
            ))
            .outerjoin(School, School.school_id == AlumniEducation.school_id)
            .where(
                or_(Connection.sender_id == user_id, Connection.receiver_id == user_id),
                Connection.status == CONNECTION_ACCEPTED,
                other.is_active == True,
                other.role == ROLE_ALUMNI,
            )
        )
        if search:
            term = f"%{search.strip()}%"
            stmt = stmt.where(or_(
                (other.first_name + " " + other.last_name).ilike(term),
                WorkExperience.company_name.ilike(term),
                School.school_name.ilike(term),
            ))

        total = (await self.db.execute(select(func.count()).select_from(stmt.subquery()))).scalar() or 0
        rows = await self.db.execute(
            stmt.order_by(desc(Connection.updated_at)).limit(limit).offset(offset)
        )
        return {
            "connections": [dict(row._mapping) for row in rows],
            "pagination": Paginator.offset_meta(limit, offset, total),
        }

    async def _requests(self, principal, incoming: bool, limit: int, offset: int) -> Dict[str, Any]:
        if not is_peer_eligible(principal):
            return {"requests": [], "pagination": Paginator.offset_meta(limit, offset, 0)}

        if incoming:
            mine, theirs = Connection.receiver_id, Connection.sender_id
        else:
            mine, theirs = Connection.sender_id, Connection.receiver_id
        other = aliased(User)
        stmt = (
            select(
                Connection.connection_id,
                Connection.created_at,
                other.user_id,
                other.first_name,
                other.last_name,
                other.profile_picture,
                other.current_city,
                other.current_country,
                other.bio,
                WorkExperience.company_name,
                WorkExperience.position,
                School.school_name,
                AlumniEducation.end_year.label("graduation_year"),
            )
            .select_from(Connection)
            .join(other, and_(
                other.user_id == theirs, other.is_active == True, other.role == ROLE_ALUMNI
            ))
            .outerjoin(WorkExperience, and_(
                WorkExperience.user_id == other.user_id, WorkExperience.is_current == True
            ))
            .outerjoin(AlumniEducation, and_(
                AlumniEducation.user_id == other.user_id, AlumniEducation.is_verified == True
            ))
            .outerjoin(School, School.school_id == AlumniEducation.school_id)
            .where(mine == principal.user_id, Connection.status == CONNECTION_PENDING)
        )
        total = (await self.db.execute(select(func.count()).select_from(stmt.subquery()))).scalar() or 0
        rows = await self.db.execute(
            stmt.order_by(desc(Connection.created_at)).limit(limit).offset(offset)
        )
        return {
            "requests": [dict(row._mapping) for row in rows],
            "pagination": Paginator.offset_meta(limit, offset, total),
        }

    async def get_pending_requests(self, principal, limit: int = 20, offset: int = 0) -> Dict[str, Any]:
        """Pending requests other alumni sent to the caller."""
        return await self._requests(principal, True, limit, offset)

    async def get_sent_requests(self, principal, limit: int = 20, offset: int = 0) -> Dict[str, Any]:
        """Pending requests the caller sent that await a response."""
        return await self._requests(principal, False, limit, offset)

    async def get_connections_with_details(self, principal) -> list:
        if not is_peer_eligible(principal):
            return []

        user_id = principal.user_id
        other_id = case(
            (Connection.sender_id == user_id, Connection.receiver_id),
            else_=Connection.sender_id,
        )
        stmt = (
            select(
                User.user_id.label("connection_user_id"),
                User.first_name,
                User.last_name,
                User.profile_picture,
                User.current_city,
                User.current_country,
                AlumniEducation.school_id,
                School.school_name,
                AlumniEducation.end_year.label("graduation_year"),
                AlumniEducation.end_year.label("batch_year"),
            )
            .distinct()
            .select_from(Connection)
            .join(User, User.user_id == other_id)
            .outerjoin(AlumniEducation, and_(
                AlumniEducation.user_id == User.user_id, AlumniEducation.is_verified == True
            ))
            .outerjoin(School, School.school_id == AlumniEducation.school_id)
            .where(
                Connection.status == CONNECTION_ACCEPTED,
                or_(Connection.sender_id == user_id, Connection.receiver_id == user_id),
                User.is_active == True,
                User.role == ROLE_ALUMNI,
            )
            .order_by(User.first_name, User.last_name)
        )
        rows = await self.db.execute(stmt)
        return [dict(row._mapping) for row in rows]
