"""
app/services/connection_service.py

Purpose: Connection (friend request) state machine

- pending -> accepted | declined, declined -> pending on re-request
- At most one record per (sender, receiver, purpose); status lookups
  check both directions
- Notifies the other party on request/accept
- Repair helpers behind the diagnostics/fix endpoints
"""

from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.core.exceptions import BadRequestError, ConflictError, ResourceNotFoundError
from app.core.logging import get_logger, LogContext
from app.db.mongo import get_connections_collection, to_object_id
from app.models.connection import new_connection_document, serialize_connection
from app.models.user import user_summary
from app.realtime.hub import hub
from app.services import notification_service, user_service
from utils.constants import (
    CONNECTION_ACCEPTED,
    CONNECTION_DECLINED,
    CONNECTION_PENDING,
    DEFAULT_CONNECTION_PURPOSE,
    MSG_CONNECTION_EXISTS,
    MSG_CONNECTION_NOT_FOUND,
    MSG_CONNECTION_SELF,
    NOTIFICATION_CONNECTION_REQUEST,
    NOTIFICATION_OTHER,
)
from utils.time_utils import timestamp_ms, utc_now

logger = get_logger(__name__)


def _pair_query(user_a: ObjectId, user_b: ObjectId, purpose: Optional[str] = None) -> Dict[str, Any]:
    forward = {"sender_id": user_a, "receiver_id": user_b}
    reverse = {"sender_id": user_b, "receiver_id": user_a}
    if purpose:
        forward["purpose"] = purpose
        reverse["purpose"] = purpose
    return {"$or": [forward, reverse]}


def _brief(connection: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(connection["_id"]),
        "sender": str(connection["sender_id"]),
        "receiver": str(connection["receiver_id"]),
        "status": connection["status"],
        "purpose": connection.get("purpose"),
        "created_at": connection["created_at"].isoformat() if connection.get("created_at") else None,
    }


class ConnectionService:
    """Service for connection requests between users."""

    def _get_collection(self) -> AsyncIOMotorCollection:
        return get_connections_collection()

    async def find_between(self, user_a: ObjectId, user_b: ObjectId, purpose: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Newest record between two users in either direction.
        """
        cursor = self._get_collection().find(_pair_query(user_a, user_b, purpose)).sort("created_at", -1).limit(1)
        records = [doc async for doc in cursor]
        return records[0] if records else None

    async def are_connected(self, user_a: ObjectId, user_b: ObjectId) -> bool:
        query = _pair_query(user_a, user_b)
        query["status"] = CONNECTION_ACCEPTED
        return await self._get_collection().count_documents(query) > 0

    async def connected_user_ids(self, user_id: ObjectId) -> List[ObjectId]:
        cursor = self._get_collection().find(
            {"status": CONNECTION_ACCEPTED, "$or": [{"sender_id": user_id}, {"receiver_id": user_id}]}
        )
        return [
            doc["receiver_id"] if doc["sender_id"] == user_id else doc["sender_id"]
            async for doc in cursor
        ]

    async def related_user_ids(self, user_id: ObjectId) -> List[ObjectId]:
        """Everyone with any connection record with the user, any status."""
        cursor = self._get_collection().find({"$or": [{"sender_id": user_id}, {"receiver_id": user_id}]})
        return [
            doc["receiver_id"] if doc["sender_id"] == user_id else doc["sender_id"]
            async for doc in cursor
        ]

    async def list_connections(self, user_id: ObjectId) -> List[Dict[str, Any]]:
        """
        Accepted connections, each with the other party populated.
        """
        cursor = self._get_collection().find(
            {"status": CONNECTION_ACCEPTED, "$or": [{"sender_id": user_id}, {"receiver_id": user_id}]}
        ).sort("updated_at", -1)
        records = [doc async for doc in cursor]

        others = [doc["receiver_id"] if doc["sender_id"] == user_id else doc["sender_id"] for doc in records]
        users = await user_service.get_users_by_ids(others)

        results = []
        for doc, other_id in zip(records, others):
            results.append({
                "connection_id": str(doc["_id"]),
                "user": user_summary(users.get(other_id)),
                "status": doc["status"],
                "purpose": doc.get("purpose"),
                "created_at": doc.get("created_at"),
                "updated_at": doc.get("updated_at"),
                "accepted_at": doc.get("accepted_at"),
            })
        return results

    async def _list_pending(self, query: Dict[str, Any], populate: str) -> List[Dict[str, Any]]:
        query["status"] = CONNECTION_PENDING
        cursor = self._get_collection().find(query).sort("created_at", -1)
        records = [doc async for doc in cursor]
        users = await user_service.get_users_by_ids(doc[f"{populate}_id"] for doc in records)

        results = []
        for doc in records:
            data = serialize_connection(doc)
            data[populate] = user_summary(users.get(doc[f"{populate}_id"]))
            results.append(data)
        return results

    async def pending_received(self, user_id: ObjectId) -> List[Dict[str, Any]]:
        return await self._list_pending({"receiver_id": user_id}, "sender")

    async def pending_sent(self, user_id: ObjectId) -> List[Dict[str, Any]]:
        return await self._list_pending({"sender_id": user_id}, "receiver")

    async def get_status(self, current_user_id: ObjectId, other_user_id: Any) -> Dict[str, Any]:
        """
        Connection status between the caller and another user.

        Returns:
            {"status": "none"} or {connection_id, status, direction}

        Raises:
            BadRequestError: Malformed id
            ResourceNotFoundError: Unknown user
        """
        other_id = to_object_id(other_user_id, "user_id")
        await user_service.require_user(other_id)

        connection = await self.find_between(current_user_id, other_id)
        if not connection:
            return {"status": "none"}

        return {
            "connection_id": str(connection["_id"]),
            "status": connection["status"],
            "direction": "outgoing" if connection["sender_id"] == current_user_id else "incoming",
            "purpose": connection.get("purpose"),
        }

    async def _reopen(self, connection: Dict[str, Any], sender: Dict[str, Any]) -> Dict[str, Any]:
        """
        Turns a declined record back into a pending request from ``sender``.
        """
        update: Dict[str, Any] = {"status": CONNECTION_PENDING, "accepted_at": None, "updated_at": utc_now()}
        if connection["sender_id"] != sender["_id"]:
            update["sender_id"] = connection["receiver_id"]
            update["receiver_id"] = connection["sender_id"]

        try:
            reopened = await self._get_collection().find_one_and_update(
                {"_id": connection["_id"]},
                {"$set": update},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise ConflictError("A request in the other direction already exists")

        await notification_service.notify_connection_request(reopened, sender)
        logger.info(f"Declined connection {connection['_id']} reopened as pending")
        return reopened

    async def send_request(self, sender: Dict[str, Any], receiver_id: Any, purpose: str = DEFAULT_CONNECTION_PURPOSE) -> Dict[str, Any]:
        """
        Sends (or re-sends) a connection request.

        Args:
            sender: Current user document
            receiver_id: Target user id
            purpose: Request purpose

        Returns:
            {"connection", "created", "message"}; ``created`` is True only
            when a new record was inserted

        Raises:
            BadRequestError: Request to self or malformed id
            ResourceNotFoundError: Unknown target user
        """
        receiver_oid = to_object_id(receiver_id, "user_id")
        sender_id = sender["_id"]
        purpose = purpose or DEFAULT_CONNECTION_PURPOSE

        if receiver_oid == sender_id:
            raise BadRequestError(MSG_CONNECTION_SELF)
        receiver = await user_service.require_user(receiver_oid)

        with LogContext(user_id=str(sender_id)):
            existing = await self.find_between(sender_id, receiver_oid, purpose)
            if existing:
                if existing["status"] == CONNECTION_DECLINED:
                    reopened = await self._reopen(existing, sender)
                    return {"connection": reopened, "created": False, "message": "Connection request sent"}

                logger.info(f"Connection already {existing['status']}: {existing['_id']}")
                return {"connection": existing, "created": False, "message": MSG_CONNECTION_EXISTS}

            doc = new_connection_document(sender_id, receiver_oid, utc_now(), purpose)
            try:
                result = await self._get_collection().insert_one(doc)
            except DuplicateKeyError:
                # Lost a race with a concurrent request
                existing = await self.find_between(sender_id, receiver_oid, purpose)
                if existing is None:
                    raise
                return {"connection": existing, "created": False, "message": MSG_CONNECTION_EXISTS}

            doc["_id"] = result.inserted_id
            logger.info(
                f"Connection request sent to {receiver.get('username')}",
                extra={"connection_id": str(doc["_id"])}
            )
            await notification_service.notify_connection_request(doc, sender)
            return {"connection": doc, "created": True, "message": "Connection request sent"}

    async def _respond(self, user: Dict[str, Any], connection_id: Any, status: str) -> Dict[str, Any]:
        now = utc_now()
        update: Dict[str, Any] = {"status": status, "updated_at": now}
        if status == CONNECTION_ACCEPTED:
            update["accepted_at"] = now

        connection = await self._get_collection().find_one_and_update(
            {
                "_id": to_object_id(connection_id, "connection_id"),
                "receiver_id": user["_id"],
                "status": CONNECTION_PENDING,
            },
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
        if not connection:
            raise ResourceNotFoundError(MSG_CONNECTION_NOT_FOUND, code="CONNECTION_NOT_FOUND")

        logger.info(
            f"Connection {status}",
            extra={"user_id": str(user["_id"]), "connection_id": str(connection["_id"])}
        )
        return connection

    async def accept(self, user: Dict[str, Any], connection_id: Any) -> Dict[str, Any]:
        """
        Receiver accepts a pending request; the sender is notified.
        """
        connection = await self._respond(user, connection_id, CONNECTION_ACCEPTED)
        name = user.get("full_name") or user.get("username")

        await notification_service.create_notification(
            connection["sender_id"],
            NOTIFICATION_OTHER,
            "Connection Accepted",
            f"{name} accepted your connection request",
            connection_id=connection["_id"],
            sender_id=user["_id"],
            sender_name=user.get("full_name"),
            sender_avatar=user.get("profile_picture"),
            metadata={"event": "connection_accepted", "connection_id": str(connection["_id"])},
            url="/connections",
        )
        await hub.send_to_user(
            str(connection["sender_id"]),
            "connection_accepted",
            {"connection_id": connection["_id"], "user": user_summary(user)},
        )
        return connection

    async def decline(self, user: Dict[str, Any], connection_id: Any) -> Dict[str, Any]:
        return await self._respond(user, connection_id, CONNECTION_DECLINED)

    async def cancel(self, user: Dict[str, Any], connection_id: Any):
        """
        Sender withdraws a pending request. The record and its request
        notification are removed.
        """
        connection = await self._get_collection().find_one_and_delete({
            "_id": to_object_id(connection_id, "connection_id"),
            "sender_id": user["_id"],
            "status": CONNECTION_PENDING,
        })
        if not connection:
            raise ResourceNotFoundError(MSG_CONNECTION_NOT_FOUND, code="CONNECTION_NOT_FOUND")

        removed = await notification_service.delete_for_connection(connection["_id"])
        logger.info(
            f"Connection request cancelled ({removed} notifications removed)",
            extra={"connection_id": str(connection["_id"])}
        )

    async def remove(self, user: Dict[str, Any], connection_id: Any):
        """Either party deletes the connection."""
        result = await self._get_collection().delete_one({
            "_id": to_object_id(connection_id, "connection_id"),
            "$or": [{"sender_id": user["_id"]}, {"receiver_id": user["_id"]}],
        })
        if result.deleted_count == 0:
            raise ResourceNotFoundError("Connection not found", code="CONNECTION_NOT_FOUND")

    async def list_all(self) -> List[Dict[str, Any]]:
        cursor = self._get_collection().find().sort("created_at", -1)
        return [serialize_connection(doc) async for doc in cursor]

    async def cleanup_duplicates(self, user_a: ObjectId, user_b: ObjectId, purpose: Optional[str] = None) -> Dict[str, Any]:
        """
        Keeps the newest record between two users and deletes the rest.

        Returns:
            {"removed": n, "kept_connection": id or None}
        """
        cursor = self._get_collection().find(_pair_query(user_a, user_b, purpose)).sort("created_at", -1)
        records = [doc async for doc in cursor]
        if len(records) <= 1:
            return {"removed": 0, "kept_connection": str(records[0]["_id"]) if records else None}

        to_delete = [doc["_id"] for doc in records[1:]]
        await self._get_collection().delete_many({"_id": {"$in": to_delete}})
        logger.warning(f"Removed {len(to_delete)} duplicate connections between {user_a} and {user_b}")
        return {"removed": len(to_delete), "kept_connection": str(records[0]["_id"])}

    async def diagnostics(self, user: Dict[str, Any], other_user_id: Any, purpose: Optional[str] = None) -> Dict[str, Any]:
        """
        Everything stored about the pair, for support/debugging.
        """
        other_id = to_object_id(other_user_id, "user_id")
        target = await user_service.require_user(other_id)
        me = user["_id"]
        base = {"purpose": purpose} if purpose else {}

        collection = self._get_collection()
        direct = await collection.find_one({**base, "sender_id": me, "receiver_id": other_id})
        reverse = await collection.find_one({**base, "sender_id": other_id, "receiver_id": me})

        cursor = collection.find({
            **base,
            "$or": [
                {"sender_id": me}, {"receiver_id": me},
                {"sender_id": other_id}, {"receiver_id": other_id},
            ],
        })
        all_records = []
        async for doc in cursor:
            data = _brief(doc)
            data["is_between_target_users"] = {doc["sender_id"], doc["receiver_id"]} == {me, other_id}
            all_records.append(data)

        if direct or reverse:
            recommendation = "Connection exists - use the existing connection"
        elif all_records:
            recommendation = "No direct connection found, but users have other connections"
        else:
            recommendation = "No connections found - should be able to create a new connection"

        return {
            "user_info": {
                "current_user": {"id": str(me), "email": user.get("email"), "name": user.get("full_name") or user.get("username")},
                "target_user": {"id": str(other_id), "email": target.get("email"), "name": target.get("full_name") or target.get("username")},
            },
            "purpose_filter": purpose or "any",
            "direct_connection": _brief(direct) if direct else None,
            "reverse_connection": _brief(reverse) if reverse else None,
            "relevant_connections": [c for c in all_records if c["is_between_target_users"]],
            "total_connections": len(all_records),
            "all_user_connections": all_records,
            "index_info": list((await collection.index_information()).keys()),
            "recommendation": recommendation,
        }

    async def repair_pair(self, user: Dict[str, Any], other_user_id: Any, purpose: str = DEFAULT_CONNECTION_PURPOSE) -> Dict[str, Any]:
        """
        Removes duplicates between the pair, then returns the surviving
        record or creates a fresh pending request that bypasses the pair
        index via ``force_unique``.
        """
        other_id = to_object_id(other_user_id, "user_id")
        if other_id == user["_id"]:
            raise BadRequestError(MSG_CONNECTION_SELF)
        await user_service.require_user(other_id)
        purpose = purpose or DEFAULT_CONNECTION_PURPOSE

        cleanup = await self.cleanup_duplicates(user["_id"], other_id)
        existing = await self.find_between(user["_id"], other_id, purpose)
        if existing:
            return {
                "message": "Connection fixed - existing connection found",
                "connection": existing,
                "created": False,
                "cleanup": cleanup,
            }

        doc = new_connection_document(user["_id"], other_id, utc_now(), purpose, force_unique=timestamp_ms())
        result = await self._get_collection().insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"Repair created connection {doc['_id']}")
        return {
            "message": "Connection fixed - created new connection",
            "connection": doc,
            "created": True,
            "cleanup": cleanup,
        }

    async def reset_declined(self, user: Dict[str, Any], other_user_id: Any) -> Dict[str, Any]:
        """
        Re-opens a declined request between the pair with the caller as
        sender; any other status is reported unchanged.

        Raises:
            ResourceNotFoundError: No record between the users
        """
        other_id = to_object_id(other_user_id, "user_id")
        connection = await self.find_between(user["_id"], other_id)
        if not connection:
            raise ResourceNotFoundError("No connection found", code="CONNECTION_NOT_FOUND")

        if connection["status"] == CONNECTION_DECLINED:
            connection = await self._reopen(connection, user)
            return {"message": "Connection updated from declined to pending", "connection": connection}

        return {"message": f"Connection already in {connection['status']} state", "connection": connection}

    async def send_test_notification(self, user: Dict[str, Any], other_user_id: Any) -> Dict[str, Any]:
        other_id = to_object_id(other_user_id, "user_id")
        await user_service.require_user(other_id)
        name = user.get("full_name") or user.get("username")
        return await notification_service.create_notification(
            other_id,
            NOTIFICATION_CONNECTION_REQUEST,
            "Test Connection Request",
            f"Test notification from {name}",
            sender_id=user["_id"],
            sender_name=user.get("full_name"),
            sender_avatar=user.get("profile_picture"),
            metadata={"test": True},
        )


connection_service = ConnectionService()


def get_connection_service() -> ConnectionService:
    return connection_service
