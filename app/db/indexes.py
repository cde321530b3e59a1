"""
app/db/indexes.py

Purpose: Database index management

- Unique indexes that back the data invariants
  (one account per email/username, one connection per ordered pair,
  one preference/key document per user)
- Performance indexes for the badge, inbox and history queries
"""

from pymongo import ASCENDING, DESCENDING

from app.db.mongo import (
    get_users_collection,
    get_connections_collection,
    get_notifications_collection,
    get_user_preferences_collection,
    get_conversations_collection,
    get_messages_collection,
    get_user_keys_collection,
)
from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes():
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        users = get_users_collection()
        connections = get_connections_collection()
        notifications = get_notifications_collection()
        preferences = get_user_preferences_collection()
        conversations = get_conversations_collection()
        messages = get_messages_collection()
        keys = get_user_keys_collection()

        logger.info("Creating database indexes...")

        # ==============================================
        # USERS
        # ==============================================
        await users.create_index("email", unique=True, name="email_unique")
        await users.create_index("username", unique=True, name="username_unique")
        await users.create_index("user_type", name="user_type_idx")
        logger.debug("Created indexes on users")

        # ==============================================
        # CONNECTIONS
        # ==============================================

        # force_unique is only set by the repair endpoint, so regular
        # requests collide on (sender, receiver, purpose)
        await connections.create_index(
            [
                ("sender_id", ASCENDING),
                ("receiver_id", ASCENDING),
                ("purpose", ASCENDING),
                ("force_unique", ASCENDING),
            ],
            unique=True,
            name="connection_pair_unique"
        )
        await connections.create_index("status", name="connection_status_idx")
        await connections.create_index("receiver_id", name="connection_receiver_idx")
        logger.debug("Created indexes on connections")

        # ==============================================
        # NOTIFICATIONS
        # ==============================================
        await notifications.create_index(
            [("user_id", ASCENDING), ("status", ASCENDING)],
            name="notification_user_status_idx"
        )
        await notifications.create_index(
            [("timestamp", DESCENDING)],
            name="notification_timestamp_idx"
        )
        await notifications.create_index("connection_id", name="notification_connection_idx")
        logger.debug("Created indexes on notifications")

        # ==============================================
        # PREFERENCES / KEYS
        # ==============================================
        await preferences.create_index("user_id", unique=True, name="preference_user_unique")
        await keys.create_index("user_id", unique=True, name="key_user_unique")
        await keys.create_index("fingerprint", name="key_fingerprint_idx")
        logger.debug("Created indexes on user_preferences and user_keys")

        # ==============================================
        # CHAT
        # ==============================================
        await conversations.create_index(
            "conversation_id", unique=True, name="conversation_id_unique"
        )
        await conversations.create_index("participants", name="conversation_participants_idx")
        await conversations.create_index(
            [("last_message.timestamp", DESCENDING)],
            name="conversation_recent_idx"
        )
        await messages.create_index(
            [("sender_id", ASCENDING), ("receiver_id", ASCENDING)],
            name="message_pair_idx"
        )
        await messages.create_index(
            "metadata.conversation_id", name="message_conversation_idx"
        )
        await messages.create_index(
            [("created_at", DESCENDING)], name="message_created_idx"
        )
        logger.debug("Created indexes on conversations and messages")

        logger.info("✅ All database indexes created successfully")

        connection_indexes = await connections.index_information()
        notification_indexes = await notifications.index_information()
        logger.info(
            f"Index summary: Connections={len(connection_indexes)}, "
            f"Notifications={len(notification_indexes)}"
        )

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise


if __name__ == "__main__":
    """
    Run this script directly to create indexes manually.
    """
    import asyncio
    from app.db.mongo import connect_to_mongo, close_mongo_connection

    async def main():
        await connect_to_mongo()
        await create_indexes()
        await close_mongo_connection()

    asyncio.run(main())
