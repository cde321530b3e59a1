import asyncio
import logging

from app.core.logging import LogContext, get_logger

logger = get_logger("tests.logging")


def records_for(caplog, message):
    return [record for record in caplog.records if record.getMessage() == message]


def test_context_fields_attach_to_records(caplog):
    caplog.set_level(logging.INFO, logger="blaze")
    with LogContext(user_id="alice-id", connection_id="conn-1"):
        logger.info("inside context")
    logger.info("after context")

    inside = records_for(caplog, "inside context")[0]
    assert inside.user_id == "alice-id"
    assert inside.connection_id == "conn-1"
    assert not hasattr(records_for(caplog, "after context")[0], "user_id")


def test_explicit_extra_wins_over_context(caplog):
    caplog.set_level(logging.INFO, logger="blaze")
    with LogContext(user_id="sender-id"):
        logger.info("notify receiver", extra={"user_id": "receiver-id"})

    assert records_for(caplog, "notify receiver")[0].user_id == "receiver-id"


def test_nested_contexts_merge_and_restore(caplog):
    caplog.set_level(logging.INFO, logger="blaze")
    with LogContext(user_id="u1"):
        with LogContext(conversation_id="c1"):
            logger.info("nested")
        logger.info("outer again")

    nested = records_for(caplog, "nested")[0]
    assert (nested.user_id, nested.conversation_id) == ("u1", "c1")
    outer = records_for(caplog, "outer again")[0]
    assert outer.user_id == "u1"
    assert not hasattr(outer, "conversation_id")


def test_concurrent_tasks_keep_their_own_context(caplog):
    caplog.set_level(logging.INFO, logger="blaze")

    async def work(user_id):
        with LogContext(user_id=user_id):
            await asyncio.sleep(0)
            logger.info(f"working for {user_id}")
            await asyncio.sleep(0)
            logger.info(f"done for {user_id}", extra={"notification_id": "n"})

    async def main():
        await asyncio.gather(work("a"), work("b"))

    asyncio.run(main())

    for user_id in ("a", "b"):
        assert records_for(caplog, f"working for {user_id}")[0].user_id == user_id
        assert records_for(caplog, f"done for {user_id}")[0].user_id == user_id


def test_request_inside_active_context_succeeds(client, make_user, db):
    alice = make_user("alice")
    bob = make_user("bob")

    with LogContext(user_id="outer-caller"):
        response = client.post(
            "/api/connections/request",
            headers=alice["headers"],
            json={"user_id": bob["id"]},
        )

    assert response.status_code == 201
    assert response.json()["status"] == "pending"
