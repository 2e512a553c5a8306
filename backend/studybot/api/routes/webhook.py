"""Zalo bot webhook.

Updates are acknowledged immediately and processed in a background task,
so the platform never waits on the database or on outbound sends.
"""

import asyncio
import logging
import random

from fastapi import APIRouter, BackgroundTasks, Depends

from studybot import responses
from studybot.api.deps import Context, verify_webhook_secret
from studybot.context import AppContext
from studybot.db.models import MessageDirection, MessageType
from studybot.schemas.webhook import (
    IMAGE_EVENT,
    STICKER_EVENT,
    TEXT_EVENT,
    UNSUPPORTED_EVENT,
    WebhookUpdate,
)
from studybot.services.bot_config import BotConfigService
from studybot.services.dispatcher import IncomingText
from studybot.services.messages import MessageLog
from studybot.services.users import UserService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhook"])

_configs = BotConfigService()
_messages = MessageLog()
_users = UserService()


async def _handle_text(context: AppContext, update: WebhookUpdate) -> str | None:
    message = update.message
    await context.bot.send_typing_action(message.chat.id)
    if context.settings.typing_delay_seconds > 0:
        await asyncio.sleep(context.settings.typing_delay_seconds)

    incoming = IncomingText(
        user_id=message.sender.id,
        chat_id=message.chat.id,
        display_name=message.sender.display_name,
        text=message.text or "",
    )
    async with context.database.session() as db:
        if not await _configs.is_bot_enabled(db):
            user = await _users.find_or_create(db, incoming.user_id, incoming.display_name)
            await _messages.save(
                db, user.id, incoming.text, MessageDirection.INCOMING, chat_id=incoming.chat_id
            )
            logger.info("Bot disabled, not replying to %s", incoming.user_id)
            return None

        result = await context.dispatcher.dispatch(db, incoming)
    return result.response_text


async def _handle_media(
    context: AppContext, update: WebhookUpdate, content: str, message_type: MessageType, reply: str
) -> str:
    message = update.message
    async with context.database.session() as db:
        user = await _users.find_or_create(db, message.sender.id, message.sender.display_name)
        await _messages.save(db, user.id, content, MessageDirection.INCOMING, message_type, chat_id=message.chat.id)
        await _messages.save(db, user.id, reply, MessageDirection.OUTGOING, message_type, chat_id=message.chat.id)
    return reply


async def process_update(context: AppContext, update: WebhookUpdate) -> None:
    """Handle one webhook update end to end and send the reply, if any."""
    message = update.message
    logger.info("Received %s from %s", update.event_name, message.sender.id)

    try:
        if update.event_name == TEXT_EVENT:
            reply = await _handle_text(context, update)
        elif update.event_name == IMAGE_EVENT:
            reply = await _handle_media(
                context,
                update,
                f"Photo URL: {message.photo_url}",
                MessageType.IMAGE,
                responses.IMAGE_ACK.format(name=message.sender.display_name),
            )
        elif update.event_name == STICKER_EVENT:
            reply = await _handle_media(
                context,
                update,
                f"Sticker ID: {message.sticker}",
                MessageType.STICKER,
                random.choice(responses.STICKER_ACKS),
            )
        elif update.event_name == UNSUPPORTED_EVENT:
            reply = await _handle_media(
                context,
                update,
                "Unsupported message",
                MessageType.FILE,
                responses.UNSUPPORTED_ACK,
            )
        else:
            logger.info("Ignoring unknown event %s", update.event_name)
            return
    except Exception:
        logger.exception("Error processing %s from %s", update.event_name, message.sender.id)
        reply = responses.ERROR_GENERAL

    if reply:
        await context.bot.send_message(message.chat.id, reply)


@router.post("/webhook", dependencies=[Depends(verify_webhook_secret)])
async def receive_update(
    update: WebhookUpdate,
    background_tasks: BackgroundTasks,
    context: Context,
) -> dict[str, bool]:
    """Accept a Zalo bot update and process it after responding."""
    background_tasks.add_task(process_update, context, update)
    return {"ok": True}
