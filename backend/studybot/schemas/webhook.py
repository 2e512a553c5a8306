"""Inbound Zalo bot webhook payloads."""

from pydantic import BaseModel, ConfigDict, Field

TEXT_EVENT = "message.text.received"
IMAGE_EVENT = "message.image.received"
STICKER_EVENT = "message.sticker.received"
UNSUPPORTED_EVENT = "message.unsupported.received"


class WebhookModel(BaseModel):
    """Unknown fields are kept; the platform adds new ones over time."""

    model_config = ConfigDict(extra="allow")


class WebhookSender(WebhookModel):
    id: str
    display_name: str = ""
    is_bot: bool = False


class WebhookChat(WebhookModel):
    id: str
    chat_type: str | None = None


class WebhookMessage(WebhookModel):
    sender: WebhookSender = Field(alias="from")
    chat: WebhookChat
    message_id: str | None = None
    date: int | None = None
    text: str | None = None
    photo_url: str | None = None
    caption: str | None = None
    sticker: str | None = None
    url: str | None = None


class WebhookUpdate(WebhookModel):
    event_name: str
    message: WebhookMessage
