"""
Normalization of Telethon messages into storage records.

Telethon media/entity objects are loosely shaped; they are resolved here,
once, into a closed set of media variants and plain dict annotations so
nothing past this module depends on Telethon classes.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from telethon.tl.types import (
    KeyboardButtonUrl,
    KeyboardButtonUrlAuth,
    MessageEntityBotCommand,
    MessageEntityCashtag,
    MessageEntityEmail,
    MessageEntityHashtag,
    MessageEntityMention,
    MessageEntityMentionName,
    MessageEntityPhone,
    MessageEntityTextUrl,
    MessageEntityUrl,
    MessageMediaDocument,
    MessageMediaEmpty,
    MessageMediaPhoto,
    ReplyInlineMarkup,
)


# Media variants

IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}


@dataclass(frozen=True)
class PhotoMedia:
    media_type = "photo"
    is_image = True
    extension = "jpg"


@dataclass(frozen=True)
class DocumentMedia:
    mime_type: Optional[str] = None
    media_type = "document"

    @property
    def is_image(self) -> bool:
        # Only formats we can name and serve; svg, heic, tiff stay plain documents
        return (self.mime_type or "").lower() in IMAGE_EXTENSIONS

    @property
    def extension(self) -> str:
        return IMAGE_EXTENSIONS.get((self.mime_type or "").lower(), "jpg")


@dataclass(frozen=True)
class OtherMedia:
    name: str = "unknown"
    is_image = False
    extension = None

    @property
    def media_type(self) -> str:
        return self.name


Media = Union[PhotoMedia, DocumentMedia, OtherMedia]


def classify_media(media: Any) -> Optional[Media]:
    """Resolve a Telethon media object into one of the media variants."""
    if media is None or isinstance(media, MessageMediaEmpty):
        return None
    if isinstance(media, MessageMediaPhoto):
        return PhotoMedia()
    if isinstance(media, MessageMediaDocument):
        document = getattr(media, "document", None)
        return DocumentMedia(mime_type=getattr(document, "mime_type", None))

    name = type(media).__name__
    if name.startswith("MessageMedia"):
        name = name[len("MessageMedia"):]
    return OtherMedia(name=name.lower() or "unknown")


# Annotations and buttons

ENTITY_TYPES = {
    MessageEntityUrl: "url",
    MessageEntityTextUrl: "text_url",
    MessageEntityHashtag: "hashtag",
    MessageEntityCashtag: "cashtag",
    MessageEntityMention: "mention",
    MessageEntityMentionName: "mention_name",
    MessageEntityEmail: "email",
    MessageEntityPhone: "phone",
    MessageEntityBotCommand: "bot_command",
}


def _utf16_slice(text: str, offset: int, length: int) -> str:
    # Telegram offsets count UTF-16 code units
    encoded = text.encode("utf-16-le")
    return encoded[offset * 2:(offset + length) * 2].decode("utf-16-le", errors="ignore")


def extract_entities(text: str, entities: Optional[List[Any]]) -> List[Dict[str, Any]]:
    """Link/tag spans of a message, in source order. Formatting entities are dropped."""
    result = []
    for entity in entities or []:
        entity_type = ENTITY_TYPES.get(type(entity))
        if entity_type is None:
            continue

        item = {
            "type": entity_type,
            "offset": entity.offset,
            "length": entity.length,
        }
        if isinstance(entity, MessageEntityTextUrl):
            item["url"] = entity.url
        elif isinstance(entity, MessageEntityUrl) and text:
            item["url"] = _utf16_slice(text, entity.offset, entity.length)
        result.append(item)
    return result


def extract_buttons(reply_markup: Any) -> List[Dict[str, str]]:
    """URL buttons of an inline keyboard, row by row."""
    if not isinstance(reply_markup, ReplyInlineMarkup):
        return []

    buttons = []
    for row in reply_markup.rows or []:
        for button in row.buttons or []:
            if isinstance(button, (KeyboardButtonUrl, KeyboardButtonUrlAuth)):
                buttons.append({"text": button.text, "url": button.url})
    return buttons


# Message record

@dataclass
class MessageRecord:
    """A message in storage shape. sender_name/media_url are filled in by the engine."""

    chat_id: str
    message_id: int
    text: str
    date: datetime
    sender_id: Optional[str] = None
    sender_name: Optional[str] = None
    media: Optional[Media] = None
    media_url: Optional[str] = None
    reply_to_message_id: Optional[int] = None
    forward_from: Optional[str] = None
    entities: List[Dict[str, Any]] = field(default_factory=list)
    buttons: List[Dict[str, str]] = field(default_factory=list)

    @property
    def has_media(self) -> bool:
        return self.media is not None

    @property
    def media_type(self) -> Optional[str]:
        return self.media.media_type if self.media is not None else None

    def to_row(self) -> Dict[str, Any]:
        """Column values for telegram_messages."""
        return {
            "chat_id": self.chat_id,
            "message_id": self.message_id,
            "sender_id": self.sender_id,
            "sender_name": self.sender_name,
            "text": self.text,
            "date": self.date,
            "has_media": self.has_media,
            "media_type": self.media_type,
            "media_url": self.media_url,
            "reply_to_message_id": self.reply_to_message_id,
            "forward_from": self.forward_from,
            "entities": self.entities or None,
            "buttons": self.buttons or None,
        }


def sender_display_name(sender: Any) -> Optional[str]:
    """First name for users, title for chats/channels, else username."""
    if sender is None:
        return None
    return (
        getattr(sender, "first_name", None)
        or getattr(sender, "title", None)
        or getattr(sender, "username", None)
        or None
    )


def normalize_message(message: Any, chat_id: str) -> Optional[MessageRecord]:
    """
    Convert a Telethon message into a MessageRecord.

    Returns None for messages with neither text nor media (service messages,
    empty posts); those are never stored.
    """
    text = getattr(message, "message", None) or ""
    media = classify_media(getattr(message, "media", None))
    if not text and media is None:
        return None

    sender_id = getattr(message, "sender_id", None)

    reply_to = getattr(message, "reply_to", None)
    reply_to_message_id = getattr(reply_to, "reply_to_msg_id", None) if reply_to else None

    fwd_from = getattr(message, "fwd_from", None)
    forward_from = getattr(fwd_from, "from_name", None) if fwd_from else None

    return MessageRecord(
        chat_id=chat_id,
        message_id=message.id,
        text=text,
        date=getattr(message, "date", None) or datetime.now(timezone.utc),
        sender_id=str(sender_id) if sender_id is not None else None,
        media=media,
        reply_to_message_id=reply_to_message_id,
        forward_from=forward_from,
        entities=extract_entities(text, getattr(message, "entities", None)),
        buttons=extract_buttons(getattr(message, "reply_markup", None)),
    )
