"""Selection of the chats a run should sync."""

from typing import Iterable, List, Sequence

from app.models.telegram_chat import ChatType
from app.services.telegram_source_client import Conversation


def title_matches_allowlist(title: str, allowlist: Sequence[str]) -> bool:
    """Substring match against any allow-list entry (case-sensitive)."""
    if not title:
        return False
    return any(entry and entry in title for entry in allowlist)


def select_target_chats(
    conversations: Iterable[Conversation],
    allowlist: Sequence[str],
) -> List[Conversation]:
    """
    Keep group/supergroup/channel conversations whose title matches the allow-list.

    Private chats never qualify, an empty allow-list selects nothing, and a
    chat_id listed twice is kept once (first occurrence). Source order is preserved.
    """
    selected = []
    seen = set()

    for conversation in conversations:
        if conversation.kind not in ChatType.SYNCABLE:
            continue
        if not title_matches_allowlist(conversation.title, allowlist):
            continue
        if conversation.chat_id in seen:
            continue
        seen.add(conversation.chat_id)
        selected.append(conversation)

    return selected
