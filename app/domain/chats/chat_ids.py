"""Canonical chat identity derived from the two member IDs"""

from typing import Optional

SEPARATOR = "_"


def derive_chat_id(user_a: str, user_b: str) -> str:
    """Same result whichever member is passed first"""
    first, second = sorted((str(user_a), str(user_b)))
    return f"{first}{SEPARATOR}{second}"


def split_chat_id(chat_id) -> Optional[tuple[str, str]]:
    """Return the two member IDs encoded in ``chat_id`` or None if malformed"""
    if not isinstance(chat_id, str):
        return None
    parts = chat_id.split(SEPARATOR)
    if len(parts) != 2 or not all(parts):
        return None
    return parts[0], parts[1]


def canonical_chat_id(chat_id) -> Optional[str]:
    """Normalise a client supplied chat ID; None if it is not a member pair"""
    members = split_chat_id(chat_id)
    if members is None:
        return None
    return derive_chat_id(*members)
