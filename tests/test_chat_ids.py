import pytest

from app.domain.chats.chat_ids import canonical_chat_id, derive_chat_id, split_chat_id


def test_derive_is_order_independent() -> None:
    assert derive_chat_id("bob", "alice") == derive_chat_id("alice", "bob") == "alice_bob"


def test_derive_self_chat() -> None:
    assert derive_chat_id("alice", "alice") == "alice_alice"


@pytest.mark.parametrize("value", ["", "alice", "alice_", "_bob", "a_b_c", None, 42])
def test_split_rejects_malformed(value) -> None:
    assert split_chat_id(value) is None


def test_canonical_reorders_members() -> None:
    assert canonical_chat_id("bob_alice") == "alice_bob"
    assert canonical_chat_id("alice_bob") == "alice_bob"
    assert canonical_chat_id("nobody") is None
