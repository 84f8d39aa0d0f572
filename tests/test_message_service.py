# tests/test_message_service.py
import pytest
from sqlalchemy import func, select

from conftest import ALICE, BOB, CAROL, upload
from messaging_api.core.exceptions import (
    EditWindowExpiredError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from messaging_api.core.views import MessageStatus
from messaging_api.infrastructure.database.models import MessageModel, MessageType
from messaging_api.infrastructure.database.models.message_model import DELETED_MESSAGE_CONTENT


def _message_count(session) -> int:
    return session.execute(select(func.count(MessageModel.id))).scalar_one()


# -------------------------
# send
# -------------------------

def test_send_updates_conversation_activity(services, conversation, clock):
    clock.advance(minutes=3)
    msg = services.messages.send_message(sender_id=BOB, conversation_id=conversation.id, content="hi alice")

    assert msg.content == "hi alice"
    assert msg.message_type == MessageType.TEXT
    assert msg.sender.id == BOB
    assert msg.sent_at == clock.now
    assert msg.reactions == []
    assert msg.is_sent_by_current_user is True
    assert msg.status == MessageStatus.SENT

    view = services.conversations.get_conversation(user_id=ALICE, conversation_id=conversation.id)
    assert view.last_message_at == clock.now
    assert view.last_message.id == msg.id


def test_send_requires_membership(services, conversation):
    with pytest.raises(ForbiddenError):
        services.messages.send_message(sender_id=CAROL, conversation_id=conversation.id, content="let me in")
    with pytest.raises(ForbiddenError):
        services.messages.send_message(sender_id=ALICE, conversation_id=9999, content="nowhere")


@pytest.mark.parametrize(
    "content, message_type",
    [
        ("", MessageType.TEXT),
        ("   ", MessageType.TEXT),
        ("x" * 5001, MessageType.TEXT),
        ("fake system notice", MessageType.SYSTEM),
        ("hi", "sticker"),
    ],
)
def test_send_validation(services, conversation, content, message_type):
    with pytest.raises(ValidationError):
        services.messages.send_message(
            sender_id=ALICE, conversation_id=conversation.id, content=content, message_type=message_type
        )


def test_reply_preview(services, conversation):
    original = conversation.last_message
    reply = services.messages.send_message(
        sender_id=BOB,
        conversation_id=conversation.id,
        content="replying",
        reply_to_message_id=original.id,
    )

    assert reply.reply_to_message_id == original.id
    assert reply.reply_to_message.content == "hello"
    assert reply.reply_to_message.sender.id == ALICE


def test_reply_target_must_be_in_same_conversation(services, conversation):
    other = services.conversations.start_conversation(initiator_id=CAROL, participant_id=BOB, initial_message="x")

    with pytest.raises(ValidationError):
        services.messages.send_message(
            sender_id=BOB,
            conversation_id=conversation.id,
            content="wrong thread",
            reply_to_message_id=other.last_message.id,
        )


# -------------------------
# attachments
# -------------------------

def test_send_image_attachment(services, conversation, store):
    msg = services.messages.send_message(
        sender_id=ALICE,
        conversation_id=conversation.id,
        content="",
        attachment=upload(b"\x89PNG....", "logo.png", "image/png"),
    )

    assert msg.message_type == MessageType.IMAGE
    assert msg.attachment.is_image is True
    assert msg.attachment.name == "logo.png"
    assert msg.attachment.size == 8
    assert msg.attachment.url.startswith(f"/uploads/messages/{conversation.id}/")
    assert len(store.files) == 1


def test_non_image_attachment_becomes_file(services, conversation):
    msg = services.messages.send_message(
        sender_id=ALICE,
        conversation_id=conversation.id,
        content="invoice attached",
        message_type=MessageType.TEXT,
        attachment=upload(b"%PDF-1.4", "invoice.pdf", "application/pdf"),
    )

    assert msg.message_type == MessageType.FILE
    assert msg.attachment.mime_type == "application/pdf"
    assert msg.content == "invoice attached"


def test_disallowed_mime_is_rejected_before_upload(services, conversation, store, session):
    before = _message_count(session)

    with pytest.raises(ValidationError):
        services.messages.send_message(
            sender_id=ALICE,
            conversation_id=conversation.id,
            content="",
            attachment=upload(b"MZ", "setup.exe", "application/x-msdownload"),
        )

    assert store.files == {}
    assert _message_count(session) == before


def test_upload_failure_persists_nothing(services, conversation, store, session):
    before = _message_count(session)
    store.fail_next_save = True

    with pytest.raises(StorageError):
        services.messages.send_message(
            sender_id=ALICE,
            conversation_id=conversation.id,
            content="with file",
            attachment=upload(b"data", "notes.txt", "text/plain"),
        )

    assert _message_count(session) == before


def test_failed_insert_removes_uploaded_file(services, conversation, store, monkeypatch):
    def broken_add(model):
        raise RuntimeError("insert failed")

    monkeypatch.setattr(services.messages._msg_repo, "add", broken_add)

    with pytest.raises(RuntimeError):
        services.messages.send_message(
            sender_id=ALICE,
            conversation_id=conversation.id,
            content="",
            attachment=upload(b"data", "notes.txt", "text/plain"),
        )

    assert store.files == {}


# -------------------------
# edit
# -------------------------

def test_edit_inside_window(services, conversation, clock):
    msg = services.messages.send_message(sender_id=ALICE, conversation_id=conversation.id, content="draft")
    clock.advance(minutes=14, seconds=59)

    edited = services.messages.edit_message(editor_id=ALICE, message_id=msg.id, content="final")

    assert edited.content == "final"
    assert edited.is_edited is True
    assert edited.edited_at == clock.now


def test_edit_after_window_expires(services, conversation, clock):
    msg = services.messages.send_message(sender_id=ALICE, conversation_id=conversation.id, content="draft")
    clock.advance(minutes=15, seconds=1)

    with pytest.raises(EditWindowExpiredError):
        services.messages.edit_message(editor_id=ALICE, message_id=msg.id, content="too late")


def test_edit_by_non_owner_looks_like_missing(services, conversation):
    msg_id = conversation.last_message.id

    with pytest.raises(NotFoundError):
        services.messages.edit_message(editor_id=BOB, message_id=msg_id, content="hijack")
    with pytest.raises(NotFoundError):
        services.messages.edit_message(editor_id=ALICE, message_id=424242, content="ghost")


def test_edit_deleted_message(services, conversation):
    msg_id = conversation.last_message.id
    assert services.messages.delete_message(deleter_id=ALICE, message_id=msg_id)

    with pytest.raises(InvalidStateError):
        services.messages.edit_message(editor_id=ALICE, message_id=msg_id, content="revive")


def test_edit_rejects_empty_content(services, conversation):
    with pytest.raises(ValidationError):
        services.messages.edit_message(editor_id=ALICE, message_id=conversation.last_message.id, content="  ")


# -------------------------
# delete
# -------------------------

def test_soft_delete_keeps_position_and_count(services, conversation, clock, session):
    clock.advance(seconds=1)
    middle = services.messages.send_message(sender_id=BOB, conversation_id=conversation.id, content="oops")
    clock.advance(seconds=1)
    services.messages.send_message(sender_id=ALICE, conversation_id=conversation.id, content="after")

    assert services.messages.delete_message(deleter_id=BOB, message_id=middle.id) is True

    page = services.messages.get_conversation_messages(user_id=ALICE, conversation_id=conversation.id)
    assert page.total_count == 3
    assert [m.content for m in page.messages] == ["hello", DELETED_MESSAGE_CONTENT, "after"]
    assert page.messages[1].is_deleted is True


def test_delete_by_non_owner_returns_false(services, conversation):
    assert services.messages.delete_message(deleter_id=BOB, message_id=conversation.last_message.id) is False
    assert services.messages.delete_message(deleter_id=ALICE, message_id=777) is False


def test_delete_twice_keeps_first_timestamp(services, conversation, clock, session):
    msg_id = conversation.last_message.id
    first_at = clock.now
    assert services.messages.delete_message(deleter_id=ALICE, message_id=msg_id)

    clock.advance(minutes=5)
    assert services.messages.delete_message(deleter_id=ALICE, message_id=msg_id)

    row = session.get(MessageModel, msg_id)
    session.refresh(row)
    assert row.deleted_at == first_at
    assert row.content == DELETED_MESSAGE_CONTENT


# -------------------------
# paging
# -------------------------

def test_first_page_holds_latest_messages_ascending(services, conversation, clock):
    for sender, text in [(BOB, "one"), (ALICE, "two"), (BOB, "three")]:
        clock.advance(seconds=30)
        services.messages.send_message(sender_id=sender, conversation_id=conversation.id, content=text)

    page = services.messages.get_conversation_messages(
        user_id=BOB, conversation_id=conversation.id, page=1, page_size=2
    )

    assert [m.content for m in page.messages] == ["two", "three"]
    assert page.total_count == 4
    assert page.has_previous_page is True
    assert page.has_next_page is False

    last = services.messages.get_conversation_messages(
        user_id=BOB, conversation_id=conversation.id, page=2, page_size=2
    )
    assert [m.content for m in last.messages] == ["hello", "one"]
    assert last.has_previous_page is False
    assert last.has_next_page is True


def test_messages_page_errors(services, conversation):
    with pytest.raises(NotFoundError):
        services.messages.get_conversation_messages(user_id=ALICE, conversation_id=5555)
    with pytest.raises(ForbiddenError):
        services.messages.get_conversation_messages(user_id=CAROL, conversation_id=conversation.id)
    with pytest.raises(ValidationError):
        services.messages.get_conversation_messages(user_id=ALICE, conversation_id=conversation.id, page=0)
    with pytest.raises(ValidationError):
        services.messages.get_conversation_messages(
            user_id=ALICE, conversation_id=conversation.id, page_size=101
        )


def test_reading_a_page_refreshes_last_seen(services, conversation, clock):
    clock.advance(minutes=7)
    page = services.messages.get_conversation_messages(user_id=BOB, conversation_id=conversation.id)

    assert page.conversation.current_user_status.last_seen_at == clock.now


# -------------------------
# search
# -------------------------

def test_search_is_case_insensitive_and_scoped_to_member(services, conversation, clock):
    clock.advance(seconds=1)
    services.messages.send_message(sender_id=BOB, conversation_id=conversation.id, content="Invoice for March")
    services.conversations.start_conversation(initiator_id=CAROL, participant_id=BOB, initial_message="invoice draft")

    found = services.messages.search_messages(user_id=ALICE, query="INVOICE")

    assert [m.content for m in found] == ["Invoice for March"]


def test_search_escapes_wildcards_and_skips_deleted(services, conversation, clock):
    clock.advance(seconds=1)
    services.messages.send_message(sender_id=ALICE, conversation_id=conversation.id, content="100% done")
    clock.advance(seconds=1)
    gone = services.messages.send_message(sender_id=ALICE, conversation_id=conversation.id, content="50% left")
    services.messages.delete_message(deleter_id=ALICE, message_id=gone.id)

    found = services.messages.search_messages(user_id=BOB, query="%")

    assert [m.content for m in found] == ["100% done"]


def test_search_filters(services, conversation, clock):
    start = clock.now
    clock.advance(hours=1)
    services.messages.send_message(
        sender_id=ALICE,
        conversation_id=conversation.id,
        content="",
        attachment=upload(b"img", "a.png", "image/png"),
    )
    clock.advance(hours=1)
    services.messages.send_message(sender_id=BOB, conversation_id=conversation.id, content="late text")

    images = services.messages.search_messages(user_id=BOB, message_type=MessageType.IMAGE)
    assert [m.message_type for m in images] == [MessageType.IMAGE]

    early = services.messages.search_messages(user_id=BOB, to_date=start)
    assert [m.content for m in early] == ["hello"]

    newest_first = services.messages.search_messages(user_id=BOB, conversation_id=conversation.id)
    assert [m.content for m in newest_first][0] == "late text"

    paged = services.messages.search_messages(user_id=BOB, page=2, page_size=2)
    assert [m.content for m in paged] == ["hello"]
