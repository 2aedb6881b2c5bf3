"""Unit tests for org conversations, messages and read markers"""

import pytest

from portal.auth.roles import OrgRole
from portal.messaging import service
from portal.models import Conversation, MessageRead

ADMIN = "user_admin"
MEMBER = "user_member"


def post(db, org, user_id, body, role=OrgRole.MEMBER):
    return service.send_message(db, org.id, author_id=user_id, role=role, body=body)


class TestConversation:

    def test_created_once_per_org(self, db_session, client_org):
        first = service.get_or_create_conversation(db_session, client_org.id)
        second = service.get_or_create_conversation(db_session, client_org.id)

        assert first.id == second.id
        assert first.title == "Client Chat"
        assert db_session.query(Conversation).count() == 1

    def test_orgs_get_separate_conversations(self, db_session, client_org, other_org):
        ours = service.get_or_create_conversation(db_session, client_org.id)
        theirs = service.get_or_create_conversation(db_session, other_org.id)
        assert ours.id != theirs.id

    def test_missing_conversation_reads_empty(self, db_session, client_org):
        assert service.list_messages(db_session, client_org.id) == []
        assert service.get_recent_messages(db_session, client_org.id) == []
        assert service.get_unread_count(db_session, client_org.id, MEMBER) == 0
        assert service.find_conversation(db_session, client_org.id) is None


class TestSendMessage:

    @pytest.mark.parametrize("role,expected", [
        (OrgRole.OWNER, "agency"),
        (OrgRole.ADMIN, "agency"),
        (OrgRole.MEMBER, "client"),
    ])
    def test_author_role(self, db_session, client_org, role, expected):
        message = post(db_session, client_org, "user_x", "Hello", role=role)
        assert message.author_role == expected
        assert message.org_id == client_org.id

    def test_creates_conversation_on_first_message(self, db_session, client_org):
        message = post(db_session, client_org, MEMBER, "Hi team")
        conversation = service.find_conversation(db_session, client_org.id)
        assert message.conversation_id == conversation.id

    def test_messages_listed_oldest_first(self, db_session, client_org):
        for body in ("one", "two", "three"):
            post(db_session, client_org, MEMBER, body)
        assert [m.body for m in service.list_messages(db_session, client_org.id)] == ["one", "two", "three"]

    def test_recent_messages(self, db_session, client_org):
        for body in ("one", "two", "three", "four"):
            post(db_session, client_org, MEMBER, body)
        recent = service.get_recent_messages(db_session, client_org.id)
        assert [m.body for m in recent] == ["two", "three", "four"]

    def test_other_org_messages_not_listed(self, db_session, client_org, other_org):
        post(db_session, other_org, "user_outsider", "Not yours")
        assert service.list_messages(db_session, client_org.id) == []


class TestReadMarkers:

    def test_unread_excludes_own_messages(self, db_session, client_org):
        post(db_session, client_org, ADMIN, "Draft ready", role=OrgRole.ADMIN)
        post(db_session, client_org, ADMIN, "Please review", role=OrgRole.ADMIN)
        post(db_session, client_org, MEMBER, "Thanks")

        assert service.get_unread_count(db_session, client_org.id, MEMBER) == 2
        assert service.get_unread_count(db_session, client_org.id, ADMIN) == 1

    def test_mark_read_resets_count(self, db_session, client_org):
        post(db_session, client_org, ADMIN, "Draft ready", role=OrgRole.ADMIN)
        service.mark_messages_as_read(db_session, client_org.id, MEMBER)
        assert service.get_unread_count(db_session, client_org.id, MEMBER) == 0

        post(db_session, client_org, ADMIN, "One more thing", role=OrgRole.ADMIN)
        assert service.get_unread_count(db_session, client_org.id, MEMBER) == 1

    def test_marker_moves_forward(self, db_session, client_org):
        first = service.mark_messages_as_read(db_session, client_org.id, MEMBER).last_read_at
        second = service.mark_messages_as_read(db_session, client_org.id, MEMBER).last_read_at

        assert second >= first
        assert db_session.query(MessageRead).count() == 1

    def test_read_receipts_only_for_own_messages(self, db_session, client_org):
        mine = post(db_session, client_org, ADMIN, "Draft ready", role=OrgRole.ADMIN)
        service.mark_messages_as_read(db_session, client_org.id, MEMBER)
        later = post(db_session, client_org, ADMIN, "Any feedback?", role=OrgRole.ADMIN)
        theirs = post(db_session, client_org, MEMBER, "Looks good")

        messages = service.list_messages(db_session, client_org.id)
        receipts = service.read_receipts(db_session, client_org.id, ADMIN, messages)

        assert set(receipts) == {mine.id}
        assert later.id not in receipts
        assert theirs.id not in receipts

    def test_own_read_marker_is_not_a_receipt(self, db_session, client_org):
        post(db_session, client_org, ADMIN, "Note to self", role=OrgRole.ADMIN)
        service.mark_messages_as_read(db_session, client_org.id, ADMIN)

        messages = service.list_messages(db_session, client_org.id)
        assert service.read_receipts(db_session, client_org.id, ADMIN, messages) == {}
