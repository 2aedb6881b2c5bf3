"""Unit tests for onboarding flows, progress and contract signing"""

import pytest
from sqlalchemy.exc import OperationalError

from portal.auth.identity import Identity
from portal.errors import NotFound, ValidationFailed
from portal.models import ContractSignature, OnboardingFlow, OnboardingProgress
from portal.onboarding import service

from tests.conftest import TEST_BUCKET, add_member

PNG_DATA_URL = "data:image/png;base64,iVBORw0KGgo="


@pytest.fixture
def flow_nodes(db_session, client_org):
    """Published flow: required welcome and contract nodes, optional call node."""
    welcome = service.add_node(db_session, client_org.id, "welcome", "Welcome")
    contract = service.add_node(db_session, client_org.id, "contract", "Sign the agreement")
    call = service.add_node(db_session, client_org.id, "call", "Kickoff call", required=False)
    service.publish_flow(db_session, client_org.id)
    return welcome, contract, call


class TestFlows:

    def test_add_node_creates_draft_flow(self, db_session, client_org):
        node = service.add_node(db_session, client_org.id, "welcome", "Welcome")
        flow = db_session.get(OnboardingFlow, node.flow_id)
        assert flow.status == "draft"
        assert flow.name == "Client onboarding"
        assert node.order_index == 0

    def test_nodes_are_appended(self, db_session, client_org):
        service.add_node(db_session, client_org.id, "welcome", "Welcome")
        second = service.add_node(db_session, client_org.id, "form", "About you")
        assert second.order_index == 1

    def test_publish_without_flow(self, db_session, client_org):
        with pytest.raises(NotFound):
            service.publish_flow(db_session, client_org.id)

    def test_publish_sets_status(self, db_session, client_org, flow_nodes):
        flow = service.get_published_flow(db_session, client_org.id)
        assert flow.status == "published"
        assert flow.published_at is not None
        assert [n.title for n in flow.nodes] == ["Welcome", "Sign the agreement", "Kickoff call"]


class TestCompletion:

    def test_complete_without_published_flow(self, db_session, client_org):
        service.add_node(db_session, client_org.id, "welcome", "Welcome")
        assert service.is_onboarding_complete(db_session, client_org.id, "user_member") is True

    def test_incomplete_until_required_nodes_done(self, db_session, client_org, flow_nodes):
        welcome, contract, _ = flow_nodes
        assert service.is_onboarding_complete(db_session, client_org.id, "user_member") is False

        service.complete_node(db_session, client_org.id, "user_member", welcome.id)
        assert service.is_onboarding_complete(db_session, client_org.id, "user_member") is False

        service.complete_node(db_session, client_org.id, "user_member", contract.id)
        assert service.is_onboarding_complete(db_session, client_org.id, "user_member") is True

    def test_completion_is_per_user(self, db_session, client_org, flow_nodes):
        welcome, contract, _ = flow_nodes
        service.complete_node(db_session, client_org.id, "user_member", welcome.id)
        service.complete_node(db_session, client_org.id, "user_member", contract.id)
        assert service.is_onboarding_complete(db_session, client_org.id, "user_other") is False

    def test_complete_twice_keeps_one_row(self, db_session, client_org, flow_nodes):
        welcome = flow_nodes[0]
        service.complete_node(db_session, client_org.id, "user_member", welcome.id, {"first": True})
        row = service.complete_node(db_session, client_org.id, "user_member", welcome.id, {"second": True})

        assert db_session.query(OnboardingProgress).count() == 1
        assert row.metadata_json == {"second": True}
        assert row.status == "completed"

    def test_draft_flow_node_rejected(self, db_session, client_org):
        node = service.add_node(db_session, client_org.id, "welcome", "Welcome")
        with pytest.raises(ValidationFailed) as exc_info:
            service.complete_node(db_session, client_org.id, "user_member", node.id)
        assert exc_info.value.message == "Onboarding flow is not published"
        assert db_session.query(OnboardingProgress).count() == 0

    def test_node_from_other_org(self, db_session, client_org, other_org, flow_nodes):
        with pytest.raises(NotFound) as exc_info:
            service.complete_node(db_session, other_org.id, "user_member", flow_nodes[0].id)
        assert exc_info.value.message == "Onboarding node not found"

    def test_all_status(self, db_session, client_org, flow_nodes, member, admin_member):
        welcome = flow_nodes[0]
        service.complete_node(db_session, client_org.id, member.user_id, welcome.id)

        statuses = {s.user_id: s for s in service.get_all_status(db_session, client_org.id)}
        assert statuses[member.user_id].completed_nodes == 1
        assert statuses[member.user_id].required_nodes == 2
        assert statuses[member.user_id].is_complete is False
        assert statuses[admin_member.user_id].completed_nodes == 0


class TestSignatureImage:

    def test_decodes_png_data_url(self):
        assert service.decode_signature_image(PNG_DATA_URL) == b"\x89PNG\r\n\x1a\n"

    @pytest.mark.parametrize("value", [
        "",
        "data:image/jpeg;base64,iVBORw0KGgo=",
        "data:image/png;base64,not base64!",
        "data:image/png;base64,",
    ])
    def test_rejects_malformed(self, value):
        with pytest.raises(ValidationFailed):
            service.decode_signature_image(value)


class TestSignContract:

    @pytest.mark.asyncio
    async def test_sign_stores_signature_and_completes_node(self, db_session, client_org, flow_nodes, s3_storage):
        contract = flow_nodes[1]
        add_member(db_session, client_org, "user_signer")
        identity = Identity(user_id="user_signer")

        signature = await service.sign_contract(
            db_session, s3_storage, client_org.id, identity, contract.id,
            signed_name="Jane Baker", signature_data_url=PNG_DATA_URL,
            terms_version="2026-01", ip="203.0.113.7",
        )

        assert signature.signature_image_url.startswith(
            f"https://files.portal.test/test-portal-bucket/signatures/{client_org.id}/user_signer/"
        )
        assert signature.ip == "203.0.113.7"
        row = service.get_progress(db_session, client_org.id, "user_signer")[0]
        assert row.node_id == contract.id
        assert row.metadata_json == {"signature_id": str(signature.id)}

    @pytest.mark.asyncio
    async def test_non_contract_node(self, db_session, client_org, flow_nodes, s3_storage):
        with pytest.raises(ValidationFailed):
            await service.sign_contract(
                db_session, s3_storage, client_org.id, Identity(user_id="user_signer"), flow_nodes[0].id,
                signed_name="Jane Baker", signature_data_url=PNG_DATA_URL,
            )
        assert db_session.query(ContractSignature).count() == 0

    @pytest.mark.asyncio
    async def test_draft_flow_contract_not_stored(self, db_session, client_org, s3_storage):
        contract = service.add_node(db_session, client_org.id, "contract", "Sign the agreement")
        with pytest.raises(ValidationFailed):
            await service.sign_contract(
                db_session, s3_storage, client_org.id, Identity(user_id="user_signer"), contract.id,
                signed_name="Jane Baker", signature_data_url=PNG_DATA_URL,
            )

        listing = s3_storage.s3_client.list_objects_v2(Bucket=TEST_BUCKET, Prefix="signatures/")
        assert listing["KeyCount"] == 0
        assert db_session.query(ContractSignature).count() == 0

    @pytest.mark.asyncio
    async def test_failed_insert_removes_stored_image(self, db_session, client_org, flow_nodes, s3_storage, monkeypatch):
        def failing_commit():
            raise OperationalError("INSERT INTO contract_signatures", {}, Exception("connection lost"))

        monkeypatch.setattr(db_session, "commit", failing_commit)
        with pytest.raises(OperationalError):
            await service.sign_contract(
                db_session, s3_storage, client_org.id, Identity(user_id="user_signer"), flow_nodes[1].id,
                signed_name="Jane Baker", signature_data_url=PNG_DATA_URL,
            )
        monkeypatch.undo()

        listing = s3_storage.s3_client.list_objects_v2(Bucket=TEST_BUCKET, Prefix="signatures/")
        assert listing["KeyCount"] == 0
        assert db_session.query(ContractSignature).count() == 0
