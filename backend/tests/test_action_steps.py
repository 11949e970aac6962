"""Tests for action steps: email, record writes and notifications."""

import pytest

from core.constants import (
    ActionKind,
    EntityKind,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
    StepKind,
)
from core.exceptions import (
    InvalidWorkflowDefinitionError,
    UnsupportedActionError,
    UnsupportedEntityError,
)
from steps.actions import ActionRegistry, normalize_recipient
from workflow.definitions import RecipientConfig


def action(step_id, action_name, **parameters):
    return {
        "id": step_id,
        "type": "action",
        "config": {"action": action_name, "parameters": parameters},
    }


@pytest.mark.unit
class TestSendEmail:
    async def test_sends_with_default_sender(self, harness):
        await harness.run([action("mail", "send_email", to="buyer@example.com",
                                  subject="Low stock", body="<p>Reorder</p>")])

        [message] = harness.email.sent
        assert message.to == "buyer@example.com"
        assert message.subject == "Low stock"
        assert message.html == "<p>Reorder</p>"
        assert message.from_address == harness.settings.SMTP_FROM

    async def test_explicit_sender(self, harness):
        await harness.run([action("mail", "send_email", to=["a@example.com", "b@example.com"],
                                  subject="s", body="b", **{"from": "ops@example.com"})])

        [message] = harness.email.sent
        assert message.from_address == "ops@example.com"
        assert message.recipients == ["a@example.com", "b@example.com"]

    async def test_transport_error_fails_step(self, harness):
        harness.email.error = ConnectionError("SMTP down")

        with pytest.raises(ConnectionError):
            await harness.run([action("mail", "send_email", to="a@example.com",
                                      subject="s", body="b")])

        [run] = harness.store.step_runs.values()
        assert run["status"] == "failed"
        assert run["error_message"] == "SMTP down"


@pytest.mark.unit
class TestCreateRecord:
    async def test_record_is_merged_with_audit_fields(self, harness):
        await harness.run([action("create", "create_record", table="suppliers",
                                  data={"name": "Acme", "email": "sales@acme.test"})])

        [(tenant_id, record)] = harness.entity_stores[EntityKind.SUPPLIERS].inserted
        assert tenant_id == harness.tenant_id
        assert record["name"] == "Acme"
        assert record["tenant_id"] == harness.tenant_id
        assert record["created_by"] == harness.user_id
        assert record["id"]
        assert record["created_at"] is not None

    async def test_tenant_in_data_is_overridden(self, harness):
        await harness.run([action("create", "create_record", table="orders",
                                  data={"order_number": "SO-1", "tenant_id": "other-tenant"})])

        [(_, record)] = harness.entity_stores[EntityKind.ORDERS].inserted
        assert record["tenant_id"] == harness.tenant_id

    async def test_unknown_table_touches_no_store(self, harness):
        with pytest.raises(UnsupportedEntityError):
            await harness.run([action("create", "create_record", table="unknown",
                                      data={"a": 1})])

        for store in harness.entity_stores.values():
            assert store.inserted == []
        assert harness.store.only_execution["status"] == "failed"


@pytest.mark.unit
class TestUpdateRecord:
    async def test_update_is_tenant_scoped(self, harness):
        store = harness.entity_stores[EntityKind.PURCHASE_ORDERS]
        store.existing.add("po-1")

        await harness.run([action("upd", "update_record", table="purchase_orders",
                                  id="po-1", data={"status": "approved", "tenant_id": "evil"})])

        [(tenant_id, record_id, fields)] = store.updated
        assert tenant_id == harness.tenant_id
        assert record_id == "po-1"
        assert fields["status"] == "approved"
        assert fields["updated_by"] == harness.user_id
        assert "updated_at" in fields
        assert "tenant_id" not in fields

    async def test_no_match_still_completes(self, harness):
        ctx = await harness.run([action("upd", "update_record", table="inventory_items",
                                        id=99, data={"quantity_on_hand": 0})])

        store = harness.entity_stores[EntityKind.INVENTORY_ITEMS]
        assert store.updated[0][1] == "99"
        assert harness.store.executions[ctx.execution_id]["status"] == "completed"


@pytest.mark.unit
class TestSendNotification:
    async def test_recipients_are_normalized(self, harness):
        await harness.run([action(
            "notify",
            "send_notification",
            recipients=["u1", {"userId": "u2", "channels": ["push"]}],
            title="PO approved",
            message="PO-7 was approved",
            priority="high",
        )])

        [(recipients, payload)] = harness.notifications.calls
        assert recipients[0].user_id == "u1"
        assert recipients[0].tenant_id == harness.tenant_id
        assert recipients[0].channels == (NotificationChannel.IN_APP, NotificationChannel.EMAIL)
        assert recipients[1].user_id == "u2"
        assert recipients[1].channels == (NotificationChannel.PUSH,)
        assert payload.title == "PO approved"
        assert payload.type == NotificationType.INFO
        assert payload.priority == NotificationPriority.HIGH
        assert payload.category == "workflow"
        assert payload.metadata == {"source": "workflow"}

    def test_normalize_plain_id(self):
        recipient = normalize_recipient(RecipientConfig.model_validate(17), "t1")
        assert recipient.user_id == "17"
        assert recipient.tenant_id == "t1"

    async def test_unknown_channel_fails_before_any_step(self, harness):
        steps = [
            {"id": "first", "type": "delay", "config": {"duration": 0}},
            action("notify", "send_notification",
                   recipients=[{"userId": "u1", "channels": ["sms"]}],
                   title="t", message="m"),
        ]

        with pytest.raises(InvalidWorkflowDefinitionError):
            await harness.run(steps)

        assert harness.store.only_execution["status"] == "failed"
        assert harness.store.step_runs == {}
        assert harness.notifications.calls == []


@pytest.mark.unit
class TestActionRegistry:
    def test_unregistered_action(self):
        with pytest.raises(UnsupportedActionError, match="Unknown action: send_email"):
            ActionRegistry().resolve(ActionKind.SEND_EMAIL)

    def test_registry_lists_configured_actions(self, harness):
        action_handler = harness.registry().resolve(StepKind.ACTION)
        assert set(action_handler.actions.available_actions) == set(ActionKind)
