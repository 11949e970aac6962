"""Tests for turning stored workflow JSON into typed definitions."""

import pytest

from core.constants import (
    ActionKind,
    ConditionOperator,
    EntityKind,
    NotificationChannel,
    StepKind,
)
from core.exceptions import (
    InvalidWorkflowDefinitionError,
    MissingParametersError,
    UnknownOperatorError,
    UnknownStepTypeError,
    UnsupportedActionError,
    UnsupportedEntityError,
)
from workflow.definitions import (
    ActionConfig,
    ConditionConfig,
    CreateRecordParameters,
    DelayConfig,
    LoopConfig,
    RecipientConfig,
    SendEmailParameters,
    UpdateRecordParameters,
    WebhookConfig,
    load_definition,
    parse_step,
)
from workflow.models import StoredWorkflow


def action(action_name, **parameters):
    return {"id": "a1", "type": "action", "config": {"action": action_name, "parameters": parameters}}


@pytest.mark.unit
class TestParseStep:
    def test_condition(self):
        step = parse_step({
            "id": "check",
            "type": "condition",
            "config": {"path": "count", "operator": "equals", "value": 5},
        })
        assert step.kind == StepKind.CONDITION
        assert isinstance(step.config, ConditionConfig)
        assert step.config.operator == ConditionOperator.EQUALS
        assert step.config.value == 5

    def test_condition_accepts_condition_key_for_path(self):
        step = parse_step({
            "id": "check",
            "type": "condition",
            "config": {"condition": "order.status", "operator": "equals", "value": "open"},
        })
        assert step.config.path == "order.status"

    def test_branch_targets_are_kept(self):
        step = parse_step({
            "id": "d",
            "type": "delay",
            "config": {"duration": 0},
            "nextStepId": "x",
            "conditionStepId": "y",
        })
        assert step.next_step_id == "x"
        assert step.condition_step_id == "y"

    def test_unknown_step_type(self):
        with pytest.raises(UnknownStepTypeError, match="Unknown step type: teleport"):
            parse_step({"id": "s", "type": "teleport", "config": {}})

    def test_missing_id(self):
        with pytest.raises(InvalidWorkflowDefinitionError):
            parse_step({"type": "delay", "config": {}})

    def test_unknown_operator(self):
        with pytest.raises(UnknownOperatorError, match="Unknown operator: approx"):
            parse_step({
                "id": "c",
                "type": "condition",
                "config": {"path": "x", "operator": "approx", "value": 1},
            })

    def test_delay_defaults_to_zero(self):
        step = parse_step({"id": "d", "type": "delay"})
        assert isinstance(step.config, DelayConfig)
        assert step.config.duration == 0

    def test_negative_delay_is_rejected(self):
        with pytest.raises(InvalidWorkflowDefinitionError):
            parse_step({"id": "d", "type": "delay", "config": {"duration": -5}})

    def test_webhook_method_is_uppercased(self):
        step = parse_step({
            "id": "w",
            "type": "webhook",
            "config": {"url": "https://api.example.com/hook", "method": "put"},
        })
        assert isinstance(step.config, WebhookConfig)
        assert step.config.method == "PUT"
        assert step.config.headers == {}

    def test_webhook_requires_url(self):
        with pytest.raises(InvalidWorkflowDefinitionError):
            parse_step({"id": "w", "type": "webhook", "config": {}})


@pytest.mark.unit
class TestParseLoop:
    def test_nested_body_is_parsed(self):
        step = parse_step({
            "id": "loop_1",
            "type": "loop",
            "config": {
                "collection": "items",
                "maxIterations": 2,
                "steps": [{"id": "wait", "type": "delay", "config": {"duration": 0}}],
            },
        })
        assert isinstance(step.config, LoopConfig)
        assert step.config.max_iterations == 2
        assert step.config.steps[0].kind == StepKind.DELAY

    def test_default_cap_comes_from_caller(self):
        step = parse_step(
            {"id": "l", "type": "loop", "config": {"collection": "items"}},
            max_iterations=7,
        )
        assert step.config.max_iterations == 7
        assert step.config.steps == ()

    def test_errors_in_body_are_reported(self):
        with pytest.raises(UnknownStepTypeError):
            parse_step({
                "id": "l",
                "type": "loop",
                "config": {"collection": "items", "steps": [{"id": "x", "type": "nope"}]},
            })


@pytest.mark.unit
class TestParseAction:
    def test_send_email(self):
        step = parse_step(action("send_email", to="a@example.com", subject="Hi", body="<p>x</p>"))
        assert isinstance(step.config, ActionConfig)
        assert step.config.action == ActionKind.SEND_EMAIL
        assert isinstance(step.config.parameters, SendEmailParameters)
        assert step.config.parameters.from_address is None

    def test_send_email_with_from(self):
        step = parse_step(action(
            "send_email", to="a@example.com", subject="Hi", body="x", **{"from": "ops@example.com"}
        ))
        assert step.config.parameters.from_address == "ops@example.com"

    @pytest.mark.parametrize("missing", ["to", "subject", "body"])
    def test_send_email_missing_parameter(self, missing):
        params = {"to": "a@example.com", "subject": "Hi", "body": "x"}
        params[missing] = ""
        with pytest.raises(MissingParametersError, match="Missing required email parameters"):
            parse_step(action("send_email", **params))

    def test_create_record(self):
        step = parse_step(action("create_record", table="suppliers", data={"name": "Acme"}))
        assert isinstance(step.config.parameters, CreateRecordParameters)
        assert step.config.parameters.table == EntityKind.SUPPLIERS

    def test_create_record_unknown_table(self):
        with pytest.raises(UnsupportedEntityError, match="Unsupported table: unknown"):
            parse_step(action("create_record", table="unknown", data={"a": 1}))

    def test_update_record_numeric_id(self):
        step = parse_step(action("update_record", table="orders", id=42, data={"status": "x"}))
        assert isinstance(step.config.parameters, UpdateRecordParameters)
        assert step.config.parameters.record_id == 42

    def test_update_record_requires_id(self):
        with pytest.raises(MissingParametersError, match="record update parameters: table, id, data"):
            parse_step(action("update_record", table="orders", data={"status": "x"}))

    def test_send_notification_requires_title(self):
        with pytest.raises(MissingParametersError, match="notification"):
            parse_step(action("send_notification", recipients=["u1"], message="m"))

    def test_send_notification_recipients(self):
        step = parse_step(action(
            "send_notification",
            recipients=["u1", 7, {"userId": "u2", "channels": ["email"]}, {"user_id": "u3"}],
            title="t",
            message="m",
        ))
        recipients = step.config.parameters.recipients
        assert all(isinstance(r, RecipientConfig) for r in recipients)
        assert [r.user_id for r in recipients] == ["u1", "7", "u2", "u3"]
        assert recipients[2].channels == (NotificationChannel.EMAIL,)
        assert recipients[3].channels == (NotificationChannel.IN_APP, NotificationChannel.EMAIL)

    @pytest.mark.parametrize("recipient", [
        {"channels": ["email"]},
        {"userId": ""},
        {"userId": "u1", "channels": ["sms"]},
        ["u1"],
    ])
    def test_send_notification_rejects_bad_recipients(self, recipient):
        with pytest.raises(InvalidWorkflowDefinitionError, match="recipients"):
            parse_step(action("send_notification", recipients=[recipient], title="t", message="m"))

    def test_unknown_action(self):
        with pytest.raises(UnsupportedActionError, match="Unknown action: fax"):
            parse_step(action("fax"))


@pytest.mark.unit
class TestLoadDefinition:
    def test_steps_keep_their_order(self):
        stored = StoredWorkflow(
            id="wf-1",
            tenant_id="t1",
            name="Restock",
            steps=[
                {"id": f"s{i}", "type": "delay", "config": {"duration": 0}}
                for i in range(5)
            ],
        )
        definition = load_definition(stored)
        assert [s.id for s in definition.steps] == ["s0", "s1", "s2", "s3", "s4"]
        assert definition.tenant_id == "t1"

    def test_empty_workflow(self):
        definition = load_definition(StoredWorkflow(id="wf-1", tenant_id="t1"))
        assert definition.steps == ()
