"""Tests for loop steps and the step runs of their bodies."""

import httpx
import pytest

from core.exceptions import NotAnArrayError, WebhookFailedError


def loop(step_id, collection, steps=None, **config):
    return {
        "id": step_id,
        "type": "loop",
        "config": {"collection": collection, "steps": steps or [], **config},
    }


def record_item(step_id="record"):
    """Body step that reads current_item and writes <id>_result."""
    return {
        "id": step_id,
        "type": "condition",
        "config": {"path": "current_item", "operator": "greater_than", "value": 1},
    }


@pytest.mark.unit
class TestLoopStep:
    async def test_iterates_up_to_max_iterations(self, harness):
        ctx = await harness.run(
            [loop("loop_1", "items", [record_item()], maxIterations=2)],
            variables={"items": [1, 2, 3]},
        )

        body_runs = [
            r for r in harness.store.runs_for(ctx.execution_id) if r["step_id"] == "record"
        ]
        assert [r["iteration"] for r in body_runs] == [0, 1]
        assert ctx.variables["current_index"] == 1
        assert ctx.variables["current_item"] == 2
        assert ctx.variables["record_result"] is True

    async def test_body_runs_are_attributed_to_iteration(self, harness):
        ctx = await harness.run(
            [loop("loop_1", "orders", [record_item("check"), record_item("again")])],
            variables={"orders": [5, 6]},
        )

        runs = harness.store.runs_for(ctx.execution_id)
        assert [r["step_path"] for r in runs] == [
            "loop_1",
            "loop_1[0]/check",
            "loop_1[0]/again",
            "loop_1[1]/check",
            "loop_1[1]/again",
        ]
        assert all(r["execution_id"] == ctx.execution_id for r in runs)
        assert {r["parent_step_id"] for r in runs[1:]} == {"loop_1"}
        assert all(r["status"] == "completed" for r in runs)

    async def test_default_cap_is_applied(self, harness):
        ctx = await harness.run(
            [loop("loop_1", "items", [record_item()])],
            variables={"items": list(range(10))},
            max_iterations=3,
        )
        assert ctx.variables["current_index"] == 2

    async def test_missing_collection_is_zero_iterations(self, harness):
        ctx = await harness.run([loop("loop_1", "nothing", [record_item()])])

        runs = harness.store.runs_for(ctx.execution_id)
        assert [r["step_id"] for r in runs] == ["loop_1"]
        assert "current_index" not in ctx.variables

    async def test_empty_collection(self, harness):
        ctx = await harness.run(
            [loop("loop_1", "items", [record_item()])], variables={"items": []}
        )
        assert "current_item" not in ctx.variables

    async def test_non_array_fails_before_body(self, harness):
        with pytest.raises(NotAnArrayError, match="Collection items is not an array"):
            await harness.run(
                [loop("loop_1", "items", [record_item()])], variables={"items": "abc"}
            )

        runs = list(harness.store.step_runs.values())
        assert [r["step_id"] for r in runs] == ["loop_1"]
        assert runs[0]["status"] == "failed"
        assert harness.store.only_execution["status"] == "failed"

    async def test_failure_in_body_stops_loop(self, harness):
        body = [
            record_item(),
            {"id": "hook", "type": "webhook",
             "config": {"url": "https://api.example.com/items"}},
        ]
        harness.http_handler = lambda request: httpx.Response(500)

        with pytest.raises(WebhookFailedError, match="Webhook failed: 500"):
            await harness.run([loop("loop_1", "items", body)], variables={"items": [1, 2, 3]})

        runs = list(harness.store.step_runs.values())
        assert [(r["step_path"], r["status"]) for r in runs] == [
            ("loop_1", "failed"),
            ("loop_1[0]/record", "completed"),
            ("loop_1[0]/hook", "failed"),
        ]

    async def test_nested_loops(self, harness):
        inner = loop("inner", "current_item.lines", [record_item("line")])
        ctx = await harness.run(
            [loop("outer", "orders", [inner])],
            variables={"orders": [{"lines": [1, 2]}, {"lines": [3]}]},
        )

        paths = [r["step_path"] for r in harness.store.runs_for(ctx.execution_id)]
        assert "outer[0]/inner[1]/line" in paths
        assert "outer[1]/inner[0]/line" in paths
