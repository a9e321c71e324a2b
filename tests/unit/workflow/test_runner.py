"""Tests for WorkflowRunner step interface."""

from __future__ import annotations

import pytest

from provisioner.exceptions import TeardownError
from provisioner.models.workflow_state import WorkflowState
from provisioner.workflow.engine import ProvisioningWorkflow
from provisioner.workflow.runner import DEFAULT_STEPS, Step, WorkflowRunner
from tests.fixtures.descriptors import create_simple_set
from tests.fixtures.providers import FakeProviderClient, provider_error


@pytest.fixture
def provider() -> FakeProviderClient:
    return FakeProviderClient()


@pytest.fixture
def runner(provider: FakeProviderClient) -> WorkflowRunner:
    return WorkflowRunner(ProvisioningWorkflow(provider), create_simple_set(), vm_name="v")


class TestWorkflowRunner:
    """Test suite for step-by-step execution."""

    def test_first_step_plans_and_applies(self, runner, provider) -> None:
        assert runner.pending_step == Step.APPLY

        outcome = runner.next()

        assert outcome.step == Step.APPLY
        assert outcome.state == WorkflowState.READY
        assert sorted(outcome.payload) == ["g", "n", "v"]
        assert provider.calls_for("create") == ["g", "n", "v"]
        assert runner.pending_step == Step.LIST

    def test_run_all_executes_default_sequence(self, runner, provider) -> None:
        outcomes = runner.run_all()

        assert [o.step for o in outcomes] == list(DEFAULT_STEPS)
        assert [o.state for o in outcomes] == [
            WorkflowState.READY,
            WorkflowState.READY,
            WorkflowState.READY,
            WorkflowState.STOPPED,
            WorkflowState.READY,
            WorkflowState.READY,
            WorkflowState.DELETED,
        ]
        assert [op for op, _ in provider.calls] == [
            "create",
            "create",
            "create",
            "list",
            "export",
            "stop",
            "start",
            "restart",
            "delete",
        ]
        assert not runner.has_next
        assert runner.pending_step is None

    def test_export_payload_is_template_text(self, runner) -> None:
        runner.next()
        runner.next()

        outcome = runner.next()

        assert outcome.step == Step.EXPORT
        assert outcome.payload == '{"resources": []}'

    def test_next_when_finished(self, runner) -> None:
        runner.run_all()

        with pytest.raises(StopIteration):
            runner.next()

    def test_failed_step_is_not_consumed(self, provider) -> None:
        provider.fail_on[("delete", "g")] = provider_error("locked")
        runner = WorkflowRunner(
            ProvisioningWorkflow(provider), create_simple_set(), vm_name="v", steps=[Step.APPLY, Step.TEARDOWN]
        )
        runner.next()

        with pytest.raises(TeardownError):
            runner.next()
        assert runner.pending_step == Step.TEARDOWN

        del provider.fail_on[("delete", "g")]
        outcome = runner.next()

        assert outcome.state == WorkflowState.DELETED
        assert len(runner.outcomes) == 2

    def test_plan_is_not_repeated_when_already_planned(self, provider) -> None:
        workflow = ProvisioningWorkflow(provider)
        workflow.plan(create_simple_set())
        runner = WorkflowRunner(workflow, create_simple_set(), vm_name="v", steps=[Step.APPLY])

        outcome = runner.next()

        assert outcome.state == WorkflowState.READY

    def test_lifecycle_flag(self) -> None:
        assert Step.STOP.is_lifecycle
        assert Step.RESTART.is_lifecycle
        assert not Step.TEARDOWN.is_lifecycle
