import threading
from unittest.mock import MagicMock

import pytest

from kubescenario import (Check, CheckFailed, Condition, ConditionError, ConditionTimeout, NotReady, Phase,
                          Scenario, ScenarioContext, ScenarioError, ScenarioFailed, Setup, SetupError,
                          StepStatus, Suite, checks, conditions, setups)


class Marker(Setup, Condition, Check):
    """Step usable in every phase, recording when it runs"""

    def __init__(self, label, journal, fail_with=None):
        self.label = label
        self.journal = journal
        self.fail_with = fail_with

    @property
    def name(self):
        return self.label

    def _mark(self):
        self.journal.append(self.label)
        if self.fail_with is not None:
            raise self.fail_with

    def apply(self, context):
        self._mark()

    def evaluate(self, context):
        self._mark()
        return True

    def verify(self, context):
        self._mark()


def ordered_scenario(journal, fail=None):
    def step(label):
        return Marker(label, journal, fail_with=fail[1] if fail and fail[0] == label else None)

    return Scenario(
        name="Ordered",
        description="""
            As a scenario author,
            I get my steps executed in declaration order
        """,
        given=setups(step("given-1"), step("given-2")),
        when=conditions(step("when-1"), step("when-2")),
        then=checks(step("then-1"), step("then-2")),
    )


def test_steps_run_given_when_then_in_order(suite):
    journal = []
    result = ordered_scenario(journal).run(suite)

    assert result.passed
    assert journal == ["given-1", "given-2", "when-1", "when-2", "then-1", "then-2"]
    assert [s.status for s in result.steps] == [StepStatus.PASSED] * 6
    assert result.description == "As a scenario author,\nI get my steps executed in declaration order"


@pytest.mark.parametrize("label, error, phase", [
    ("given-1", SetupError("manifest rejected"), Phase.GIVEN),
    ("when-1", ConditionError("malformed selector"), Phase.WHEN),
    ("then-1", CheckFailed("expected probe to succeed"), Phase.THEN),
])
def test_first_failure_aborts_scenario(suite, label, error, phase):
    journal = []
    result = ordered_scenario(journal, fail=(label, error)).execute(suite)

    assert not result.passed
    assert journal[-1] == label
    assert result.phase == phase
    assert result.step == label
    assert result.diagnostic == str(error)
    assert result.error is error
    failed_at = [s.step for s in result.steps].index(label)
    assert all(s.status == StepStatus.SKIPPED for s in result.steps[failed_at + 1:])
    assert len(result.steps) == 6


def test_failing_check_skips_later_checks(suite):
    journal = []
    result = ordered_scenario(journal, fail=("then-1", CheckFailed("exit code 22"))).execute(suite)

    assert "then-2" not in journal
    assert [s.step for s in result.steps_with(StepStatus.SKIPPED)] == ["then-2"]


def test_condition_timeout_is_reported(suite):
    class NeverReady(Condition):
        def evaluate(self, context):
            raise NotReady("0 of 1 pods matching 'app=kube-rbac-proxy' ready")

    result = Scenario("Timeout", when=[NeverReady()]).execute(suite)

    assert not result.passed
    assert isinstance(result.error, ConditionTimeout)
    assert result.error.poll_result.attempts >= 1
    assert "0 of 1 pods" in result.diagnostic


def test_condition_uses_its_own_deadline(suite):
    calls = []
    condition = conditions(lambda context: calls.append(1) or False)[0]
    condition.timeout = 0

    result = Scenario("ZeroTimeout", when=[condition]).execute(suite)

    assert not result.passed
    assert calls == [1]


def test_unexpected_exception_fails_scenario(suite):
    def broken(context):
        raise KeyError("status")

    result = Scenario("Broken", given=broken).execute(suite)

    assert not result.passed
    assert result.step == "broken"


def test_run_raises_scenario_failed(suite):
    def client_fails(context):
        raise CheckFailed("expected probe to fail, but it succeeded")

    scenario = Scenario("NoRBAC", "As a client without RBAC rules", then=checks(client_fails))

    with pytest.raises(ScenarioFailed) as error:
        scenario.run(suite)

    assert isinstance(error.value, AssertionError)
    message = str(error.value)
    assert "NoRBAC" in message
    assert "As a client without RBAC rules" in message
    assert "then step" in message
    assert "expected probe to fail" in message
    assert isinstance(error.value.__cause__, CheckFailed)


def test_cleanup_runs_after_failure(suite):
    cleaned = []

    def create(context):
        context.add_cleanup("first", lambda: cleaned.append("first"))
        context.add_cleanup("second", lambda: cleaned.append("second"))

    def fail(context):
        raise CheckFailed("boom")

    result = Scenario("Cleanup", given=[create], then=[fail]).execute(suite)

    assert not result.passed
    assert cleaned == ["second", "first"]


def test_cleanup_failure_does_not_fail_scenario(suite):
    def create(context):
        context.add_cleanup("delete job", MagicMock(side_effect=RuntimeError("connection reset")))

    assert Scenario("CleanupFailure", given=[create]).run(suite).passed


def test_scenario_runs_once(suite):
    scenario = Scenario("Once")
    scenario.run(suite)
    with pytest.raises(ScenarioError):
        scenario.run(suite)


def test_scenario_steps_are_immutable():
    scenario = Scenario("Immutable", given=[lambda context: None])
    assert isinstance(scenario.given, tuple)
    with pytest.raises(AttributeError):
        scenario.given = ()


def test_scenario_rejects_foreign_steps():
    with pytest.raises(TypeError):
        Scenario("Foreign", given=["basics/deployment.yaml"])


def test_scenario_requires_name():
    with pytest.raises(ValueError):
        Scenario("")


def test_each_scenario_gets_its_own_context(suite):
    seen = []

    def remember(context):
        seen.append(context)
        context.namespace = "mutated"

    Scenario("First", given=[remember]).run(suite)
    Scenario("Second", given=[remember]).run(suite)

    assert seen[0] is not seen[1]
    assert seen[1].namespace == "mutated"
    assert suite.namespace == "e2e"


def test_scenarios_share_suite_across_threads(suite):
    results = []

    def run(index):
        results.append(Scenario(f"Parallel{index}", given=[lambda context: None]).run(suite).passed)

    threads = [threading.Thread(target=run, args=(index,)) for index in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results == [True] * 4


def test_context_template_vars(cluster):
    suite = Suite(client=cluster, namespace="e2e", template_vars={"proxy_image": "kube-rbac-proxy:local"})
    context = ScenarioContext(suite, "WithRBAC")

    assert context.template_vars() == {"proxy_image": "kube-rbac-proxy:local", "namespace": "e2e",
                                       "scenario": "WithRBAC"}


def test_suite_is_read_only(suite):
    with pytest.raises(AttributeError):
        suite.namespace = "other"
    with pytest.raises(TypeError):
        suite.template_vars["x"] = "y"


def test_suite_from_env(cluster):
    suite = Suite.from_env(client=cluster, yaml_config={"namespace": "proxy-e2e", "probe_timeout": 30})

    assert suite.client is cluster
    assert suite.namespace == "proxy-e2e"
    assert suite.probe_timeout == 30.0
    assert suite.poll_timeout == 60.0
