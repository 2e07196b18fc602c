import inspect
import threading
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping

from .errors import ConditionTimeout, ScenarioError, ScenarioFailed
from .functions import Functions, SuiteEnv, logger_cluster, logger_probe, logger_scenario
from .interface import Check, CheckFunc, Condition, ConditionFunc, Setup, SetupFunc
from .poller import wait_for
from .probe import DEFAULT_CLIENT_CERTIFICATE_SECRET
from .types import Phase, ResourceRef, ScenarioResult, StepResult, StepStatus


@dataclass(frozen=True)
class Suite:
    """Process-wide, read-only configuration shared by all scenarios of a run"""
    client: Any
    namespace: str = "default"
    probe_image: str = "quay.io/brancz/krp-curl:v0.0.2"
    poll_interval: float = 1.0
    poll_timeout: float = 60.0
    probe_timeout: float = 60.0
    client_certificate_secret: str = DEFAULT_CLIENT_CERTIFICATE_SECRET
    template_vars: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "template_vars", MappingProxyType(dict(self.template_vars)))

    @classmethod
    def from_env(cls, client=None, yaml_config=None):
        """
        Build the suite from SuiteEnv, creating a ClusterClient unless one is given.
        Logger levels are re-read, so a logLevel from yaml_config takes effect.
        """
        env = SuiteEnv.read(yaml_config)
        for source in (logger_scenario, logger_probe, logger_cluster):
            Functions.setup_log(source)
        if client is None:
            from .client import ClusterClient
            client = ClusterClient(kubeconfig=env["kubeconfig"])
        return cls(
            client=client,
            namespace=env["namespace"],
            probe_image=env["probe_image"],
            poll_interval=env["poll_interval"],
            poll_timeout=env["poll_timeout"],
            probe_timeout=env["probe_timeout"],
            client_certificate_secret=env["client_certificate_secret"],
            template_vars=env["template_vars"],
        )


class ScenarioContext:
    """Mutable state owned by one running scenario"""

    def __init__(self, suite: Suite, scenario_name: str, namespace: str | None = None):
        self.suite = suite
        self.scenario_name = scenario_name
        self.namespace = namespace or suite.namespace
        self.resources: list[ResourceRef] = []
        self._cleanups: list[tuple[str, Callable[[], None]]] = []

    @property
    def poll_interval(self) -> float:
        return self.suite.poll_interval

    @property
    def poll_timeout(self) -> float:
        return self.suite.poll_timeout

    def template_vars(self) -> dict:
        variables = dict(self.suite.template_vars)
        variables.update(namespace=self.namespace, scenario=self.scenario_name)
        return variables

    def add_cleanup(self, description: str, func: Callable[[], None]) -> None:
        self._cleanups.append((description, func))

    def track(self, ref: ResourceRef, delete: Callable[[], None]) -> None:
        """Remember a created resource and how to delete it at scenario end."""
        self.resources.append(ref)
        self.add_cleanup(f"delete {ref}", delete)

    def clean_up(self) -> list[str]:
        """
        Run registered cleanups, newest first. Failures are logged, not raised.

        Returns:
            Descriptions of the cleanups that failed
        """
        failed = []
        while self._cleanups:
            description, func = self._cleanups.pop()
            try:
                func()
            except Exception as e:
                failed.append(description)
                logger_scenario.warning(f"Scenario {self.scenario_name} - cleanup '{description}' failed: {e}")
        return failed


def _as_steps(steps, kind, wrapper) -> tuple:
    if isinstance(steps, kind) or callable(steps):
        steps = (steps,)
    converted = []
    for step in steps or ():
        if isinstance(step, kind):
            converted.append(step)
        elif callable(step):
            converted.append(wrapper(step))
        else:
            raise TypeError(f"expected {kind.__name__} or callable, got {type(step).__name__}")
    return tuple(converted)


def setups(*steps) -> tuple:
    return _as_steps(steps, Setup, SetupFunc)


def conditions(*steps) -> tuple:
    return _as_steps(steps, Condition, ConditionFunc)


def checks(*steps) -> tuple:
    return _as_steps(steps, Check, CheckFunc)


class Scenario:
    """
    A named Given/When/Then test unit.

    Given steps run in order, then When conditions are polled in order, then
    Then checks run in order. The first failing step aborts the scenario and
    the remaining steps are reported as skipped. Resources registered on the
    context are cleaned up on every exit path.
    """

    def __init__(self, name: str, description: str = "", given=(), when=(), then=()):
        if not name:
            raise ValueError("scenario name must not be empty")
        self._name = name
        self._description = inspect.cleandoc(description or "")
        self._given = _as_steps(given, Setup, SetupFunc)
        self._when = _as_steps(when, Condition, ConditionFunc)
        self._then = _as_steps(then, Check, CheckFunc)
        self._consumed = False
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def given(self) -> tuple:
        return self._given

    @property
    def when(self) -> tuple:
        return self._when

    @property
    def then(self) -> tuple:
        return self._then

    def run(self, suite: Suite) -> ScenarioResult:
        """Execute the scenario and raise ScenarioFailed when any step failed."""
        result = self.execute(suite)
        if not result.passed:
            raise ScenarioFailed(result) from result.error
        return result

    def execute(self, suite: Suite) -> ScenarioResult:
        """Execute the scenario once and return its result without raising on failure."""
        with self._lock:
            if self._consumed:
                raise ScenarioError(f"scenario '{self.name}' has already been run")
            self._consumed = True

        context = ScenarioContext(suite, self.name)
        result = ScenarioResult(name=self.name, description=self.description)
        started = time.monotonic()
        logger_scenario.info(f"Scenario {self.name} - started in namespace '{context.namespace}'")

        try:
            self._run_phase(Phase.GIVEN, self.given, lambda step: step.apply(context), result)
            self._run_phase(Phase.WHEN, self.when, lambda step: self._await(step, context), result)
            self._run_phase(Phase.THEN, self.then, lambda step: step.verify(context), result)
        finally:
            context.clean_up()
            result.duration = time.monotonic() - started

        if result.passed:
            logger_scenario.info(result.report())
        else:
            logger_scenario.error(result.report())
        return result

    def _run_phase(self, phase: Phase, steps: tuple, runner, result: ScenarioResult) -> None:
        for index, step in enumerate(steps):
            if not result.passed:
                result.steps.append(StepResult(phase, index, step.name, StepStatus.SKIPPED))
                continue

            logger_scenario.debug(f"Scenario {self.name} - {phase.value} step {index}: {step.name}")
            started = time.monotonic()
            try:
                runner(step)
            except Exception as e:
                result.fail(phase, step.name, e)
                result.steps.append(StepResult(phase, index, step.name, StepStatus.FAILED,
                                               time.monotonic() - started, result.diagnostic))
                continue
            result.steps.append(StepResult(phase, index, step.name, StepStatus.PASSED,
                                           time.monotonic() - started))

    @staticmethod
    def _await(condition: Condition, context: ScenarioContext) -> None:
        interval = condition.interval if condition.interval is not None else context.poll_interval
        timeout = condition.timeout if condition.timeout is not None else context.poll_timeout
        outcome = wait_for(lambda: condition.evaluate(context), interval, timeout)
        if not outcome.ok:
            message = f"{condition.name} not satisfied within {timeout}s after {outcome.attempts} attempts"
            if outcome.last_error is not None:
                message += f": {outcome.last_error}"
            raise ConditionTimeout(message, poll_result=outcome)
