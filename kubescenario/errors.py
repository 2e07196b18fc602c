class ScenarioError(Exception):
    """Base class for every failure the scenario engine reports."""


class SetupError(ScenarioError):
    """A Given step could not create its cluster state."""

    def __init__(self, message, manifest=None):
        super().__init__(message)
        self.manifest = manifest


class ConditionError(ScenarioError):
    """A condition is malformed (bad selector, bad reference); never retried."""


class NotReady(ScenarioError):
    """A condition is not satisfied yet; the message describes the observed state."""


class ConditionTimeout(ScenarioError):
    """A condition never became true within its deadline."""

    def __init__(self, message, poll_result=None):
        super().__init__(message)
        self.poll_result = poll_result


class ProbeError(ScenarioError):
    """The ephemeral probe workload could not be created or observed."""


class CheckFailed(ScenarioError):
    """A probe outcome did not match the expectation of a Check."""

    def __init__(self, message, result=None):
        super().__init__(message)
        self.result = result


class ScenarioFailed(ScenarioError, AssertionError):
    """Raised by Scenario.run so test runners report the scenario as failed."""

    def __init__(self, result):
        super().__init__(result.report())
        self.result = result
