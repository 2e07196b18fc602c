from abc import ABC, abstractmethod
from typing import Callable


class Step(ABC):
    """Base class of every Given/When/Then step"""

    @property
    def name(self) -> str:
        """Name used when reporting the step"""
        return type(self).__name__


class Setup(Step):
    """Given step: mutates cluster state, does not wait for readiness"""

    @abstractmethod
    def apply(self, context) -> None:
        """
        Create the state this step describes

        Args:
            context: ScenarioContext of the running scenario

        Raises:
            SetupError: when the cluster rejects the state
        """
        pass


class Condition(Step):
    """When step: a predicate polled until it holds or its deadline passes"""

    # None means the suite defaults
    interval: float | None = None
    timeout: float | None = None

    @abstractmethod
    def evaluate(self, context) -> bool:
        """
        Evaluate the predicate once

        Args:
            context: ScenarioContext of the running scenario

        Returns:
            True when satisfied, False when not yet satisfied

        Raises:
            NotReady: not satisfied, with a description of the observed state
            ConditionError: the condition itself is malformed, polling stops
        """
        pass


class Check(Step):
    """Then step: an assertion against the system under test"""

    @abstractmethod
    def verify(self, context) -> None:
        """
        Run the assertion

        Args:
            context: ScenarioContext of the running scenario

        Raises:
            CheckFailed: with the diagnostic of the mismatch
        """
        pass


class _FuncStep:
    def __init__(self, func: Callable, name: str | None = None):
        self.func = func
        self._name = name or getattr(func, "__name__", type(self).__name__)

    @property
    def name(self) -> str:
        return self._name


class SetupFunc(_FuncStep, Setup):
    def apply(self, context) -> None:
        self.func(context)


class ConditionFunc(_FuncStep, Condition):
    def __init__(self, func: Callable, name: str | None = None, interval: float | None = None,
                 timeout: float | None = None):
        super().__init__(func, name)
        self.interval = interval
        self.timeout = timeout

    def evaluate(self, context) -> bool:
        return bool(self.func(context))


class CheckFunc(_FuncStep, Check):
    def verify(self, context) -> None:
        self.func(context)
