from abc import abstractmethod

from .errors import CheckFailed
from .interface import Check
from .probe import run_command
from .types import ProbeResult, RunOptions


def expect_success(result: ProbeResult) -> None:
    """Pass iff the probe exited with 0 and did not time out."""
    if result.exit_code == 0 and not result.timed_out:
        return
    raise CheckFailed(f"expected probe {result.workload} to succeed, got {result.describe()}", result=result)


def expect_failure(result: ProbeResult) -> None:
    """Pass iff the probe exited non-zero; a timed out probe counts as rejected."""
    if result.exit_code != 0 or result.timed_out:
        return
    raise CheckFailed(f"expected probe {result.workload} to fail, but it succeeded; {result.describe()}",
                      result=result)


class RunCheck(Check):
    """Then step running a probe command and judging its outcome"""

    @staticmethod
    @abstractmethod
    def judge(result: ProbeResult) -> None:
        """Raise CheckFailed unless result is the expected outcome."""
        pass

    def __init__(self, client, image: str | None, name_prefix: str, command: list[str],
                 opts: RunOptions | None = None, timeout: float | None = None):
        """
        Args:
            client: ClusterClient used to run the probe, None for the suite client
            image: Probe image, None for the suite default
            name_prefix: Prefix of the ephemeral Job name
            command: Container command
            opts: Credential material for the probe
            timeout: Seconds to wait for the probe, None for the suite default
        """
        self.client = client
        self.image = image
        self.name_prefix = name_prefix
        self.command = list(command)
        self.opts = opts
        self.timeout = timeout

    @property
    def name(self) -> str:
        return f"{type(self).__name__}({self.name_prefix})"

    def verify(self, context) -> None:
        suite = context.suite
        result = run_command(
            self.client or suite.client,
            context.namespace,
            self.image or suite.probe_image,
            self.name_prefix,
            self.command,
            self.opts,
            timeout=self.timeout if self.timeout is not None else suite.probe_timeout,
            interval=suite.poll_interval,
            client_certificate_secret=suite.client_certificate_secret,
        )
        self.judge(result)


class RunSucceeds(RunCheck):
    judge = staticmethod(expect_success)


class RunFails(RunCheck):
    judge = staticmethod(expect_failure)
