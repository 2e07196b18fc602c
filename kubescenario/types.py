from dataclasses import dataclass, field
from enum import Enum


class Phase(Enum):
    """Scenario phases, in execution order"""
    GIVEN = "given"
    WHEN = "when"
    THEN = "then"


class StepStatus(Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ResourceRef:
    """Handle of a resource created by a Setup step"""
    api_version: str
    kind: str
    name: str
    namespace: str | None = None     # None for cluster-scoped resources

    def __str__(self):
        if self.namespace:
            return f"{self.kind} {self.namespace}/{self.name}"
        return f"{self.kind} {self.name}"


@dataclass(frozen=True)
class RunOptions:
    """Credential material a probe presents to the system under test"""
    token_audience: str | None = None            # projected service account token audience
    client_certificates: bool = False            # mount the client certificate/key pair
    service_account: str | None = None           # run the probe as this service account
    client_certificate_secret: str | None = None  # overrides the suite default secret


@dataclass
class ProbeResult:
    """Observed outcome of a probe run"""
    exit_code: int
    stdout: bytes = b""
    stderr: bytes = b""
    timed_out: bool = False
    workload: str | None = None

    def describe(self) -> str:
        stdout = self.stdout.decode("utf-8", errors="replace").strip()
        stderr = self.stderr.decode("utf-8", errors="replace").strip()
        timeout = " (timed out)" if self.timed_out else ""
        return f"exit code {self.exit_code}{timeout}; stdout: '{stdout}'; stderr: '{stderr}'"


@dataclass
class PollResult:
    """Outcome of a condition poll"""
    ok: bool = False
    last_error: Exception | None = None
    attempts: int = 0
    elapsed: float = 0.0


@dataclass
class StepResult:
    phase: Phase
    index: int
    step: str
    status: StepStatus
    duration: float = 0.0
    error: str | None = None


@dataclass
class ScenarioResult:
    """Single reporting record of a scenario run"""
    name: str
    description: str = ""
    passed: bool = True
    phase: Phase | None = None          # phase of the failing step
    step: str | None = None             # name of the failing step
    diagnostic: str | None = None
    error: Exception | None = None
    steps: list[StepResult] = field(default_factory=list)
    duration: float = 0.0

    def fail(self, phase: Phase, step: str, error: Exception):
        self.passed = False
        self.phase = phase
        self.step = step
        self.error = error
        self.diagnostic = str(error) or type(error).__name__

    def steps_with(self, status: StepStatus) -> list[StepResult]:
        return [step for step in self.steps if step.status == status]

    def report(self) -> str:
        if self.passed:
            return f"Scenario '{self.name}' passed in {self.duration:.1f}s"
        lines = [f"Scenario '{self.name}' failed in {self.phase.value} step '{self.step}': {self.diagnostic}"]
        if self.description:
            lines.append(self.description)
        return "\n".join(lines)
