from .checks import RunCheck, RunFails, RunSucceeds, expect_failure, expect_success
from .client import ClusterClient
from .conditions import PodsAreReady, ServiceIsReady, pod_running_and_ready, validate_label_selector
from .errors import (CheckFailed, ConditionError, ConditionTimeout, NotReady, ProbeError, ScenarioError,
                     ScenarioFailed, SetupError)
from .interface import Check, CheckFunc, Condition, ConditionFunc, Setup, SetupFunc
from .manifests import CreatedManifests, apply_manifests, load_manifests
from .poller import wait_for
from .probe import build_job_manifest, ephemeral_job, run_command
from .scenario import Scenario, ScenarioContext, Suite, checks, conditions, setups
from .types import (Phase, PollResult, ProbeResult, ResourceRef, RunOptions, ScenarioResult, StepResult,
                    StepStatus)
