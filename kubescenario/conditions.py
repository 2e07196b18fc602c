import re

from kubernetes.client.rest import ApiException

from .errors import ConditionError, NotReady
from .interface import Condition

_KEY = r"(?:[a-z0-9](?:[-a-z0-9.]*[a-z0-9])?/)?[A-Za-z0-9](?:[-A-Za-z0-9_.]*[A-Za-z0-9])?"
_VALUE = r"(?:[A-Za-z0-9](?:[-A-Za-z0-9_.]*[A-Za-z0-9])?)?"
_REQUIREMENT = re.compile(
    rf"^\s*(?:!?\s*{_KEY}"
    rf"|{_KEY}\s*(?:==|=|!=)\s*{_VALUE}"
    rf"|{_KEY}\s+(?:in|notin)\s+\(\s*{_VALUE}(?:\s*,\s*{_VALUE})*\s*\))\s*$"
)
# Commas outside of parentheses separate requirements
_REQUIREMENT_SEPARATOR = re.compile(r",(?![^()]*\))")
_DNS_1035_LABEL = re.compile(r"^[a-z]([-a-z0-9]*[a-z0-9])?$")


def validate_label_selector(selector: str) -> None:
    if not isinstance(selector, str):
        raise ConditionError(f"label selector must be a string, got {type(selector).__name__}")
    if selector.strip() == "":
        return
    for requirement in _REQUIREMENT_SEPARATOR.split(selector):
        if not _REQUIREMENT.match(requirement):
            raise ConditionError(f"malformed label selector '{selector}': invalid requirement '{requirement.strip()}'")


def validate_service_name(name: str) -> None:
    if not isinstance(name, str) or len(name) > 63 or not _DNS_1035_LABEL.match(name):
        raise ConditionError(f"invalid service name '{name}'")


def pod_running_and_ready(pod) -> bool:
    """A pod counts when it is Running and its Ready condition is True."""
    status = pod.status
    if status is None or status.phase != "Running":
        return False
    for condition in status.conditions or []:
        if condition.type == "Ready":
            return condition.status == "True"
    return False


def _rejected_as_malformed(e: ApiException, what: str):
    # 400/422 means the request itself is wrong, retrying cannot help
    if e.status in (400, 422):
        raise ConditionError(f"{what} rejected by the API server: {e.reason}") from e


class PodsAreReady(Condition):
    """Exactly `replicas` pods matching `selector` are running and ready"""

    def __init__(self, client, replicas: int, selector: str, interval: float | None = None,
                 timeout: float | None = None):
        self.client = client
        self.replicas = replicas
        self.selector = selector
        self.interval = interval
        self.timeout = timeout

    @property
    def name(self) -> str:
        return f"PodsAreReady({self.replicas}, '{self.selector}')"

    def evaluate(self, context) -> bool:
        if not isinstance(self.replicas, int) or self.replicas < 0:
            raise ConditionError(f"replicas must be a non-negative integer, got {self.replicas!r}")
        validate_label_selector(self.selector)

        try:
            pods = self.client.list_pods(context.namespace, self.selector)
        except ApiException as e:
            _rejected_as_malformed(e, f"label selector '{self.selector}'")
            raise

        ready = 0
        finished = []
        for pod in pods:
            if pod_running_and_ready(pod):
                ready += 1
            elif pod.status is not None and pod.status.phase in ("Succeeded", "Failed"):
                finished.append(f"{pod.metadata.name} ({pod.status.phase})")

        if ready == self.replicas:
            return True

        state = f"{ready} of {self.replicas} pods matching '{self.selector}' ready ({len(pods)} found)"
        if finished:
            state += f", completed: {', '.join(finished)}"
        raise NotReady(state)


class ServiceIsReady(Condition):
    """The service exists and has at least one ready endpoint address"""

    def __init__(self, client, service_name: str, interval: float | None = None,
                 timeout: float | None = None):
        self.client = client
        self.service_name = service_name
        self.interval = interval
        self.timeout = timeout

    @property
    def name(self) -> str:
        return f"ServiceIsReady('{self.service_name}')"

    def evaluate(self, context) -> bool:
        validate_service_name(self.service_name)
        reference = f"{context.namespace}/{self.service_name}"

        try:
            service = self.client.read_service(context.namespace, self.service_name)
            if service is None:
                raise NotReady(f"service {reference} not found")

            endpoints = self.client.read_endpoints(context.namespace, self.service_name)
        except ApiException as e:
            _rejected_as_malformed(e, f"service {reference}")
            raise

        if endpoints is None:
            raise NotReady(f"endpoints of service {reference} not found")

        for subset in endpoints.subsets or []:
            if subset.addresses:
                return True
        raise NotReady(f"service {reference} has no ready endpoints")
