from types import SimpleNamespace


class FakeClock:
    """Monotonic clock advanced only by the fake sleep"""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def make_pod(name="pod-1", phase="Running", ready="True", exit_code=None, message=None, reason=None):
    conditions = [SimpleNamespace(type="Ready", status=ready)] if ready is not None else []
    container_statuses = []
    if exit_code is not None:
        terminated = SimpleNamespace(exit_code=exit_code, message=message, reason=reason)
        container_statuses.append(SimpleNamespace(state=SimpleNamespace(terminated=terminated), last_state=None))
    return SimpleNamespace(
        metadata=SimpleNamespace(name=name),
        status=SimpleNamespace(phase=phase, conditions=conditions, container_statuses=container_statuses),
    )


def make_job(state=None):
    conditions = [SimpleNamespace(type=state, status="True")] if state else []
    return SimpleNamespace(status=SimpleNamespace(conditions=conditions, succeeded=None, failed=None))
