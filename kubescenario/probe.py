from contextlib import contextmanager

from kubernetes.client.rest import ApiException

from .errors import ProbeError
from .functions import Consts, Functions, logger_probe
from .poller import wait_for
from .types import ProbeResult, RunOptions

DEFAULT_CLIENT_CERTIFICATE_SECRET = "kube-rbac-proxy-client-certificates"


def build_job_manifest(name, namespace, image, command, opts: RunOptions | None = None,
                       container_name="probe",
                       client_certificate_secret=DEFAULT_CLIENT_CERTIFICATE_SECRET) -> dict:
    """
    Build the Job running a probe command once, without retries.

    Args:
        name: Unique Job name
        namespace: Namespace of the Job
        image: Probe image, must provide the shell used by command
        command: Container command as a list
        opts: Credential material to mount, None for the default service account token
        container_name: Name of the probe container
        client_certificate_secret: Secret holding tls.crt/tls.key when opts.client_certificates is set

    Returns:
        Job manifest as a dict
    """
    container = {
        "name": container_name,
        "image": image,
        "command": list(command),
        "terminationMessagePolicy": "FallbackToLogsOnError",
    }
    pod_spec = {"restartPolicy": "Never", "containers": [container]}
    volumes = []
    mounts = []

    if opts is not None and opts.token_audience:
        volumes.append({
            "name": "requested-token",
            "projected": {
                "sources": [{
                    "serviceAccountToken": {
                        "audience": opts.token_audience,
                        "expirationSeconds": Consts.TOKEN_EXPIRATION_SECONDS,
                        "path": Consts.TOKEN_FILE,
                    }
                }]
            },
        })
        mounts.append({"name": "requested-token", "mountPath": Consts.TOKEN_MOUNT_PATH, "readOnly": True})

    if opts is not None and opts.client_certificates:
        volumes.append({
            "name": "client-certificates",
            "secret": {"secretName": opts.client_certificate_secret or client_certificate_secret},
        })
        mounts.append({"name": "client-certificates", "mountPath": Consts.CERT_MOUNT_PATH, "readOnly": True})

    if opts is not None and opts.service_account:
        pod_spec["serviceAccountName"] = opts.service_account

    if volumes:
        pod_spec["volumes"] = volumes
        container["volumeMounts"] = mounts

    labels = {"app.kubernetes.io/managed-by": Consts.FIELD_MANAGER, "kubescenario/probe": container_name}
    return {
        "apiVersion": "batch/v1",
        "kind": "Job",
        "metadata": {"name": name, "namespace": namespace, "labels": labels},
        "spec": {
            "backoffLimit": 0,
            "template": {
                "metadata": {"labels": labels},
                "spec": pod_spec,
            },
        },
    }


def job_state(job) -> str | None:
    """Return "Complete" or "Failed" once the job is terminal, otherwise None."""
    status = job.status
    if status is None:
        return None
    for condition in status.conditions or []:
        if condition.type in ("Complete", "Failed") and condition.status == "True":
            return condition.type
    if status.succeeded:
        return "Complete"
    if status.failed:
        return "Failed"
    return None


def _terminated_state(pod):
    for container_status in (pod.status.container_statuses or []) if pod.status else []:
        for state in (container_status.state, container_status.last_state):
            if state is not None and state.terminated is not None:
                return state.terminated
    return None


@contextmanager
def ephemeral_job(client, namespace, manifest):
    """
    Create the probe Job and delete it on every exit path.

    Deletion is attempted exactly once, even when creation failed, and its
    failure is only logged so it cannot mask the probe outcome.
    """
    name = manifest["metadata"]["name"]
    try:
        try:
            client.create_job(namespace, manifest)
        except Exception as e:
            raise ProbeError(f"failed to create probe job {namespace}/{name}: {e}") from e
        yield name
    finally:
        try:
            client.delete_job(namespace, name)
        except ApiException as e:
            if e.status == 404:
                logger_probe.debug(f"Probe job {namespace}/{name} was not found for deletion")
            else:
                logger_probe.warning(f"Failed to delete probe job {namespace}/{name}: {e}")
        except Exception as e:
            logger_probe.warning(f"Failed to delete probe job {namespace}/{name}: {e}")


def _collect_result(client, namespace, job_name) -> ProbeResult:
    state = job_state(client.read_job(namespace, job_name))

    exit_code = None
    stdout = b""
    stderr = b""
    for pod in client.job_pods(namespace, job_name):
        terminated = _terminated_state(pod)
        if terminated is None:
            continue
        exit_code = terminated.exit_code
        stderr = (terminated.message or terminated.reason or "").encode("utf-8")
        try:
            stdout = (client.read_pod_log(namespace, pod.metadata.name) or "").encode("utf-8")
        except ApiException as e:
            logger_probe.warning(f"Failed to read logs of probe pod {namespace}/{pod.metadata.name}: {e}")
        break

    if exit_code is None:
        exit_code = 0 if state == "Complete" else 1

    return ProbeResult(exit_code=exit_code, stdout=stdout, stderr=stderr, workload=job_name)


def run_command(client, namespace, image, name_prefix, command, opts: RunOptions | None = None,
                timeout=60.0, interval=1.0,
                client_certificate_secret=DEFAULT_CLIENT_CERTIFICATE_SECRET) -> ProbeResult:
    """
    Run command in a short-lived Job and report how it ended.

    Returns:
        ProbeResult; timed_out is set when the Job was observed but did not finish within timeout

    Raises:
        ProbeError: the Job could not be created or its status could not be read
    """
    manifest = build_job_manifest(f"{name_prefix}-{Functions.random_suffix()}", namespace, image, command,
                                  opts, container_name=name_prefix,
                                  client_certificate_secret=client_certificate_secret)

    with ephemeral_job(client, namespace, manifest) as job_name:
        logger_probe.info(f"Probe {namespace}/{job_name} started with image {image}")
        observed = []

        def finished():
            try:
                job = client.read_job(namespace, job_name)
            except ApiException as e:
                # 429 and 5xx may recover, other client errors will not
                if e.status is not None and 400 <= e.status < 500 and e.status != 429:
                    raise ProbeError(f"failed to read status of probe job {namespace}/{job_name}: "
                                     f"({e.status}) {e.reason}") from e
                raise
            observed.append(job)
            return job_state(job) is not None

        outcome = wait_for(finished, interval, timeout, fatal=(ProbeError,))

        if not outcome.ok and not observed:
            raise ProbeError(f"status of probe job {namespace}/{job_name} was never readable within {timeout}s: "
                             f"{outcome.last_error}") from outcome.last_error

        if not outcome.ok:
            logger_probe.warning(f"Probe {namespace}/{job_name} did not finish within {timeout}s")
            reason = f"probe did not finish within {timeout}s"
            if outcome.last_error is not None:
                reason += f": {outcome.last_error}"
            return ProbeResult(exit_code=Consts.TIMEOUT_EXIT_CODE, stderr=reason.encode("utf-8"),
                               timed_out=True, workload=job_name)

        try:
            result = _collect_result(client, namespace, job_name)
        except ApiException as e:
            raise ProbeError(f"failed to read outcome of probe job {namespace}/{job_name}: {e}") from e

        logger_probe.info(f"Probe {namespace}/{job_name} finished with exit code {result.exit_code}")
        logger_probe.debug(f"Probe {namespace}/{job_name} output: {result.describe()}")
        return result
