import copy

from kubernetes import client, config, dynamic
from kubernetes.client.rest import ApiException
from kubernetes.config import ConfigException
from kubernetes.dynamic.exceptions import NotFoundError

from .functions import Consts, logger_cluster
from .types import ResourceRef


class ClusterClient:
    """Thin binding over the Kubernetes API used by the scenario engine."""

    def __init__(self, kubeconfig=None, core_v1=None, batch_v1=None, dynamic_client=None):
        # Only load config if API clients are not provided (allows dependency injection for testing)
        if core_v1 is None or batch_v1 is None or dynamic_client is None:
            self._load_config(kubeconfig)

        self.core_v1 = core_v1 or client.CoreV1Api()
        self.batch_v1 = batch_v1 or client.BatchV1Api()
        self.dynamic = dynamic_client or dynamic.DynamicClient(client.ApiClient())

    @staticmethod
    def _load_config(kubeconfig):
        if kubeconfig:
            config.load_kube_config(config_file=kubeconfig)
            return
        try:
            config.load_incluster_config()
        except ConfigException:
            config.load_kube_config()

    def _resource(self, api_version, kind):
        return self.dynamic.resources.get(api_version=api_version, kind=kind)

    def apply(self, manifest: dict, namespace: str | None = None) -> ResourceRef:
        """
        Server-side apply a manifest; applying the same manifest twice is a no-op.

        Args:
            manifest: Resource definition as a dict
            namespace: Namespace used when a namespaced manifest does not set one

        Returns:
            ResourceRef of the applied resource
        """
        api_version = manifest.get("apiVersion")
        kind = manifest.get("kind")
        name = (manifest.get("metadata") or {}).get("name")
        if not api_version or not kind or not name:
            raise ValueError(f"manifest requires apiVersion, kind and metadata.name, got "
                             f"apiVersion={api_version!r} kind={kind!r} name={name!r}")

        resource = self._resource(api_version, kind)
        body = copy.deepcopy(manifest)
        if resource.namespaced:
            namespace = body["metadata"].get("namespace") or namespace
            body["metadata"]["namespace"] = namespace
        else:
            namespace = None

        self.dynamic.server_side_apply(resource, body=body, name=name, namespace=namespace,
                                       field_manager=Consts.FIELD_MANAGER, force_conflicts=True)
        ref = ResourceRef(api_version=api_version, kind=kind, name=name, namespace=namespace)
        logger_cluster.debug(f"Applied {ref}")
        return ref

    def delete(self, ref: ResourceRef) -> None:
        """Delete a resource and its dependents; an already missing resource is not an error."""
        resource = self._resource(ref.api_version, ref.kind)
        try:
            self.dynamic.delete(resource, name=ref.name, namespace=ref.namespace,
                                body={"propagationPolicy": "Foreground"})
        except NotFoundError:
            logger_cluster.debug(f"{ref} already deleted")
            return
        logger_cluster.debug(f"Deleted {ref}")

    def get_status(self, ref: ResourceRef) -> dict | None:
        """
        Return the status of a resource, or None when it does not exist.
        """
        resource = self._resource(ref.api_version, ref.kind)
        try:
            instance = self.dynamic.get(resource, name=ref.name, namespace=ref.namespace)
        except NotFoundError:
            return None
        return instance.to_dict().get("status") or {}

    def list_pods(self, namespace, selector=None):
        return self.core_v1.list_namespaced_pod(namespace, label_selector=selector).items

    def read_service(self, namespace, name):
        return self._read_or_none(self.core_v1.read_namespaced_service, name, namespace)

    def read_endpoints(self, namespace, name):
        return self._read_or_none(self.core_v1.read_namespaced_endpoints, name, namespace)

    def create_job(self, namespace, body):
        job = self.batch_v1.create_namespaced_job(namespace, body)
        logger_cluster.debug(f"Created job {namespace}/{body['metadata']['name']}")
        return job

    def read_job(self, namespace, name):
        return self.batch_v1.read_namespaced_job(name, namespace)

    def delete_job(self, namespace, name):
        """Delete a job together with its pods."""
        self.batch_v1.delete_namespaced_job(name, namespace, propagation_policy="Background")
        logger_cluster.debug(f"Deleted job {namespace}/{name}")

    def job_pods(self, namespace, job_name):
        return self.list_pods(namespace, f"job-name={job_name}")

    def read_pod_log(self, namespace, pod_name, container=None) -> str:
        return self.core_v1.read_namespaced_pod_log(pod_name, namespace, container=container)

    @staticmethod
    def _read_or_none(reader, name, namespace):
        try:
            return reader(name, namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise
