import os

from .functions import Functions


class SuiteEnv:
    @staticmethod
    def read(yaml_config=None):
        """
        Read suite configuration from environment variables, optionally merged with YAML config.

        Args:
            yaml_config: Optional dict from a YAML file. YAML values take precedence.

        Returns:
            Dict with configuration settings
        """
        if yaml_config:
            SuiteEnv._yaml_to_env(yaml_config)

        env_vars = {
            "namespace": os.getenv("KUBESCENARIO_NAMESPACE") if os.getenv("KUBESCENARIO_NAMESPACE") else "default",
            "kubeconfig": os.getenv("KUBESCENARIO_KUBECONFIG") or os.getenv("KUBECONFIG") or None,
            "probe_image": os.getenv("KUBESCENARIO_PROBE_IMAGE") if os.getenv(
                "KUBESCENARIO_PROBE_IMAGE") else "quay.io/brancz/krp-curl:v0.0.2",
            "client_certificate_secret": os.getenv("KUBESCENARIO_CLIENT_CERT_SECRET",
                                                   "kube-rbac-proxy-client-certificates"),
        }

        env_vars["poll_interval"] = SuiteEnv._seconds("KUBESCENARIO_POLL_INTERVAL", 1.0)
        env_vars["poll_timeout"] = SuiteEnv._seconds("KUBESCENARIO_POLL_TIMEOUT", 60.0)
        env_vars["probe_timeout"] = SuiteEnv._seconds("KUBESCENARIO_PROBE_TIMEOUT", 60.0)

        if env_vars["poll_interval"] <= 0:
            raise ValueError("KUBESCENARIO_POLL_INTERVAL must be greater than zero")

        env_vars["logLevel"] = {
            "scenario": os.getenv("SCENARIO_LOG_LEVEL") if os.getenv("SCENARIO_LOG_LEVEL") else Functions.INFO,
            "probe": os.getenv("PROBE_LOG_LEVEL") if os.getenv("PROBE_LOG_LEVEL") else Functions.INFO,
            "cluster": os.getenv("CLUSTER_LOG_LEVEL") if os.getenv("CLUSTER_LOG_LEVEL") else Functions.INFO,
        }

        # Extra Jinja2 variables for manifests (e.g., KUBESCENARIO_VAR_PROXY_IMAGE -> proxy_image)
        env_vars["template_vars"] = {}
        for key, value in os.environ.items():
            if key.startswith("KUBESCENARIO_VAR_"):
                env_vars["template_vars"][key[len("KUBESCENARIO_VAR_"):].lower()] = value

        return env_vars

    @staticmethod
    def _seconds(name, default):
        value = os.getenv(name)
        if value is None or value == "":
            return default
        try:
            seconds = float(value)
        except ValueError:
            raise ValueError(f"{name} must be a number of seconds, got '{value}'")
        if seconds < 0:
            raise ValueError(f"{name} must not be negative, got '{value}'")
        return seconds

    @staticmethod
    def _yaml_to_env(yaml_config):
        """Convert YAML configuration to environment variables"""

        simple_keys = {
            "namespace": "KUBESCENARIO_NAMESPACE",
            "kubeconfig": "KUBESCENARIO_KUBECONFIG",
            "probe_image": "KUBESCENARIO_PROBE_IMAGE",
            "client_certificate_secret": "KUBESCENARIO_CLIENT_CERT_SECRET",
            "poll_interval": "KUBESCENARIO_POLL_INTERVAL",
            "poll_timeout": "KUBESCENARIO_POLL_TIMEOUT",
            "probe_timeout": "KUBESCENARIO_PROBE_TIMEOUT",
        }
        for key, env_key in simple_keys.items():
            if key in yaml_config and yaml_config[key] is not None:
                os.environ[env_key] = str(yaml_config[key])

        if 'logLevel' in yaml_config:
            for source, level in yaml_config['logLevel'].items():
                os.environ[source.upper() + '_LOG_LEVEL'] = str(level)

        if 'template_vars' in yaml_config:
            for name, value in yaml_config['template_vars'].items():
                os.environ['KUBESCENARIO_VAR_' + name.upper()] = str(value)
