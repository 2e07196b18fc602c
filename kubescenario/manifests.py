import os

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from .errors import SetupError
from .functions import Consts, logger_scenario
from .interface import Setup
from .poller import wait_for


def load_manifests(path, variables=None) -> list[dict]:
    """
    Render a manifest file with Jinja2 and split it into resource definitions.

    Args:
        path: File path, relative paths are resolved against Consts.manifest_path
        variables: Template variables (namespace, scenario, suite template_vars)

    Returns:
        List of resource dicts in file order; items of a `kind: List` are flattened
    """
    full_path = path if os.path.isabs(path) else os.path.join(Consts.manifest_path, path)
    template_dir, filename = os.path.split(full_path)

    env = Environment(loader=FileSystemLoader(template_dir), undefined=StrictUndefined,
                      keep_trailing_newline=True)
    rendered = env.get_template(filename).render(**(variables or {}))

    documents = []
    for document in yaml.safe_load_all(rendered):
        if not document:
            continue
        if not isinstance(document, dict):
            raise ValueError(f"expected a mapping, got {type(document).__name__}")
        if document.get("kind") == "List":
            documents.extend(item for item in document.get("items") or [] if item)
        else:
            documents.append(document)
    return documents


def describe_manifest(manifest) -> str:
    metadata = manifest.get("metadata") or {}
    return f"{manifest.get('kind', '<no kind>')} {metadata.get('name', '<no name>')}"


def apply_manifests(client, context, manifests) -> list:
    """
    Apply manifests in order and register their deletion on the context.

    Readiness is not awaited. The first rejected manifest raises SetupError and
    the remaining manifests are not applied.

    Returns:
        List of ResourceRef, one per applied manifest
    """
    refs = []
    total = len(manifests)
    for index, manifest in enumerate(manifests, start=1):
        description = describe_manifest(manifest)
        try:
            ref = client.apply(manifest, context.namespace)
        except Exception as e:
            raise SetupError(f"failed to apply manifest {index} of {total} ({description}): {e}",
                             manifest=manifest) from e

        context.track(ref, _deletion(client, ref, context.poll_interval, context.poll_timeout))
        refs.append(ref)
        logger_scenario.debug(f"Scenario {context.scenario_name} - applied {ref}")
    return refs


def _deletion(client, ref, interval, timeout):
    def delete():
        client.delete(ref)
        # A re-created resource must not race against its terminating predecessor
        outcome = wait_for(lambda: client.get_status(ref) is None, interval, timeout)
        if not outcome.ok:
            raise TimeoutError(f"{ref} still present {timeout}s after deletion")
    return delete


class CreatedManifests(Setup):
    """Given step applying manifest files, in order, for the duration of a scenario"""

    def __init__(self, client, *paths):
        if not paths:
            raise ValueError("CreatedManifests needs at least one manifest path")
        self.client = client
        self.paths = paths

    @property
    def name(self) -> str:
        return f"CreatedManifests({', '.join(self.paths)})"

    def apply(self, context) -> None:
        variables = context.template_vars()
        manifests = []
        for path in self.paths:
            try:
                manifests.extend(load_manifests(path, variables))
            except (OSError, TemplateError, yaml.YAMLError, ValueError) as e:
                raise SetupError(f"failed to load manifest '{path}': {e}") from e

        apply_manifests(self.client, context, manifests)
