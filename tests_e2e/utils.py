"""
Utility functions for the kube-rbac-proxy end-to-end scenarios.

This module provides non-fixture helpers used across test files: client
certificate generation, the curl probe commands and the manifest lists.
"""

import datetime

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from kubescenario import RunFails, RunSucceeds

CLIENT_NAME = "kube-rbac-proxy-client"

COMMON_MANIFESTS = [
    "common/clusterRole.yaml",
    "common/clusterRoleBinding.yaml",
    "common/service.yaml",
    "common/serviceAccount.yaml",
]
CLIENT_RBAC_MANIFESTS = [
    "common/clusterRole-client.yaml",
    "common/clusterRoleBinding-client.yaml",
]


def proxy_manifests(deployment: str, *extra: str) -> list[str]:
    """
    Manifest paths for one kube-rbac-proxy deployment variant.

    Args:
        deployment: Deployment manifest, relative to the manifest directory
        extra: Additional manifests applied after the proxy itself

    Returns:
        List of manifest paths in apply order
    """
    return [*COMMON_MANIFESTS[:2], deployment, *COMMON_MANIFESTS[2:], *extra]


def proxy_url(namespace: str, path: str = "/metrics") -> str:
    return f"https://kube-rbac-proxy.{namespace}.svc.cluster.local:8443{path}"


def bearer_command(namespace: str, token_file: str) -> str:
    return (f'curl --connect-timeout 5 -v -s -k --fail '
            f'-H "Authorization: Bearer $(cat {token_file})" {proxy_url(namespace)}')


def certificate_command(namespace: str) -> str:
    return (f"curl --connect-timeout 5 -v -s -k --fail "
            f"--cert /certs/tls.crt --key /certs/tls.key {proxy_url(namespace)}")


def status_code_command(namespace: str, path: str, status_code: int, token_file: str | None = None) -> str:
    """
    Shell command exiting non-zero unless the proxy answers path with status_code.
    """
    auth = f'-H "Authorization: Bearer $(cat {token_file})" ' if token_file else ""
    return (f'STATUS_CODE=$(curl --connect-timeout 5 -o /dev/null -v -s -k --write-out "%{{http_code}}" '
            f'{auth}{proxy_url(namespace, path)}); '
            f'if [ "$STATUS_CODE" != {status_code} ]; then '
            f'echo "expecting {status_code} status code, got $STATUS_CODE instead" > /proc/self/fd/2; exit 1; fi')


class ClientSucceeds(RunSucceeds):
    """The curl client exits zero"""

    def __init__(self, command: str, opts=None):
        super().__init__(None, None, CLIENT_NAME, ["/bin/sh", "-c", command], opts)


class ClientFails(RunFails):
    """The curl client exits non-zero or never finishes"""

    def __init__(self, command: str, opts=None):
        super().__init__(None, None, CLIENT_NAME, ["/bin/sh", "-c", command], opts)


def _pem(certificate) -> str:
    return certificate.public_bytes(serialization.Encoding.PEM).decode("ascii")


def _certificate(subject: str, key, issuer_name, issuer_key, is_ca: bool):
    now = datetime.datetime.now(datetime.timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, subject)]))
        .issuer_name(issuer_name or x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, subject)]))
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=5))
        .not_valid_after(now + datetime.timedelta(days=1))
        .add_extension(x509.BasicConstraints(ca=is_ca, path_length=None), critical=True)
    )
    if not is_ca:
        builder = builder.add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CLIENT_AUTH]), critical=False)
    return builder.sign(issuer_key or key, hashes.SHA256())


def generate_client_certificates(common_name: str = CLIENT_NAME) -> dict:
    """
    Generate a client CA, a client certificate signed by it and an unrelated CA.

    The certificate common name is the user the proxy authenticates, so RBAC
    rules bind to it as a User subject.

    Returns:
        Dict of PEM strings: client_ca_crt, client_crt, client_key, wrong_ca_crt
    """
    ca_key = ec.generate_private_key(ec.SECP256R1())
    ca_cert = _certificate("kube-rbac-proxy-client-ca", ca_key, None, None, is_ca=True)

    client_key = ec.generate_private_key(ec.SECP256R1())
    client_cert = _certificate(common_name, client_key, ca_cert.subject, ca_key, is_ca=False)

    wrong_key = ec.generate_private_key(ec.SECP256R1())
    wrong_cert = _certificate("kube-rbac-proxy-wrong-ca", wrong_key, None, None, is_ca=True)

    return {
        "client_ca_crt": _pem(ca_cert),
        "client_crt": _pem(client_cert),
        "client_key": client_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("ascii"),
        "wrong_ca_crt": _pem(wrong_cert),
    }
