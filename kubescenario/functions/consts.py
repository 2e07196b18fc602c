import os
from typing import Final


class classproperty:
    """Decorator for class-level properties."""
    def __init__(self, func):
        self.func = func

    def __get__(self, obj, owner):
        return self.func(owner)


class Consts:
    """Paths and well-known locations, resolved lazily from KUBESCENARIO_BASE_PATH."""
    _base_path = None

    FIELD_MANAGER: Final[str] = "kubescenario"

    # Credential material inside the probe container
    TOKEN_MOUNT_PATH: Final[str] = "/var/run/secrets/tokens"
    TOKEN_FILE: Final[str] = "requestedtoken"
    CERT_MOUNT_PATH: Final[str] = "/certs"
    TOKEN_EXPIRATION_SECONDS: Final[int] = 3600

    # Exit code reported for a probe that never reached a terminal state
    TIMEOUT_EXIT_CODE: Final[int] = 124

    @classproperty
    def base_path(cls):
        """Base directory for suite configuration and manifests."""
        if cls._base_path is None:
            if os.getenv("KUBESCENARIO_BASE_PATH"):
                default = os.getenv("KUBESCENARIO_BASE_PATH")
            else:
                default = os.getcwd()
            cls._base_path = default
        return cls._base_path

    @classmethod
    def reset(cls):
        """Reset cached base path to pick up environment variable changes."""
        cls._base_path = None

    @classproperty
    def config_file(cls):
        """Path to the optional suite YAML configuration."""
        return os.getenv("KUBESCENARIO_CONFIG", f"{cls.base_path}/kubescenario.yml")

    @classproperty
    def manifest_path(cls):
        """Directory relative manifest paths are resolved against."""
        return os.getenv("KUBESCENARIO_MANIFEST_PATH", f"{cls.base_path}/manifests")

    @classproperty
    def token_path(cls):
        """Full path of the requested identity token inside the probe."""
        return f"{cls.TOKEN_MOUNT_PATH}/{cls.TOKEN_FILE}"
