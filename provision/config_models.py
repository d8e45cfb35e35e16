# provision/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for application configuration.

This module defines the structured settings for the bootstrap, including
defaults, type annotations, and descriptions. It utilizes Pydantic for data
validation and settings management.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from provision import config as static_config

SYMBOLS_DEFAULT: Dict[str, str] = dict(static_config.SYMBOLS_DEFAULT)


class HostFamily(str, Enum):
    """Distribution families with a known package manager and init system."""

    DEBIAN = "debian"
    ALPINE = "alpine"
    REDHAT = "redhat"


class Architecture(str, Enum):
    """Normalized CPU architectures; the value is the image tag suffix."""

    AMD64 = "amd64"
    ARM64 = "arm64"
    ARM = "arm"


class Mount(BaseModel):
    """A host path bind-mounted into the managed container."""

    model_config = ConfigDict(frozen=True)

    host_path: str = Field(description="Path on the host.")
    container_path: str = Field(description="Path inside the container.")
    read_only: bool = Field(default=False, description="Mount read-only.")

    def as_volume_arg(self) -> str:
        suffix = ":ro" if self.read_only else ""
        return f"{self.host_path}:{self.container_path}{suffix}"


class DeviceSettings(BaseModel):
    """Durable device directory holding the token and the workload key copy."""

    directory: str = Field(
        default=static_config.DEVICE_DIR_DEFAULT,
        description="Device directory shared with the container.",
    )
    token_filename: str = Field(
        default=static_config.TOKEN_FILENAME_DEFAULT,
        description="File name of the persisted encryption token.",
    )


class SshSettings(BaseModel):
    """SSH access for the managed workload."""

    ssh_dir: str = Field(default=static_config.SSH_DIR_DEFAULT)
    sshd_config_path: str = Field(default=static_config.SSHD_CONFIG_DEFAULT)
    host_key_dir: str = Field(
        default="/etc/ssh", description="Directory holding host identity keys."
    )
    key_name: str = Field(
        default=static_config.WORKLOAD_KEY_NAME_DEFAULT,
        description="File name of the workload keypair inside ssh_dir.",
    )
    key_type: str = Field(default="rsa")
    key_bits: int = Field(default=4096, gt=0)
    permit_root_login: str = Field(
        default=static_config.PERMIT_ROOT_LOGIN_DEFAULT,
        description="Value for the sshd PermitRootLogin directive.",
    )


class ContainerSettings(BaseModel):
    """The supervised device manager container."""

    runtime_command: str = Field(
        default=static_config.CONTAINER_RUNTIME_COMMAND_DEFAULT,
        description="Container runtime CLI (docker).",
    )
    image_prefix: str = Field(default=static_config.IMAGE_PREFIX_DEFAULT)
    image_version: str = Field(default=static_config.IMAGE_VERSION_DEFAULT)
    container_name: str = Field(default=static_config.CONTAINER_NAME_DEFAULT)
    restart_policy: str = Field(
        default=static_config.CONTAINER_RESTART_POLICY_DEFAULT
    )
    network_mode: str = Field(default="host")
    mounts: List[Mount] = Field(
        default_factory=lambda: [
            Mount(host_path="/etc/os-release", container_path="/etc/os-release"),
            Mount(host_path="/etc/hosts", container_path="/etc/hosts"),
        ],
        description="Bind mounts in addition to the device directory.",
    )
    start_attempts: int = Field(
        default=static_config.CONTAINER_START_ATTEMPTS_DEFAULT, ge=1
    )
    start_retry_delay: float = Field(
        default=static_config.CONTAINER_START_RETRY_DELAY_DEFAULT, ge=0
    )


class ServiceSettings(BaseModel):
    """Init-system registration of the supervision service."""

    name: str = Field(default=static_config.SERVICE_NAME_DEFAULT)
    description: str = Field(default=static_config.SERVICE_DESCRIPTION_DEFAULT)
    helper_script_path: str = Field(
        default=static_config.HELPER_SCRIPT_PATH_DEFAULT
    )
    systemd_unit_dir: str = Field(default=static_config.SYSTEMD_UNIT_DIR_DEFAULT)
    openrc_init_dir: str = Field(default=static_config.OPENRC_INIT_DIR_DEFAULT)
    restart_sec: int = Field(
        default=static_config.SERVICE_RESTART_SEC_DEFAULT, ge=0
    )


class NetworkSettings(BaseModel):
    """Tunables for the NetworkManager transition."""

    transition_enabled: Optional[bool] = Field(
        default=None,
        description="Force the transition on or off. None uses the host family default.",
    )
    nm_conf_path: str = Field(default=static_config.NM_CONF_PATH_DEFAULT)
    backup_root: str = Field(default=static_config.NETWORK_BACKUP_ROOT_DEFAULT)
    config_paths: List[str] = Field(
        default_factory=lambda: list(static_config.NETWORK_CONFIG_PATHS_DEFAULT)
    )
    legacy_services: Optional[List[str]] = Field(
        default=None,
        description="Legacy services deregistered after adoption. None uses the init system default.",
    )
    extra_unmanaged_devices: List[str] = Field(default_factory=list)
    autoconnect_retries: int = Field(
        default=static_config.NETWORK_AUTOCONNECT_RETRIES_DEFAULT, ge=0
    )
    settle_seconds: float = Field(
        default=static_config.NETWORK_SETTLE_SECONDS_DEFAULT, ge=0
    )
    probe_host: str = Field(default=static_config.NETWORK_PROBE_HOST_DEFAULT)
    probe_attempts: int = Field(
        default=static_config.NETWORK_PROBE_ATTEMPTS_DEFAULT, ge=1
    )
    probe_interval: float = Field(
        default=static_config.NETWORK_PROBE_INTERVAL_DEFAULT, ge=0
    )
    probe_timeout: int = Field(
        default=static_config.NETWORK_PROBE_TIMEOUT_DEFAULT, ge=1
    )


class PackageSettings(BaseModel):
    """Dependency set overrides."""

    packages: Optional[List[str]] = Field(
        default=None,
        description="Replace the host family's dependency set.",
    )
    extra_packages: List[str] = Field(default_factory=list)

    @field_validator("extra_packages")
    @classmethod
    def _strip_empty(cls, value: List[str]) -> List[str]:
        return [pkg.strip() for pkg in value if pkg and pkg.strip()]


class AppSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="DEVICE_SETUP_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_prefix: str = Field(
        default=static_config.LOG_PREFIX_DEFAULT,
        description="Prefix for log messages from the bootstrap.",
    )
    no_input: bool = Field(
        default=False, description="Skip the interactive confirmation."
    )
    host_family: Optional[HostFamily] = Field(
        default=None,
        description="Override host family detection (debian, alpine, redhat).",
    )
    skip_packages: bool = Field(
        default=False,
        description="Do not install dependencies; the image already carries them.",
    )
    reboot: bool = Field(
        default=False, description="Reboot the host after a successful run."
    )
    encryption_token: Optional[str] = Field(
        default=None,
        repr=False,
        validation_alias=AliasChoices(
            static_config.TOKEN_ENV_VAR, "encryption_token"
        ),
        description="Device secret, persisted once into the device directory.",
    )

    device: DeviceSettings = Field(default_factory=DeviceSettings)
    ssh: SshSettings = Field(default_factory=SshSettings)
    container: ContainerSettings = Field(default_factory=ContainerSettings)
    service: ServiceSettings = Field(default_factory=ServiceSettings)
    network: NetworkSettings = Field(default_factory=NetworkSettings)
    packages: PackageSettings = Field(default_factory=PackageSettings)

    symbols: Dict[str, str] = Field(
        default_factory=lambda: dict(SYMBOLS_DEFAULT)
    )
