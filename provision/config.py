# provision/config.py
# -*- coding: utf-8 -*-
"""
Static constants and default values for the device manager bootstrap.

Paths, image coordinates, per-family package lists and logging symbols.
Anything that an operator may want to change is mirrored as a field in
provision.config_models.AppSettings, which uses these values as defaults.
"""

from pathlib import Path
from typing import Dict, List

SCRIPT_VERSION: str = "1.0.0"
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent

LOG_PREFIX_DEFAULT: str = "[DEVICE-SETUP]"
CONFIG_FILE_DEFAULT: str = "/etc/device-manager/config.yaml"
LOG_FILE_DEFAULT: str = "/var/log/device-manager-setup.log"

# --- Device directory and token ---
DEVICE_DIR_DEFAULT: str = "/etc/device.d"
TOKEN_FILENAME_DEFAULT: str = "iot_token.txt"
TOKEN_ENV_VAR: str = "ENCRYPTION_TOKEN"

# --- SSH ---
SSH_DIR_DEFAULT: str = "/root/.ssh"
SSHD_CONFIG_DEFAULT: str = "/etc/ssh/sshd_config"
SSH_HOST_KEY_GLOB: str = "ssh_host_*_key"
WORKLOAD_KEY_NAME_DEFAULT: str = "id_rsa_docker"
PERMIT_ROOT_LOGIN_DEFAULT: str = "prohibit-password"

# --- Container ---
IMAGE_PREFIX_DEFAULT: str = "collabro/iotdevicemanager"
IMAGE_VERSION_DEFAULT: str = "1.0.0"
CONTAINER_NAME_DEFAULT: str = "device_manager"
CONTAINER_RUNTIME_COMMAND_DEFAULT: str = "docker"
CONTAINER_RESTART_POLICY_DEFAULT: str = "unless-stopped"
CONTAINER_START_ATTEMPTS_DEFAULT: int = 10
CONTAINER_START_RETRY_DELAY_DEFAULT: float = 5.0

# --- Service unit ---
SERVICE_NAME_DEFAULT: str = "device_manager"
SERVICE_DESCRIPTION_DEFAULT: str = "IoT Device Manager"
HELPER_SCRIPT_PATH_DEFAULT: str = "/usr/local/bin/run_device_manager.sh"
SYSTEMD_UNIT_DIR_DEFAULT: str = "/etc/systemd/system"
OPENRC_INIT_DIR_DEFAULT: str = "/etc/init.d"
SERVICE_RESTART_SEC_DEFAULT: int = 30

# --- Network transition ---
NM_SERVICE_NAMES: Dict[str, str] = {
    "systemd": "NetworkManager",
    "openrc": "networkmanager",
}
NM_CONF_PATH_DEFAULT: str = "/etc/NetworkManager/conf.d/90-device-manager.conf"
NETWORK_BACKUP_ROOT_DEFAULT: str = "/var/backups/device-manager"
NETWORK_CONFIG_PATHS_DEFAULT: List[str] = [
    "/etc/network/interfaces",
    "/etc/network/interfaces.d",
    "/etc/NetworkManager",
    "/etc/wpa_supplicant",
]
LEGACY_NETWORK_SERVICES: Dict[str, List[str]] = {
    "systemd": ["networking", "wpa_supplicant"],
    "openrc": ["networking", "wpa_supplicant"],
}
NETWORK_SETTLE_SECONDS_DEFAULT: float = 10.0
NETWORK_PROBE_HOST_DEFAULT: str = "8.8.8.8"
NETWORK_PROBE_ATTEMPTS_DEFAULT: int = 3
NETWORK_PROBE_INTERVAL_DEFAULT: float = 5.0
NETWORK_PROBE_TIMEOUT_DEFAULT: int = 2
NETWORK_AUTOCONNECT_RETRIES_DEFAULT: int = 3

# --- Package lists per host family ---
FAMILY_PACKAGES: Dict[str, List[str]] = {
    "debian": [
        "docker.io",
        "docker-compose",
        "openssh-server",
        "openssl",
        "gzip",
        "network-manager",
    ],
    "alpine": [
        "docker",
        "docker-compose",
        "openssh-server",
        "openssl",
        "gzip",
        "networkmanager",
    ],
    "redhat": [
        "docker-ce",
        "docker-compose-plugin",
        "openssh-server",
        "openssl",
        "gzip",
        "NetworkManager",
    ],
}
# Families whose default install lacks NetworkManager.
NETWORK_TRANSITION_FAMILIES: List[str] = ["alpine"]

SSH_SERVICE_NAMES: Dict[str, str] = {
    "debian": "ssh",
    "alpine": "sshd",
    "redhat": "sshd",
}

DOCKER_CE_REPO_URL: str = (
    "https://download.docker.com/linux/centos/docker-ce.repo"
)
DOCKER_CE_REPO_FILE: str = "/etc/yum.repos.d/docker-ce.repo"
APK_REPOSITORIES_FILE: str = "/etc/apk/repositories"
COMPOSE_SHIM_PATH: str = "/usr/local/bin/docker-compose"

SYMBOLS_DEFAULT: Dict[str, str] = {
    "success": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "step": "➡️",
    "gear": "⚙️",
    "package": "📦",
    "rocket": "🚀",
    "sparkles": "✨",
    "critical": "🔥",
    "debug": "🐛",
    "key": "🔑",
    "network": "🌐",
}
