# components/ssh/credential_provisioner.py
# -*- coding: utf-8 -*-
"""
SSH access for the managed workload.

Makes sure sshd accepts key-based root logins, that the host has identity
keys, and that a dedicated workload keypair exists, is authorized for root,
and has a copy in the device directory for the container to use.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from common.command_utils import log_setup, run_command
from common.file_utils import (
    append_line_if_absent,
    ensure_directory,
    ensure_exists,
    replace_file,
    set_mode,
    write_file_exclusive,
    write_file_if_absent,
)
from common.init_systems import InitSystem
from common.system_utils import get_hostname
from components.base_component import BaseComponent
from components.registry import ComponentRegistry
from provision import config as static_config
from provision.config_models import AppSettings
from provision.errors import BootstrapIOError


@dataclass(frozen=True)
class CredentialMaterial:
    private_key_path: Path
    public_key_path: Path
    authorized_keys_path: Path
    device_copy_path: Path


def with_permit_root_login(config_text: str, value: str) -> Optional[str]:
    """
    sshd_config text in which `PermitRootLogin value` is the effective setting.

    sshd uses the first occurrence of a keyword, and lines after a `Match`
    belong to that block, so the directive goes on the first line and every
    other global `PermitRootLogin` is commented out. `Match` blocks are left
    alone.

    Returns:
        The new text, or None when the first directive before any `Include`
        or `Match` already sets `value`.
    """
    lines = config_text.splitlines()
    for line in lines:
        parts = line.replace("=", " ", 1).split()
        if not parts or parts[0].startswith("#"):
            continue
        keyword = parts[0].lower()
        if keyword == "permitrootlogin":
            if len(parts) > 1 and parts[1] == value:
                return None
            break
        if keyword in ("match", "include"):
            break

    updated = [f"PermitRootLogin {value}"]
    in_match = False
    for line in lines:
        parts = line.replace("=", " ", 1).split()
        keyword = parts[0].lower() if parts and not parts[0].startswith("#") else ""
        if keyword == "match":
            in_match = True
        if keyword == "permitrootlogin" and not in_match:
            updated.append(f"#{line}")
        else:
            updated.append(line)
    return "\n".join(updated) + "\n"


class CredentialProvisioner:
    """Check-then-act provisioning of sshd settings and the workload keypair."""

    def __init__(
        self,
        app_settings: AppSettings,
        init_system: InitSystem,
        ssh_service: str,
        logger: Optional[logging.Logger] = None,
        hostname_reader: Callable[[], str] = get_hostname,
    ):
        self.app_settings = app_settings
        self.settings = app_settings.ssh
        self.init_system = init_system
        self.ssh_service = ssh_service
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.hostname_reader = hostname_reader

    def material(self) -> CredentialMaterial:
        ssh_dir = Path(self.settings.ssh_dir)
        private_key = ssh_dir / self.settings.key_name
        return CredentialMaterial(
            private_key_path=private_key,
            public_key_path=private_key.with_name(private_key.name + ".pub"),
            authorized_keys_path=ssh_dir / "authorized_keys",
            device_copy_path=Path(self.app_settings.device.directory) / self.settings.key_name,
        )

    def ensure_ssh_access(self) -> CredentialMaterial:
        """
        Provision SSH access. Safe to call any number of times.

        Returns:
            The paths of the workload credential material.

        Raises:
            BootstrapIOError: a file could not be written or a key could not
                be generated.
        """
        material = self.material()
        try:
            self._ensure_sshd_config()
            self._ensure_host_keys()
            self._ensure_keypair(material)
            self._ensure_device_copy(material)
            append_line_if_absent(
                material.authorized_keys_path,
                material.public_key_path.read_text(encoding="utf-8").strip(),
                app_settings=self.app_settings,
                current_logger=self.logger,
            )
            self._apply_permissions(material)
        except (subprocess.CalledProcessError, OSError) as e:
            raise BootstrapIOError(
                f"SSH provisioning failed: {e}",
                context={"ssh_dir": self.settings.ssh_dir},
            ) from e

        log_setup(
            f"{self.app_settings.symbols.get('key', '🔑')} Workload key ready at {material.private_key_path}",
            "success",
            self.logger,
            self.app_settings,
        )
        return material

    def _ensure_sshd_config(self) -> None:
        config_path = Path(self.settings.sshd_config_path)
        directive = f"PermitRootLogin {self.settings.permit_root_login}"

        changed = write_file_if_absent(
            config_path,
            "",
            mode=0o644,
            app_settings=self.app_settings,
            current_logger=self.logger,
        )
        new_text = with_permit_root_login(
            config_path.read_text(encoding="utf-8"), self.settings.permit_root_login
        )
        if new_text is not None:
            replace_file(config_path, new_text)
            log_setup(
                f"{self.app_settings.symbols.get('gear', '⚙️')} Set '{directive}' in {config_path}.",
                "info",
                self.logger,
                self.app_settings,
            )
            changed = True

        self.init_system.enable(self.ssh_service)
        if changed:
            log_setup(
                f"{self.app_settings.symbols.get('gear', '⚙️')} sshd configuration changed, restarting {self.ssh_service}.",
                "info",
                self.logger,
                self.app_settings,
            )
            self.init_system.restart(self.ssh_service)

    def _ensure_host_keys(self) -> None:
        key_dir = Path(self.settings.host_key_dir)
        ensure_exists(
            check=lambda: any(key_dir.glob(static_config.SSH_HOST_KEY_GLOB)),
            create=lambda: run_command(
                ["ssh-keygen", "-A"],
                self.app_settings,
                capture_output=True,
                current_logger=self.logger,
            ),
            description="SSH host keys",
            app_settings=self.app_settings,
            current_logger=self.logger,
        )

    def _ensure_keypair(self, material: CredentialMaterial) -> None:
        ensure_directory(
            self.settings.ssh_dir,
            mode=0o700,
            app_settings=self.app_settings,
            current_logger=self.logger,
        )
        comment = f"device_manager@{self.hostname_reader()}"

        def _generate() -> None:
            if material.private_key_path.exists():
                raise FileExistsError(str(material.private_key_path))
            run_command(
                [
                    "ssh-keygen",
                    "-q",
                    "-t",
                    self.settings.key_type,
                    "-b",
                    str(self.settings.key_bits),
                    "-N",
                    "",
                    "-C",
                    comment,
                    "-f",
                    str(material.private_key_path),
                ],
                self.app_settings,
                capture_output=True,
                current_logger=self.logger,
            )

        ensure_exists(
            check=material.private_key_path.exists,
            create=_generate,
            description=f"workload keypair {material.private_key_path}",
            app_settings=self.app_settings,
            current_logger=self.logger,
        )

        def _derive_public_key() -> None:
            result = run_command(
                ["ssh-keygen", "-y", "-f", str(material.private_key_path)],
                self.app_settings,
                capture_output=True,
                current_logger=self.logger,
            )
            write_file_exclusive(
                material.public_key_path, f"{result.stdout.strip()} {comment}\n", 0o600
            )

        # A lone private key (public half deleted) gets its public key re-derived.
        ensure_exists(
            check=material.public_key_path.exists,
            create=_derive_public_key,
            description=f"public key {material.public_key_path}",
            app_settings=self.app_settings,
            current_logger=self.logger,
        )

    def _ensure_device_copy(self, material: CredentialMaterial) -> None:
        ensure_directory(
            self.app_settings.device.directory,
            mode=0o700,
            app_settings=self.app_settings,
            current_logger=self.logger,
        )
        ensure_exists(
            check=material.device_copy_path.exists,
            create=lambda: write_file_exclusive(
                material.device_copy_path,
                material.private_key_path.read_text(encoding="utf-8"),
                0o600,
            ),
            description=f"device copy of the workload key {material.device_copy_path}",
            app_settings=self.app_settings,
            current_logger=self.logger,
        )

    def _apply_permissions(self, material: CredentialMaterial) -> None:
        set_mode(self.settings.ssh_dir, 0o700)
        for path in (
            material.authorized_keys_path,
            material.private_key_path,
            material.public_key_path,
            material.device_copy_path,
        ):
            set_mode(path, 0o600)


@ComponentRegistry.register(
    name="ssh",
    metadata={
        "dependencies": ["network"],
        "description": "Provision SSH access and the workload keypair",
    },
)
class SshComponent(BaseComponent):
    def _provisioner(self) -> CredentialProvisioner:
        return CredentialProvisioner(
            self.app_settings,
            self.context.init_system,
            static_config.SSH_SERVICE_NAMES[self.context.profile.family.value],
            self.logger,
        )

    def is_satisfied(self) -> bool:
        material = self._provisioner().material()
        if not (
            material.private_key_path.exists()
            and material.public_key_path.exists()
            and material.device_copy_path.exists()
        ):
            return False
        public_key = material.public_key_path.read_text(encoding="utf-8").strip()
        authorized = material.authorized_keys_path
        return authorized.is_file() and public_key in authorized.read_text(
            encoding="utf-8"
        ).splitlines()

    def ensure(self) -> CredentialMaterial:
        return self._provisioner().ensure_ssh_access()
