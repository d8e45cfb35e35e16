# common/file_utils.py
# -*- coding: utf-8 -*-
"""
File system helpers built around a check-then-act discipline.

Every creating helper first checks for the object and only then creates it,
tolerating a concurrent creator that wins the race. Permission helpers are
applied unconditionally because re-applying a mode is always safe.
"""

import datetime
import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from provision.config_models import AppSettings

from .command_utils import get_symbols, log_setup

module_logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def ensure_exists(
    check: Callable[[], bool],
    create: Callable[[], None],
    description: str,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Create an entity only if the presence check says it is absent.

    Args:
        check: Returns True when the entity already exists.
        create: Creates the entity. May raise FileExistsError when another
            invocation created it between the check and the action.
        description: Human readable name used in log messages.
        app_settings: Settings providing log symbols.
        current_logger: Logger to use.

    Returns:
        True if this call created the entity, False if it already existed.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)

    if check():
        log_setup(
            f"{symbols.get('info', 'ℹ️')} {description} already present. Skipping.",
            "info",
            logger_to_use,
            app_settings,
        )
        return False

    try:
        create()
    except FileExistsError:
        log_setup(
            f"{symbols.get('info', 'ℹ️')} {description} appeared while creating it. Leaving it untouched.",
            "info",
            logger_to_use,
            app_settings,
        )
        return False

    log_setup(
        f"{symbols.get('success', '✅')} Created {description}.",
        "info",
        logger_to_use,
        app_settings,
    )
    return True


def write_file_exclusive(path: PathLike, content: str, mode: int = 0o644) -> None:
    """
    Write a new file, failing with FileExistsError if it is already there.

    The file is opened with O_EXCL so two invocations racing on the same path
    never interleave their writes.
    """
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(str(file_path), os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(content)
    # O_CREAT honours the umask; the requested mode is set explicitly.
    os.chmod(file_path, mode)


def replace_file(path: PathLike, content: str) -> None:
    """
    Replace the contents of an existing file without ever leaving it truncated.

    The new content goes to a sibling temporary file which is renamed over
    `path`, so readers see either the old or the new file. The original mode
    is kept.
    """
    file_path = Path(path)
    temp_path = file_path.with_name(f".{file_path.name}.tmp")
    mode = file_path.stat().st_mode & 0o7777 if file_path.exists() else 0o644
    try:
        with open(temp_path, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(temp_path, mode)
        os.replace(temp_path, file_path)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise


def write_file_if_absent(
    path: PathLike,
    content: str,
    mode: int = 0o644,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """Create `path` with `content` unless it exists. Returns True if written."""
    file_path = Path(path)
    return ensure_exists(
        check=file_path.exists,
        create=lambda: write_file_exclusive(file_path, content, mode),
        description=f"file {file_path}",
        app_settings=app_settings,
        current_logger=current_logger,
    )


def ensure_directory(
    path: PathLike,
    mode: int = 0o755,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """Create a directory (and parents) if missing. Returns True if created."""
    dir_path = Path(path)
    return ensure_exists(
        check=dir_path.is_dir,
        create=lambda: dir_path.mkdir(mode=mode, parents=True),
        description=f"directory {dir_path}",
        app_settings=app_settings,
        current_logger=current_logger,
    )


def file_contains_line(path: PathLike, line: str) -> bool:
    """True if `path` exists and holds `line` as an exact, whole line."""
    file_path = Path(path)
    if not file_path.is_file():
        return False
    wanted = line.rstrip("\n")
    with open(file_path, "r", encoding="utf-8") as handle:
        return any(existing.rstrip("\n") == wanted for existing in handle)


def append_line_if_absent(
    path: PathLike,
    line: str,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Append `line` to `path` unless an identical line is already present.

    The file is created if missing. A newline is inserted first when the
    existing content does not end with one.

    Returns:
        True if the line was appended.
    """
    file_path = Path(path)
    wanted = line.rstrip("\n")

    def _append() -> None:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        needs_separator = False
        if file_path.is_file() and file_path.stat().st_size > 0:
            with open(file_path, "rb") as existing:
                existing.seek(-1, os.SEEK_END)
                needs_separator = existing.read(1) != b"\n"
        with open(file_path, "a", encoding="utf-8") as handle:
            if needs_separator:
                handle.write("\n")
            handle.write(wanted + "\n")

    return ensure_exists(
        check=lambda: file_contains_line(file_path, wanted),
        create=_append,
        description=f"line in {file_path}",
        app_settings=app_settings,
        current_logger=current_logger,
    )


def set_mode(path: PathLike, mode: int) -> bool:
    """chmod `path` if it exists. Returns False when there is nothing to chmod."""
    file_path = Path(path)
    if not file_path.exists():
        return False
    os.chmod(file_path, mode)
    return True


def backup_paths(
    paths: Iterable[PathLike],
    backup_root: PathLike,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
    now: Optional[datetime.datetime] = None,
) -> Path:
    """
    Copy each existing path into a new timestamped directory under `backup_root`.

    Missing sources are skipped. A source that cannot be copied is logged as
    a warning and skipped; the backup is for manual recovery only.

    Returns:
        The backup directory that was created.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    timestamp = (now or datetime.datetime.now()).strftime("%Y%m%d-%H%M%S")
    backup_dir = Path(backup_root) / f"network-backup-{timestamp}"
    backup_dir.mkdir(mode=0o700, parents=True, exist_ok=True)

    for source in paths:
        source_path = Path(source)
        if not source_path.exists():
            continue
        target = backup_dir / source_path.relative_to(source_path.anchor)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if source_path.is_dir():
                shutil.copytree(source_path, target, symlinks=True, dirs_exist_ok=True)
            else:
                shutil.copy2(source_path, target)
            log_setup(
                f"{symbols.get('success', '✅')} Backed up {source_path} to {target}",
                "info",
                logger_to_use,
                app_settings,
            )
        except OSError as e:
            log_setup(
                f"{symbols.get('warning', '!')} Failed to back up {source_path}: {e}",
                "warning",
                logger_to_use,
                app_settings,
            )
    return backup_dir
