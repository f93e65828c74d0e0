# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/utils/host.py
from __future__ import annotations

import grp
import logging
import os
import pwd
import shutil
from pathlib import Path

from ..core.errors import ValidationError

log = logging.getLogger("glitterboot")


class HostOps:
    """Filesystem and account primitives used by the operation catalog."""

    def check_user_group(self, user: str, group: str) -> None:
        try:
            pwd.getpwnam(user)
        except KeyError:
            raise ValidationError(f"user {user!r} does not exist on this host")
        try:
            grp.getgrnam(group)
        except KeyError:
            raise ValidationError(f"group {group!r} does not exist on this host")

    def make_dirs(self, path: Path, mode: int = 0o755) -> None:
        Path(path).mkdir(parents=True, exist_ok=True, mode=mode)

    def remove_tree(self, path: Path) -> None:
        path = Path(path)
        if path.is_dir() and not path.is_symlink():
            log.debug("removing %s", path)
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()

    def copy_file(self, src: Path, dest: Path) -> None:
        Path(dest).parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, dest)
        shutil.copymode(src, dest)

    def chmod(self, path: Path, mode: int) -> None:
        os.chmod(path, mode)

    def chown(self, path: Path, user: str, group: str, recursive: bool = False) -> None:
        path = Path(path)
        shutil.chown(path, user=user, group=group)
        if not recursive or not path.is_dir():
            return
        for root, dirs, files in os.walk(path):
            for name in dirs + files:
                shutil.chown(os.path.join(root, name), user=user, group=group)
