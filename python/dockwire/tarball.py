# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Gzip tarballs of a directory, used as build-context upload bodies."""

from __future__ import annotations

import io
import pathlib
import tarfile
from typing import TYPE_CHECKING

from dockwire.types import Payload

if TYPE_CHECKING:
    import os


def dir_tarball(path: str | os.PathLike[str]) -> bytes:
    """Return a gzip-compressed tar of everything under *path*.

    Member names are relative to *path* (the directory itself is not an
    entry).  Entries are added in sorted order so the same tree always
    yields the same member list.
    """
    root = pathlib.Path(path).resolve()
    if not root.is_dir():
        msg = f"not a directory: {root}"
        raise NotADirectoryError(msg)

    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz", compresslevel=9) as tar:
        _add_tree(tar, root, "")
    return buf.getvalue()


def tar_payload(path: str | os.PathLike[str]) -> Payload:
    """Wrap :func:`dir_tarball` as an ``application/x-tar`` request payload."""
    return Payload.x_tar(dir_tarball(path))


def _add_tree(tar: tarfile.TarFile, directory: pathlib.Path, prefix: str) -> None:
    for child in sorted(directory.iterdir()):
        arcname = f"{prefix}{child.name}"
        tar.add(str(child), arcname=arcname, recursive=False)
        if child.is_dir() and not child.is_symlink():
            _add_tree(tar, child, f"{arcname}/")
