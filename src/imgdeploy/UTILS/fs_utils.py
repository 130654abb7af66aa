"""
Filesystem helpers for bind directory preparation.
"""
import logging
import os
import shutil
from contextlib import contextmanager
from typing import Iterator, List

from ..exceptions import ConfigurationError, CopyError

logger = logging.getLogger(__name__)


@contextmanager
def scoped_umask(mask: int) -> Iterator[None]:
    """
    Sets the process umask for the duration of the block and restores the
    previous one afterwards.
    """
    previous = os.umask(mask)
    try:
        yield
    finally:
        os.umask(previous)


def copy_dir_if_exists(source: str, dest: str, fail_fast: bool = False) -> List[CopyError]:
    """
    Copies the contents of source into dest if source exists.

    :param source: Directory to copy from.
    :param dest: Directory to copy into (created if missing).
    :param fail_fast: Raise on the first failed entry instead of collecting.
    :return: The entries that could not be copied.
    :raises ConfigurationError: If source exists but is not a directory.
    """
    if not os.path.exists(source):
        return []
    if not os.path.isdir(source):
        raise ConfigurationError(f"Archive source {source} is not a directory")
    return copy_dir(source, dest, fail_fast=fail_fast)


def copy_dir(source: str, dest: str, fail_fast: bool = False) -> List[CopyError]:
    """
    Recursively copies a directory tree, keeping file modes. Entries that
    fail are collected (and logged) unless fail_fast is set.
    """
    errors: List[CopyError] = []

    def failed(src: str, dst: str, exc: OSError) -> None:
        error = CopyError(src, dst, str(exc))
        if fail_fast:
            raise error from exc
        logger.warning(str(error))
        errors.append(error)

    try:
        os.makedirs(dest, mode=os.stat(source).st_mode & 0o7777, exist_ok=True)
        entries = list(os.scandir(source))
    except OSError as e:
        failed(source, dest, e)
        return errors

    for entry in entries:
        dst = os.path.join(dest, entry.name)
        if entry.is_dir(follow_symlinks=True):
            errors.extend(copy_dir(entry.path, dst, fail_fast=fail_fast))
            continue
        try:
            shutil.copy2(entry.path, dst)
        except OSError as e:
            failed(entry.path, dst, e)
    return errors
