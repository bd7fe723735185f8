"""
Filesystem helpers for output directories (local paths or any URI pyarrow supports)
"""

import os

import pyarrow.fs as pafs


def resolve_filesystem(uri: str) -> tuple[pafs.FileSystem, str]:
    """Return the filesystem and path for a local path or a URI such as hdfs:// or s3://."""
    if "://" not in uri:
        return pafs.LocalFileSystem(), os.path.abspath(uri)
    return pafs.FileSystem.from_uri(uri)


def path_exists(uri: str) -> bool:
    filesystem, path = resolve_filesystem(uri)
    return filesystem.get_file_info(path).type != pafs.FileType.NotFound


def delete_dir(uri: str) -> bool:
    """Recursively delete a directory.

    Returns:
        True if the directory is gone afterwards
    """
    filesystem, path = resolve_filesystem(uri)
    try:
        filesystem.delete_dir(path)
    except OSError:
        return False
    return filesystem.get_file_info(path).type == pafs.FileType.NotFound
