"""Low-level hashing and object file helpers."""

import hashlib
import json
import os
import tempfile
from collections.abc import Generator, Iterable, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO

from .constants import ROOT_PARENT
from .ref import HashRef


def hash_bytes(data: bytes) -> HashRef:
    """Compute the digest of a byte string.

    :param data: The bytes to hash.
    :return: The SHA-1 hex digest."""
    return HashRef(hashlib.sha1(data).hexdigest())


def hash_string(content: str) -> HashRef:
    """Compute the digest of UTF-8 text."""
    return hash_bytes(content.encode('utf-8'))


def hash_file(path: Path) -> HashRef:
    """Compute the digest of a file's content without storing it.

    :param path: The file to hash.
    :return: The SHA-1 hex digest of the file's bytes."""
    digest = hashlib.sha1()
    with path.open('rb') as handle:
        for chunk in iter(lambda: handle.read(1 << 16), b''):
            digest.update(chunk)

    return HashRef(digest.hexdigest())


def hash_commit(message: str, parents: Iterable[str], timestamp: str, files: Mapping[str, str]) -> HashRef:
    """Compute a commit digest from its identifying fields.

    The digest only depends on the message, the ordered parents, the timestamp and the
    sorted (path, blob digest) pairs.

    :param message: The commit message.
    :param parents: The ordered parent digests; empty for a root commit.
    :param timestamp: The formatted creation time.
    :param files: The tracked-file table.
    :return: The commit digest."""
    parents = list(parents) or [ROOT_PARENT]
    payload = [message, parents, timestamp, sorted(files.items())]
    return hash_string(json.dumps(payload, ensure_ascii=False, separators=(',', ':')))


def get_content_path(objects_dir: str | Path, content_hash: str) -> Path:
    """Get the path of an object file, fanned out by the first two digest characters."""
    return Path(objects_dir) / content_hash[:2] / content_hash


def open_content_for_reading(objects_dir: str | Path, content_hash: str) -> BinaryIO:
    """Open a stored object for reading.

    :raises FileNotFoundError: If the object does not exist."""
    return get_content_path(objects_dir, content_hash).open('rb')


@contextmanager
def open_content_for_writing(objects_dir: str | Path, content_hash: str) -> Generator[BinaryIO, None, None]:
    """Open a temporary file that replaces the object file once the block exits cleanly.

    :param objects_dir: The objects directory.
    :param content_hash: The digest the written content is stored under."""
    target = get_content_path(objects_dir, content_hash)
    target.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix='.tmp-')
    try:
        with os.fdopen(fd, 'wb') as handle:
            yield handle
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
