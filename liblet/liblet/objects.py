"""Content-addressed blob storage."""

import logging
from pathlib import Path

from .errors import ObjectMissingError
from .plumbing import get_content_path, hash_bytes, open_content_for_reading, open_content_for_writing
from .ref import HashRef

logger = logging.getLogger(__name__)


class ObjectStore:
    """Immutable byte storage keyed by the digest of the bytes.

    Identical content always yields the same digest and a single stored copy. Objects
    are never deleted."""

    def __init__(self, objects_dir: Path | str) -> None:
        self.objects_dir = Path(objects_dir)

    def object_path(self, digest: str) -> Path:
        return get_content_path(self.objects_dir, digest)

    def put(self, data: bytes) -> HashRef:
        """Store bytes under their digest unless already present.

        :param data: The content to store.
        :return: The digest of the content."""
        digest = hash_bytes(data)
        if digest in self:
            return digest

        with open_content_for_writing(self.objects_dir, digest) as handle:
            handle.write(data)
        logger.debug('Stored blob %s (%d bytes)', digest, len(data))

        return digest

    def put_file(self, path: Path) -> HashRef:
        """Store the content of a file.

        :param path: The file to read.
        :return: The digest of the file's content."""
        return self.put(path.read_bytes())

    def get(self, digest: str) -> bytes:
        """Load the bytes stored under a digest.

        :param digest: The digest of the blob.
        :return: The stored bytes.
        :raises ObjectMissingError: If no blob is stored under the digest."""
        try:
            with open_content_for_reading(self.objects_dir, digest) as handle:
                return handle.read()
        except FileNotFoundError as e:
            msg = f'Object {digest} is missing from {self.objects_dir}'
            raise ObjectMissingError(msg) from e

    def __contains__(self, digest: object) -> bool:
        return isinstance(digest, str) and bool(digest) and self.object_path(digest).is_file()
