"""
Object storage for uploaded transaction files and email templates.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from transaction_summary.errors import CollaboratorFailure

logger = logging.getLogger(__name__)


class ObjectStore(ABC):
    """Bucket/key blob storage."""

    @abstractmethod
    def put(self, bucket: str, key: str, data: bytes, content_type: str,
            metadata: Optional[dict] = None) -> None:
        """Store a blob. Raises CollaboratorFailure on error."""

    @abstractmethod
    def get(self, bucket: str, key: str) -> bytes:
        """Fetch a blob. Raises CollaboratorFailure on error."""


class LocalObjectStore(ObjectStore):
    """Stores objects as files under ``<root>/<bucket>/<key>``.

    Content type and metadata are kept in a ``.meta.json`` file next to the object.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def _object_path(self, bucket: str, key: str) -> Path:
        path = (self.root / bucket / key).resolve()
        bucket_root = (self.root / bucket).resolve()

        if bucket_root not in path.parents:
            raise ValueError(f"Key escapes bucket: {key}")

        return path

    def put(self, bucket: str, key: str, data: bytes, content_type: str,
            metadata: Optional[dict] = None) -> None:
        try:
            path = self._object_path(bucket, key)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

            meta_path = path.with_name(path.name + '.meta.json')
            meta_path.write_text(json.dumps({
                'content_type': content_type,
                'metadata': metadata or {},
            }))

            logger.info(f"Uploaded {len(data)} bytes to {bucket}/{key}")

        except (OSError, ValueError) as e:
            logger.error(f"Failed to upload {bucket}/{key}: {e}")
            raise CollaboratorFailure('storage', f"upload {bucket}/{key}", e) from e

    def get(self, bucket: str, key: str) -> bytes:
        try:
            return self._object_path(bucket, key).read_bytes()

        except (OSError, ValueError) as e:
            logger.error(f"Failed to download {bucket}/{key}: {e}")
            raise CollaboratorFailure('storage', f"download {bucket}/{key}", e) from e
