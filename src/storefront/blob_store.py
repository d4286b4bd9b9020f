"""Blob storage for payment proofs."""

from pathlib import Path, PurePosixPath
from urllib.parse import quote

from . import config
from .errors import UploadError


class BlobStore:
    """Stores uploaded files under caller-chosen paths and hands back public URLs."""

    def __init__(
        self,
        config_dir: Path | None = None,
        public_url: str | None = None,
        bucket: str = config.PAYMENT_PROOF_BUCKET,
    ):
        """
        Initialize BlobStore.

        Args:
            config_dir: Override blob directory (for testing).
            public_url: Base URL that serves the blob directory.
            bucket: Bucket name, the first path segment under the blob directory.
        """
        self.config_dir = config_dir or config.BLOB_DIR
        self.public_url = (public_url or config.PUBLIC_URL).rstrip("/")
        self.bucket = bucket
        self.bucket_dir = self.config_dir / bucket

    def _resolve(self, path: str) -> Path:
        """Map a bucket-relative path to disk, rejecting anything that escapes the bucket."""
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts or not relative.parts:
            raise UploadError(path, "invalid path")
        return self.bucket_dir.joinpath(*relative.parts)

    def upload(self, path: str, data: bytes) -> str:
        """
        Store `data` at `path` inside the bucket.

        Returns:
            The public URL of the stored file.

        Raises:
            UploadError: If the path is invalid, already taken, or the write fails.
        """
        target = self._resolve(path)
        if target.exists():
            raise UploadError(path, "a file already exists at this path")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "xb") as f:
                f.write(data)
        except OSError as e:
            raise UploadError(path, str(e))

        return self.get_public_url(path)

    def get_public_url(self, path: str) -> str:
        return f"{self.public_url}/{self.bucket}/{quote(path)}"

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def delete(self, path: str) -> None:
        """Remove the file at `path`; a missing file is not an error."""
        try:
            self._resolve(path).unlink(missing_ok=True)
        except OSError as e:
            raise UploadError(path, str(e))

    def read(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except OSError as e:
            raise UploadError(path, str(e))
