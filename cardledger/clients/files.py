# cardledger/clients/files.py
"""
Receipt file storage.

Files live under a root directory, namespaced per company
(company_<id>/<token>_<name>). Downloads go through short-lived signed URLs:
a JWT carrying the path and an expiry, verified by /files/download.
"""

import logging
import re
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, List

from jose import JWTError, jwt

from cardledger.errors import DependencyError, LedgerError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def company_file_path(company_id, filename: str) -> str:
    name = Path(filename or "receipt").name
    name = re.sub(r"[^A-Za-z0-9._-]", "_", name) or "receipt"
    return f"company_{company_id}/{uuid.uuid4().hex}_{name}"


class LocalFileStore:
    def __init__(self, root, secret: str, base_url: str):
        self.root = Path(root)
        self.secret = secret
        self.base_url = base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        root = self.root.resolve()
        full = (root / path).resolve()
        if root not in full.parents:
            raise ValidationError(f"Invalid file path: {path!r}")
        return full

    def upload(self, path: str, data: bytes) -> str:
        full = self._resolve(path)
        try:
            full.parent.mkdir(parents=True, exist_ok=True)
            full.write_bytes(data)
        except OSError as exc:
            raise DependencyError(f"Could not store {path}: {exc}") from exc
        return path

    def read(self, path: str) -> bytes:
        full = self._resolve(path)
        try:
            return full.read_bytes()
        except FileNotFoundError as exc:
            raise NotFoundError(f"File {path} not found") from exc
        except OSError as exc:
            raise DependencyError(f"Could not read {path}: {exc}") from exc

    def remove(self, paths: Iterable[str]) -> None:
        failed: List[str] = []
        for path in paths:
            try:
                self._resolve(path).unlink(missing_ok=True)
            except (OSError, ValidationError):
                failed.append(path)
        if failed:
            raise DependencyError(f"Could not remove {', '.join(failed)}")

    def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        self._resolve(path)
        expires = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)
        token = jwt.encode({"path": path, "exp": expires}, self.secret, algorithm=ALGORITHM)
        return f"{self.base_url}/files/download?token={token}"

    def verify_token(self, token: str) -> str:
        """Return the file path a signed-URL token grants access to."""
        try:
            claims = jwt.decode(token, self.secret, algorithms=[ALGORITHM])
        except JWTError as exc:
            raise ValidationError("Download link is invalid or has expired") from exc
        return claims["path"]


def discard_files(files, paths: Iterable[str]) -> None:
    """Best-effort cleanup after a row is gone; failures are only logged."""
    paths = [p for p in paths if p]
    if not paths:
        return
    try:
        files.remove(paths)
    except LedgerError as exc:
        logger.warning("Receipt cleanup failed for %s: %s", paths, exc)
