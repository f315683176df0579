from __future__ import annotations

import logging
import shutil
import time
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Optional
from uuid import uuid4

from models.records import RecordKind
from settings import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagedUpload:
    file_id: str
    kind: RecordKind
    filename: str
    total_records: int
    staged_at: float


def _staged_path(root: Path, upload: StagedUpload) -> Path:
    return root / upload.file_id / upload.filename


class UploadStaging:
    """UUID-keyed holding area for validated uploads awaiting import.

    Entries expire ``ttl_seconds`` after staging. Contents live under
    ``root_path/<file_id>/<filename>`` when a root path is configured and in
    memory otherwise.
    """

    def __init__(
        self,
        root_path: Optional[Path] = None,
        ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.root_path = root_path
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._uploads: Dict[str, StagedUpload] = {}
        self._contents: Dict[str, bytes] = {}
        self._lock = Lock()
        if root_path is not None:
            root_path.mkdir(parents=True, exist_ok=True)

    def stage(
        self, kind: RecordKind, filename: str, data: bytes, total_records: int
    ) -> StagedUpload:
        self.evict_expired()
        file_id = str(uuid4())
        upload = StagedUpload(
            file_id=file_id,
            kind=kind,
            filename=Path(filename).name or "upload.xlsx",
            total_records=total_records,
            staged_at=self._clock(),
        )
        with self._lock:
            self._uploads[file_id] = upload
            if self.root_path is not None:
                path = _staged_path(self.root_path, upload)
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(data)
            else:
                self._contents[file_id] = data
        logger.info(
            "Staged upload",
            extra={"upload_id": file_id, "record_kind": kind.value, "record_count": total_records},
        )
        return upload

    def get(self, file_id: str) -> Optional[StagedUpload]:
        with self._lock:
            upload = self._uploads.get(file_id)
        if upload is None or self._is_expired(upload, self._clock()):
            return None
        return upload

    def read_bytes(self, file_id: str) -> bytes:
        upload = self.get(file_id)
        if upload is None:
            raise KeyError(f"Upload {file_id!r} not found or expired. Please upload the file again.")
        if self.root_path is None:
            with self._lock:
                return self._contents[file_id]

        path = _staged_path(self.root_path, upload)
        if not path.exists():
            raise KeyError(f"Upload {file_id!r} is missing on disk. Please upload the file again.")
        return path.read_bytes()

    def evict_expired(self, now: Optional[float] = None) -> int:
        """Drop every upload older than the TTL and return how many went."""
        current = self._clock() if now is None else now
        with self._lock:
            expired = [
                upload for upload in self._uploads.values() if self._is_expired(upload, current)
            ]
            for upload in expired:
                del self._uploads[upload.file_id]
                self._contents.pop(upload.file_id, None)
                if self.root_path is not None:
                    shutil.rmtree(self.root_path / upload.file_id, ignore_errors=True)
        for upload in expired:
            logger.info("Evicted expired upload", extra={"upload_id": upload.file_id})
        return len(expired)

    def _is_expired(self, upload: StagedUpload, now: float) -> bool:
        return now - upload.staged_at > self.ttl_seconds


@lru_cache
def build_default_staging(
    root_path: Optional[str] = None,
    ttl_seconds: Optional[int] = None,
) -> UploadStaging:
    settings = get_settings()
    staging_root = settings.upload_root_path if root_path is None else root_path
    ttl = settings.upload_ttl_seconds if ttl_seconds is None else ttl_seconds
    path = Path(staging_root) if staging_root else None
    return UploadStaging(root_path=path, ttl_seconds=ttl)
