"""
Receipt storage — where deposit receipts (images / PDFs) are written.

The ledger only needs "store these bytes, give me a URL". LocalReceiptStorage
writes under UPLOAD_DIR and returns a URL under RECEIPT_BASE_URL; a cloud
bucket implementation only has to provide the same save() coroutine.

Stored names are random; only the original extension is kept, so member
supplied filenames never reach the filesystem.
"""

import logging
import uuid
from pathlib import Path, PurePath

from starlette.concurrency import run_in_threadpool

from backoffice.exceptions import StorageError

logger = logging.getLogger(__name__)


class ReceiptStorage:
    """Interface for receipt stores."""

    async def save(self, transaction_id: str, filename: str, data: bytes) -> str:
        raise NotImplementedError


class LocalReceiptStorage(ReceiptStorage):
    def __init__(self, base_dir: str | Path, base_url: str):
        self.base_dir = Path(base_dir)
        self.base_url = base_url.rstrip("/")

    async def save(self, transaction_id: str, filename: str, data: bytes) -> str:
        suffix = PurePath(filename or "").suffix.lower()[:10]
        stored_name = f"{uuid.uuid4().hex}{suffix}"
        target = self.base_dir / transaction_id / stored_name

        try:
            await run_in_threadpool(self._write, target, data)
        except OSError as exc:
            logger.error("Could not store receipt for %s: %s", transaction_id, exc)
            raise StorageError("The receipt could not be stored") from exc

        return f"{self.base_url}/{transaction_id}/{stored_name}"

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
