from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

import requests

from ..config.loader import UploadConfig
from .progress import PollProgress
from .repair import RepairSession

"""Upload transport client and upload gate.

The transport is an opaque boundary: a multipart CSV upload returning an
upload id, and a status endpoint reporting
``uploading | processing | completed | error``. No retry policy here; a failed
request surfaces as UploadError.

Upload gate: submit_session() refuses to send anything while the session's
validation result still has errors.
"""

__all__ = [
    "JobStatus",
    "UploadBlockedError",
    "UploadCancelledError",
    "UploadClient",
    "UploadError",
    "UploadReceipt",
    "UploadTimeoutError",
    "submit_session",
]

logger = logging.getLogger(__name__)


class UploadError(Exception):
    """Transport-level failure (HTTP error, malformed response, job error)."""


class UploadBlockedError(UploadError):
    """Raised when an upload is attempted while defects remain."""


class UploadTimeoutError(UploadError):
    pass


class UploadCancelledError(UploadError):
    pass


class JobStatus(Enum):
    """Asynchronous import job status.

    State transitions: uploading → processing → (completed | error)
    """
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.ERROR)


@dataclass(frozen=True)
class UploadReceipt:
    upload_id: str
    file_name: str
    status: JobStatus
    message: str | None = None


def _parse_status(value: Any) -> JobStatus:
    try:
        return JobStatus(str(value).lower())
    except ValueError:
        raise UploadError(f"unknown job status: {value!r}") from None


class UploadClient:
    """Thin HTTP client for the asset hierarchy upload endpoints.

    Args:
        config: Upload endpoint configuration (base_url required)
        http: requests.Session compatible object (injected in tests)
        request_timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        config: UploadConfig,
        http: requests.Session | None = None,
        request_timeout: float = 60.0,
    ) -> None:
        if not config.base_url:
            raise UploadError("upload base_url is not configured (set upload.base_url or ASSET_UPLOAD_URL)")
        self.config = config
        self.http = http or requests.Session()
        self.request_timeout = request_timeout

    def _url(self, path: str) -> str:
        return self.config.base_url.rstrip("/") + "/" + path.lstrip("/")  # type: ignore[union-attr]

    def _json(self, response: requests.Response) -> dict[str, Any]:
        try:
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise UploadError(f"upload request failed: {e}") from e
        except ValueError as e:
            raise UploadError(f"invalid JSON response: {e}") from e
        if not isinstance(body, dict):
            raise UploadError("unexpected response body")
        if body.get("status") is False:
            raise UploadError(f"upload rejected: {body.get('message') or 'no message'}")
        return body

    def upload_csv(self, content: str, file_name: str) -> UploadReceipt:
        """POST the CSV as a multipart file; returns the upload receipt."""
        files = {"file": (file_name, content.encode("utf-8"), "text/csv")}
        try:
            response = self.http.post(
                self._url(self.config.upload_path), files=files, timeout=self.request_timeout
            )
        except requests.RequestException as e:
            raise UploadError(f"upload request failed: {e}") from e
        data = self._json(response).get("data") or {}
        upload_id = data.get("id") or data.get("uploadId")
        if not upload_id:
            raise UploadError("upload response carries no upload id")
        receipt = UploadReceipt(
            upload_id=str(upload_id),
            file_name=data.get("fileName", file_name),
            status=_parse_status(data.get("status", "uploading")),
            message=data.get("message"),
        )
        logger.info(f"uploaded {receipt.file_name} upload_id={receipt.upload_id} status={receipt.status.value}")
        return receipt

    def get_status(self, upload_id: str) -> JobStatus:
        url = self._url(self.config.status_path.format(upload_id=upload_id))
        try:
            response = self.http.get(url, timeout=self.request_timeout)
        except requests.RequestException as e:
            raise UploadError(f"status request failed: {e}") from e
        body = self._json(response)
        data = body.get("data") or {}
        return _parse_status(data.get("status", body.get("status")))

    def wait_for_completion(
        self,
        upload_id: str,
        *,
        poll_interval: float | None = None,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> JobStatus:
        """Poll until the job reaches a terminal status.

        Raises:
            UploadTimeoutError: no terminal status within ``timeout`` seconds
            UploadCancelledError: ``cancel`` was set while waiting
            UploadError: the job ended in ``error``
        """
        interval = poll_interval if poll_interval is not None else self.config.poll_interval_sec
        limit = timeout if timeout is not None else self.config.timeout_sec
        stop = cancel or threading.Event()
        deadline = time.monotonic() + limit

        with PollProgress(upload_id) as progress:
            while True:
                status = self.get_status(upload_id)
                progress.update(status.value)
                logger.debug("upload %s status=%s", upload_id, status.value)
                if status is JobStatus.ERROR:
                    raise UploadError(f"import job {upload_id} failed")
                if status.is_terminal:
                    return status
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise UploadTimeoutError(f"import job {upload_id} not finished after {limit}s")
                # Event.wait で待機 -> cancel 即時反映
                if stop.wait(min(interval, remaining)):
                    raise UploadCancelledError(f"waiting for import job {upload_id} cancelled")


def submit_session(
    session: RepairSession,
    client: UploadClient,
    file_name: str,
    *,
    sort_parents_first: bool = False,
) -> UploadReceipt:
    """Hand the repaired CSV to the transport, enforcing the upload gate."""
    result = session.validation_result
    if result.has_errors:
        raise UploadBlockedError(
            f"upload blocked: {result.total_error_count} defect(s) remain "
            f"({result.total_assets - result.valid_assets} asset(s) affected)"
        )
    return client.upload_csv(session.get_modified_csv(sort_parents_first=sort_parents_first), file_name)
