# infrastructure/web/upload_client.py
# IUploadClient over HTTP: POST {base}/upload as multipart form data.

import logging
from typing import Optional

import httpx

from application.dto.trim_dto import EncodedArtifact
from application.ports.upload_port import IUploadClient
from trimmer.errors import UploadError
from trimmer.utils import DEFAULT_API_BASE, DEFAULT_UPLOAD_TIMEOUT

logger = logging.getLogger(__name__)


class HttpUploadClient(IUploadClient):
    """Send trimmed WAVs to the file service's create endpoint."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE,
        *,
        timeout: float = DEFAULT_UPLOAD_TIMEOUT,
        upload_path: str = "/upload",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._path = upload_path
        self._timeout = timeout
        self._transport = transport

    async def create(self, artifact: EncodedArtifact) -> Optional[dict]:
        files = {"file": (artifact.name, artifact.content, artifact.mime_type)}
        data = {"filename": artifact.name}

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(self._path, files=files, data=data)
        except httpx.HTTPError as exc:
            logger.error("upload failed name=%s error=%r", artifact.name, exc)
            raise UploadError(
                f"Could not reach the upload service at {self._base_url}: {exc}\n"
                f"    → Check UPLOAD_API_BASE and that the service is running."
            ) from exc

        payload = _json_payload(response)
        if response.is_error:
            message = None
            if isinstance(payload, dict):
                message = payload.get("message") or payload.get("error")
            logger.warning(
                "upload rejected name=%s status=%d", artifact.name, response.status_code
            )
            raise UploadError(message or f"Error {response.status_code}", response.status_code)

        logger.info("upload accepted name=%s status=%d", artifact.name, response.status_code)
        return payload


def _json_payload(response: httpx.Response) -> Optional[dict]:
    if "application/json" not in response.headers.get("content-type", ""):
        return None
    try:
        return response.json()
    except ValueError:
        return None


__all__ = ["HttpUploadClient"]
