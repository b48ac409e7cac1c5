from __future__ import annotations
"""Artifact retrieval: turns a terminal Veo operation into a local video file.

The delivery URI is protected: the active API key is appended as the ``key``
query parameter, read from the credential gate at download time.
"""

import logging
import os
import uuid

import httpx

from veo_motion.config import get_settings
from veo_motion.errors import CredentialError, RetrievalError, RetrievalErrorKind
from veo_motion.models.generation import Operation, VideoArtifact
from veo_motion.services.credentials import CredentialGate

logger = logging.getLogger(__name__)

DEFAULT_VIDEO_MIME = "video/mp4"
EXPORT_FILENAME = "veo-motion.mp4"


def authenticated_url(uri: str, api_key: str) -> httpx.URL:
    """Append the API key to the delivery URI, keeping its existing query."""
    return httpx.URL(uri).copy_merge_params({"key": api_key})


class ArtifactRetriever:
    """Downloads generated videos into the media volume."""

    def __init__(
        self,
        gate: CredentialGate,
        *,
        media_volume: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        self._gate = gate
        self._media_volume = media_volume or settings.MEDIA_VOLUME
        self._http_client = http_client
        self._timeout = timeout or settings.DOWNLOAD_TIMEOUT

    async def retrieve(self, operation: Operation) -> VideoArtifact:
        """Download the first generated video of a terminal operation."""
        if operation.error is not None:
            raise RetrievalError(
                RetrievalErrorKind.REMOTE_GENERATION_FAILED,
                operation.error_message or "Video generation failed.",
            )

        video = operation.videos[0] if operation.videos else None
        if video is None or not video.uri:
            raise RetrievalError(
                RetrievalErrorKind.MISSING_ARTIFACT,
                "No video URI returned from the API.",
            )

        try:
            url = authenticated_url(video.uri, self._gate.current_credential())
        except CredentialError as e:
            raise RetrievalError(RetrievalErrorKind.DOWNLOAD_FAILED, str(e)) from e

        content = await self._download(url, video.uri)
        mime_type = video.mime_type or DEFAULT_VIDEO_MIME
        path, rel_path = self._save(content)
        logger.info("Video saved: %s (%d bytes)", rel_path, len(content))
        return VideoArtifact(
            url=f"/media/{rel_path}",
            mime_type=mime_type,
            path=path,
            filename=EXPORT_FILENAME,
        )

    async def _download(self, url: httpx.URL, display_uri: str) -> bytes:
        client = self._http_client or httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        own_client = self._http_client is None

        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            logger.error("Video download from %s failed: %s", display_uri, e)
            raise RetrievalError(
                RetrievalErrorKind.DOWNLOAD_FAILED,
                f"Failed to download video: {e}",
            ) from e
        finally:
            if own_client:
                await client.aclose()

        if not response.is_success:
            raise RetrievalError(
                RetrievalErrorKind.DOWNLOAD_FAILED,
                f"Failed to download video: {response.status_code} {response.reason_phrase}".rstrip(),
                status=response.status_code,
            )
        return response.content

    def _save(self, content: bytes) -> tuple[str, str]:
        dir_path = os.path.join(self._media_volume, "videos")
        os.makedirs(dir_path, exist_ok=True)

        filename = f"{uuid.uuid4().hex}.mp4"
        filepath = os.path.join(dir_path, filename)
        with open(filepath, "wb") as f:
            f.write(content)

        return filepath, f"videos/{filename}"
