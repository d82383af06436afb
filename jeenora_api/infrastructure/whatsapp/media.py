"""Download of remote media sent as WhatsApp attachments."""

from __future__ import annotations

import mimetypes
from pathlib import PurePosixPath
from urllib.parse import urlparse

import httpx

from .session import MessageMedia

DEFAULT_MEDIA_TIMEOUT = 30.0


def upgrade_to_https(url: str | None) -> str | None:
    """Rewrite ``http://`` media links to ``https://``."""

    if url and url.startswith("http://"):
        return "https://" + url[len("http://"):]
    return url


async def fetch_media(url: str, *, timeout: float = DEFAULT_MEDIA_TIMEOUT) -> MessageMedia:
    """Download ``url`` and wrap it as a :class:`MessageMedia` attachment."""

    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        response = await client.get(url)
        response.raise_for_status()

    filename = PurePosixPath(urlparse(url).path).name or None
    content_type = response.headers.get("content-type", "").split(";", 1)[0].strip()
    mimetype = (
        content_type
        or (mimetypes.guess_type(filename)[0] if filename else None)
        or "application/octet-stream"
    )
    return MessageMedia(mimetype=mimetype, data=response.content, filename=filename)


__all__ = ["fetch_media", "upgrade_to_https"]
