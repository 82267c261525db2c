"""
Branding assets (logo, seal, signature) for rendered documents.

An image source is one of:
  * a base64 data URL (``data:image/png;base64,...``)
  * an absolute http(s) URL
  * a path relative to the API (``data/branding/logo.png``), resolved against
    ``asset_base_url`` or, when no API is configured, the local data dir

Any failure while loading one image (bad URL, HTTP error, corrupt bytes)
makes that image absent; it never fails the render.
"""
import asyncio
import base64
import binascii
import re
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Literal, Optional, Tuple

import aiohttp
from PIL import Image, UnidentifiedImageError

from .config import get_settings
from .logging_setup import setup_logger
from .models import BrandingSettings

logger = setup_logger(__name__)

BrandingKind = Literal["logo", "seal", "signature"]

DATA_URL = re.compile(r"^data:image/(\w+);base64,(.+)$", re.DOTALL)

_NATIVE_FORMATS = {"PNG": "png", "JPEG": "jpeg", "GIF": "gif"}


class ImageLoadError(Exception):
    pass


@dataclass(frozen=True)
class LoadedImage:
    data: bytes
    extension: str
    width: int
    height: int

    def stream(self) -> BytesIO:
        # a fresh stream per consumer; libraries read and close them
        return BytesIO(self.data)

    def scaled(self, max_width: float, max_height: float) -> Tuple[float, float]:
        """Fit inside the box keeping aspect ratio, never upscaling."""
        if not self.width or not self.height:
            return max_width, max_height
        scale = min(max_width / self.width, max_height / self.height, 1)
        return round(self.width * scale), round(self.height * scale)


@dataclass(frozen=True)
class BrandImages:
    logo: Optional[LoadedImage] = None
    seal: Optional[LoadedImage] = None
    signature: Optional[LoadedImage] = None


def decode_image(data: bytes) -> LoadedImage:
    """Check the bytes really are an image; formats the writers can't embed become PNG."""
    try:
        with Image.open(BytesIO(data)) as probe:
            probe.verify()
        with Image.open(BytesIO(data)) as img:
            img.load()
            width, height = img.size
            extension = _NATIVE_FORMATS.get(img.format or "")
            if extension is None:
                out = BytesIO()
                img.convert("RGBA").save(out, format="PNG")
                data, extension = out.getvalue(), "png"
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as exc:
        raise ImageLoadError(f"not a readable image: {exc}") from exc
    return LoadedImage(data=data, extension=extension, width=width, height=height)


def decode_data_url(source: str) -> bytes:
    match = DATA_URL.match(source.strip())
    if not match:
        raise ImageLoadError("unsupported data URL")
    try:
        return base64.b64decode(match.group(2), validate=False)
    except (binascii.Error, ValueError) as exc:
        raise ImageLoadError(f"bad base64 payload: {exc}") from exc


class BrandingResolver:

    def __init__(self, branding: BrandingSettings, asset_base_url: Optional[str] = None,
                 data_dir: Optional[str] = None, timeout: Optional[float] = None):
        settings = get_settings()
        self.branding = branding
        self.asset_base_url = (asset_base_url if asset_base_url is not None else settings.asset_base_url) or None
        self.data_dir = Path(data_dir if data_dir is not None else settings.data_dir)
        self.timeout = timeout if timeout is not None else settings.image_timeout_seconds

    def resolve(self, kind: BrandingKind) -> Optional[str]:
        """Source configured for the asset, or None when there is none."""
        source = getattr(self.branding, f"{kind}_url", None)
        if not source or not source.strip():
            return None
        return source.strip()

    def file_url(self, relative_path: str) -> Optional[str]:
        if not self.asset_base_url:
            return None
        clean = relative_path[2:] if relative_path.startswith("./") else relative_path
        parts = clean.strip("/").split("/")
        base = self.asset_base_url.rstrip("/")
        if len(parts) >= 2 and parts[0] == "data" and parts[1] == "branding":
            return f"{base}/uploads/branding/{parts[-1]}"
        if len(parts) >= 2 and parts[0] == "data" and parts[1] == "uploads":
            return f"{base}/uploads/{'/'.join(parts[2:])}"
        return f"{base}/{'/'.join(parts)}"

    async def _fetch(self, url: str, session: aiohttp.ClientSession) -> bytes:
        async with session.get(url, timeout=aiohttp.ClientTimeout(total=self.timeout)) as response:
            if response.status != 200:
                raise ImageLoadError(f"HTTP {response.status}")
            return await response.read()

    async def _read(self, source: str, session: aiohttp.ClientSession) -> bytes:
        if source.startswith("data:"):
            return decode_data_url(source)
        if source.startswith(("http://", "https://")):
            return await self._fetch(source, session)
        url = self.file_url(source)
        if url:
            return await self._fetch(url, session)
        clean = source[2:] if source.startswith("./") else source
        path = Path(clean) if Path(clean).is_absolute() else self.data_dir.parent / clean
        if not path.is_file():
            path = self.data_dir / Path(clean).name
        return path.read_bytes()

    async def load(self, kind: BrandingKind, session: aiohttp.ClientSession) -> Optional[LoadedImage]:
        source = self.resolve(kind)
        if source is None:
            return None
        try:
            return decode_image(await self._read(source, session))
        except (ImageLoadError, aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            logger.warning("branding image unavailable", extra={"asset": kind, "error": repr(exc)})
            return None

    async def load_all(self) -> BrandImages:
        async with aiohttp.ClientSession() as session:
            logo, seal, signature = await asyncio.gather(
                self.load("logo", session),
                self.load("seal", session),
                self.load("signature", session),
            )
        return BrandImages(logo=logo, seal=seal, signature=signature)
