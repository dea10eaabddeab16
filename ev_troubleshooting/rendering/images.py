"""
Image reference resolution for decision nodes.

Authors reference images either by absolute URL or by a path relative to the
images directory. A relative image is served through the app's `/images`
static mount when a public URL is known, otherwise uploaded from disk.
"""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

logger = logging.getLogger(__name__)

IMAGES_ROUTE = "/images"


class ImageResolver:
    def __init__(self, images_dir: Optional[Path], public_url: str = ""):
        self.images_dir = Path(images_dir).resolve() if images_dir else None
        self.public_url = public_url.rstrip("/")

    def resolve(self, ref: Optional[str]) -> Optional[str]:
        """
        Returns a URL or local file path Telegram can fetch, or None when
        the reference cannot be resolved.
        """
        if not ref:
            return None

        ref = ref.strip()
        if ref.startswith(("http://", "https://")):
            return ref

        if self.images_dir is None:
            return None

        candidate = (self.images_dir / ref.lstrip("/")).resolve()
        # Refuse anything that escapes the images directory
        if self.images_dir not in candidate.parents or not candidate.is_file():
            logger.warning(f"Image reference not resolvable: {ref}")
            return None

        if self.public_url:
            relative = candidate.relative_to(self.images_dir).as_posix()
            return f"{self.public_url}{IMAGES_ROUTE}/{quote(relative)}"
        return str(candidate)
