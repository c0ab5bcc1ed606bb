import logging
from functools import lru_cache
from typing import List
from urllib.parse import urlparse
from yt_dlp.extractor import gen_extractor_classes
from watchparty.exceptions import InvalidMedia

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _extractors() -> List[type]:
    # The generic extractor accepts any URL, so it says nothing about playability
    return [ie for ie in gen_extractor_classes() if ie.ie_key() != "Generic"]


def can_play(url: str) -> bool:
    """
    Check whether a media locator points at a site a player can embed.
    Only the URL shape is checked, nothing is fetched.
    """
    if not url:
        return False
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False
    for ie in _extractors():
        try:
            if ie.suitable(url.strip()):
                logger.debug(f"{url} handled by {ie.ie_key()}")
                return True
        except Exception as e:
            logger.debug(f"Extractor {ie.ie_key()} failed on {url}: {e}")
    return False


def ensure_playable(url: str) -> str:
    if not can_play(url):
        raise InvalidMedia(url)
    return url.strip()
