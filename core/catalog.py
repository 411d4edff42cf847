"""Read-only client for the podcast catalog API."""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import requests
from guessit import guessit

from core.domain import EpisodeDescriptor, make_episode_id
from core.errors import CatalogError

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_URL = "https://podcast-api.netlify.app"
AUDIO_EXTENSIONS = ('.mp3', '.wav', '.ogg', '.m4a', '.aac', '.webm')
GENRE_IDS = tuple(range(1, 10))  # the catalog exposes genres 1-9 by id


class CatalogClient:
    """Fetches show previews, full shows (with seasons) and genres by id."""

    def __init__(self, base_url: str = DEFAULT_CATALOG_URL, timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            raise CatalogError(f"Server error: {status} for {url}") from e
        except (requests.RequestException, ValueError) as e:
            logger.error("Fetch error for %s: %s", url, e)
            raise CatalogError(f"Could not fetch {url}: {e}") from e

    def list_shows(self) -> List[Dict[str, Any]]:
        data = self._get("/")
        if not isinstance(data, list):
            raise CatalogError("Catalog index is not a list")
        return data

    def get_show(self, show_id: str) -> Dict[str, Any]:
        data = self._get(f"/id/{show_id}")
        if not isinstance(data, dict):
            raise CatalogError(f"Show {show_id} is not an object")
        return data

    def get_genre(self, genre_id: int) -> Dict[str, Any]:
        data = self._get(f"/genre/{genre_id}")
        if not isinstance(data, dict):
            raise CatalogError(f"Genre {genre_id} is not an object")
        return data

    def list_genres(self, genre_ids=GENRE_IDS) -> List[Dict[str, Any]]:
        """Fetches every known genre; any failure fails the whole listing."""
        return [self.get_genre(genre_id) for genre_id in genre_ids]


def guess_episode_number(title: str) -> Optional[int]:
    """Guesses an episode number from a title such as "Episode 4: ..." or "S02E04"."""
    if not title:
        return None
    try:
        guessed = guessit(title, {"type": "episode"})
    except Exception as e:
        logger.debug("Could not guess episode number from %r: %s", title, e)
        return None
    episode = guessed.get("episode")
    if isinstance(episode, list):
        episode = episode[0] if episode else None
    return episode if isinstance(episode, int) else None


def episodes_for_season(show: Dict[str, Any], season: Dict[str, Any]) -> List[EpisodeDescriptor]:
    """Turns one season of a full show record into playable episode descriptors."""
    show_id = str(show.get("id", ""))
    try:
        season_number = int(season.get("season") or 0)
    except (ValueError, TypeError):
        season_number = 0
    image = season.get("image") or show.get("image") or ""

    descriptors = []
    for index, episode in enumerate(season.get("episodes") or [], start=1):
        audio_url = episode.get("file")
        if not audio_url:
            continue
        title = episode.get("title") or ""
        try:
            number = int(episode["episode"])
        except (KeyError, ValueError, TypeError):
            number = guess_episode_number(title) or index
        descriptors.append(EpisodeDescriptor(
            episode_id=make_episode_id(show_id, season_number, number),
            audio_url=audio_url,
            title=title,
            season=season_number,
            episode=number,
            show_title=show.get("title") or "",
            show_image=image,
        ))
    return descriptors


def is_valid_audio_url(url: Optional[str]) -> bool:
    """True for http(s) URLs with an audio file extension or served by the catalog host."""
    if not url:
        return False
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False
    return parsed.path.lower().endswith(AUDIO_EXTENSIONS) or parsed.netloc.endswith(urlparse(DEFAULT_CATALOG_URL).netloc)
