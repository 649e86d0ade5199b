from __future__ import annotations

import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests

from bundle_gate.core.logger import get_logger, log_phase

logger = get_logger(__name__)

DEFAULT_MEDIA_DIR = Path(".media")
DEFAULT_TIMEOUT_SECONDS = 30.0
_CHUNK_SIZE = 64 * 1024


class MediaError(Exception):
    """Erreur générique lors de la résolution d'une pièce jointe."""


class MediaFetchError(MediaError):
    """Le téléchargement a échoué (réseau ou statut HTTP non 2xx)."""


class MediaTooLargeError(MediaError):
    """Le contenu dépasse le plafond d'octets autorisé."""

    def __init__(self, size: int, max_bytes: int) -> None:
        self.size = size
        self.max_bytes = max_bytes
        super().__init__(f"Média trop volumineux ({size} octets > {max_bytes})")


@dataclass
class LoadedMedia:
    buffer: bytes
    content_type: Optional[str]


@dataclass
class SavedMedia:
    path: Path
    content_type: Optional[str]


@dataclass
class OutboundAttachment:
    path: Path
    content_type: Optional[str] = None


def _parse_content_type(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    value = header.split(";", 1)[0].strip().lower()
    return value or None


def load_web_media(
    url: str,
    max_bytes: int,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> LoadedMedia:
    """
    Télécharge une ressource distante en streaming, plafonnée à max_bytes.

    Le plafond est vérifié sur Content-Length (si annoncé) puis sur les
    octets réellement reçus : un serveur qui ment sur la taille est coupé.
    """
    log_phase(logger, "media.fetch", f"Téléchargement du média {url}")
    if session is None:
        with requests.Session() as owned:
            return _fetch(owned, url, max_bytes, timeout)
    return _fetch(session, url, max_bytes, timeout)


def _fetch(http: requests.Session, url: str, max_bytes: int, timeout: float) -> LoadedMedia:
    try:
        response = http.get(url, stream=True, timeout=timeout)
    except requests.RequestException as exc:
        raise MediaFetchError(f"Téléchargement impossible de {url} : {exc}") from exc

    try:
        if not 200 <= response.status_code < 300:
            raise MediaFetchError(f"Erreur HTTP {response.status_code} pour {url}")

        announced = response.headers.get("Content-Length")
        if announced and announced.isdigit() and int(announced) > max_bytes:
            raise MediaTooLargeError(int(announced), max_bytes)

        received = bytearray()
        try:
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                received.extend(chunk)
                if len(received) > max_bytes:
                    raise MediaTooLargeError(len(received), max_bytes)
        except requests.RequestException as exc:
            raise MediaFetchError(f"Lecture interrompue pour {url} : {exc}") from exc

        content_type = _parse_content_type(response.headers.get("Content-Type"))
        logger.debug("Média reçu (%d octets, type=%s)", len(received), content_type)
        return LoadedMedia(buffer=bytes(received), content_type=content_type)
    finally:
        response.close()


class MediaStore:
    """
    Stockage local des médias, un fichier par contenu sous base_dir/<subdir>/.

    Le nom est un uuid ; l'extension est déduite du content-type quand
    mimetypes la connaît.
    """

    def __init__(self, base_dir: Path = DEFAULT_MEDIA_DIR) -> None:
        self.base_dir = Path(base_dir)

    def save(
        self,
        buffer: bytes,
        content_type: Optional[str],
        subdir: str = "outbound",
        max_bytes: Optional[int] = None,
    ) -> SavedMedia:
        if max_bytes is not None and len(buffer) > max_bytes:
            raise MediaTooLargeError(len(buffer), max_bytes)

        extension = mimetypes.guess_extension(content_type) if content_type else None
        target_dir = self.base_dir / subdir
        target_dir.mkdir(parents=True, exist_ok=True)

        path = target_dir / f"{uuid.uuid4().hex}{extension or ''}"
        path.write_bytes(buffer)
        logger.info("Média enregistré : %s", path)
        return SavedMedia(path=path, content_type=content_type)


def resolve_outbound_attachment_from_url(
    media_url: str,
    max_bytes: int,
    store: Optional[MediaStore] = None,
    session: Optional[requests.Session] = None,
) -> OutboundAttachment:
    """Télécharge puis persiste une pièce jointe sortante."""
    media = load_web_media(media_url, max_bytes, session=session)
    saved = (store or MediaStore()).save(
        media.buffer,
        media.content_type,
        subdir="outbound",
        max_bytes=max_bytes,
    )
    return OutboundAttachment(path=saved.path, content_type=saved.content_type)
