from __future__ import annotations

import re
from pathlib import Path
from typing import Optional, Protocol

from .logger import get_logger, log_phase

logger = get_logger(__name__)

# Un enregistrement valide est un SHA256 hexadécimal minuscule
_DIGEST_REGEX = re.compile(r"^[0-9a-f]{64}$")


class CacheStoreError(Exception):
    """Impossible de persister le fingerprint après un build réussi."""


class DigestStore(Protocol):
    """Stockage du fingerprint du dernier build réussi."""

    def get(self) -> Optional[str]:
        ...

    def set(self, digest: str) -> None:
        ...


def is_valid_digest(value: str) -> bool:
    return bool(_DIGEST_REGEX.match(value))


class FileDigestStore:
    """
    Enregistrement du fingerprint dans un fichier texte unique.

    Lecture tolérante : fichier absent, illisible ou contenu malformé sont
    traités comme "pas de build précédent" (None), jamais comme une erreur.
    Écriture stricte : un échec lève CacheStoreError.
    """

    def __init__(self, cache_path: Path) -> None:
        self.cache_path = Path(cache_path)

    def get(self) -> Optional[str]:
        try:
            if not self.cache_path.is_file():
                return None
            value = self.cache_path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Impossible de charger le fingerprint cache (%s): %s", self.cache_path, exc)
            return None

        if not is_valid_digest(value):
            logger.debug("Fingerprint cache malformé ignoré (%s).", self.cache_path)
            return None
        return value

    def set(self, digest: str) -> None:
        log_phase(logger, "cache.write", f"Écriture du fingerprint dans {self.cache_path}")
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            self.cache_path.write_text(digest + "\n", encoding="utf-8")
        except OSError as exc:
            raise CacheStoreError(
                f"Impossible d'écrire le fingerprint cache ({self.cache_path}) : {exc}"
            ) from exc


class MemoryDigestStore:
    """Store en mémoire, pour les tests et les exécutions éphémères."""

    def __init__(self, digest: Optional[str] = None) -> None:
        self.digest = digest
        self.writes = 0

    def get(self) -> Optional[str]:
        return self.digest

    def set(self, digest: str) -> None:
        self.digest = digest
        self.writes += 1
