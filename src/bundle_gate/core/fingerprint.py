import hashlib
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from .discovery import FileEntry, discover_inputs, normalize_rel_path
from .logger import get_logger, log_phase

logger = get_logger(__name__)

# Séparateur entre chemin et contenu, puis entre deux fichiers
_SEPARATOR = b"\0"
_CHUNK_SIZE = 1024 * 1024


class FingerprintError(Exception):
    """Erreur lors du calcul du fingerprint des entrées."""


def _feed_file(digest: "hashlib._Hash", path: Path) -> None:
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)


def sort_entries(entries: Iterable[FileEntry]) -> List[Tuple[str, FileEntry]]:
    """
    Normalise les chemins relatifs et trie par comparaison binaire.

    Le tri de str en Python compare les points de code : le résultat ne
    dépend ni de la locale ni de la plateforme.
    """
    normalized = [(normalize_rel_path(entry.rel_path), entry) for entry in entries]
    return sorted(normalized, key=lambda item: item[0])


def compute_fingerprint(entries: Iterable[FileEntry]) -> str:
    """
    Réduit un ensemble de FileEntry en un digest SHA256 hexadécimal.

    Pour chaque fichier (ordre trié) on injecte :
      chemin relatif UTF-8, "\\0", contenu brut, "\\0"

    Le chemin fait partie du hash : un renommage ou un arbre identique placé
    ailleurs change le fingerprint. Les séparateurs évitent toute ambiguïté
    de concaténation chemin/contenu.

    Exceptions :
      - FingerprintError si un fichier ne peut pas être lu.
    """
    digest = hashlib.sha256()

    for rel_path, entry in sort_entries(entries):
        digest.update(rel_path.encode("utf-8"))
        digest.update(_SEPARATOR)
        try:
            _feed_file(digest, entry.abs_path)
        except OSError as exc:
            raise FingerprintError(f"Lecture impossible de {entry.abs_path} : {exc}") from exc
        digest.update(_SEPARATOR)

    return digest.hexdigest()


def compute_fingerprint_for_roots(
    project_root: Path,
    roots: Sequence[Path],
    exclude_dirs: Optional[Sequence[str]] = None,
    exclude_hidden: bool = False,
) -> Tuple[str, int]:
    """
    Découvre les fichiers sous `roots` puis calcule leur fingerprint.

    Retour :
      - (fingerprint hexadécimal, nombre de fichiers pris en compte)
    """
    entries = discover_inputs(
        project_root,
        roots,
        exclude_dirs=exclude_dirs,
        exclude_hidden=exclude_hidden,
    )

    log_phase(logger, "fingerprint.compute", "Calcul du fingerprint des entrées")
    fingerprint = compute_fingerprint(entries)
    logger.info(
        "Fingerprint calculé (SHA256) sur %d fichier(s) : %s",
        len(entries),
        fingerprint[:12],
        extra={"fingerprint": fingerprint},
    )
    return fingerprint, len(entries)
