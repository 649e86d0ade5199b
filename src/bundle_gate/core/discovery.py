from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence

from .logger import get_logger, log_phase

logger = get_logger(__name__)


class DiscoveryError(Exception):
    """Racine d'entrée introuvable ou illisible pendant la découverte."""


@dataclass(frozen=True)
class FileEntry:
    """
    Fichier découvert, identifié par son chemin relatif à la racine projet.

    - rel_path : chemin relatif normalisé avec "/" (indépendant de l'OS)
    - abs_path : chemin absolu, utilisé uniquement pour lire le contenu
    """

    rel_path: str
    abs_path: Path


def normalize_rel_path(path: str) -> str:
    """Remplace les séparateurs natifs (et "\\") par "/"."""
    normalized = path.replace(os.sep, "/")
    if os.altsep:
        normalized = normalized.replace(os.altsep, "/")
    return normalized.replace("\\", "/")


@dataclass
class InputDiscoverer:
    """
    Énumère tous les fichiers atteignables depuis une liste de racines.

    Une racine fichier est incluse telle quelle ; une racine répertoire est
    parcourue récursivement (pile explicite, pas de limite de profondeur).
    Pendant le parcours, un lien vers un répertoire n'est pas suivi ; un lien
    vers un fichier est inclus sous son propre chemin relatif, avec le contenu
    de sa cible. Par défaut aucun filtrage : tout fichier de l'arbre est inclus.
    """

    project_root: Path
    exclude_dirs: Sequence[str] = ()
    exclude_hidden: bool = False

    def discover(self, roots: Iterable[Path]) -> List[FileEntry]:
        log_phase(logger, "inputs.discover", "Découverte des fichiers d'entrée")

        entries: List[FileEntry] = []
        for root in roots:
            entries.extend(self._expand_root(self._resolve(root)))

        logger.info("%d fichier(s) d'entrée découvert(s).", len(entries))
        return entries

    # ---- Helpers internes ----

    def _resolve(self, root: Path) -> Path:
        root = Path(root)
        if not root.is_absolute():
            root = self.project_root / root
        return root

    def _expand_root(self, root: Path) -> Iterator[FileEntry]:
        if root.is_file():
            yield self._entry(root)
            return
        if root.is_dir():
            yield from self._walk(root)
            return
        raise DiscoveryError(f"Racine d'entrée introuvable : {root}")

    def _walk(self, root: Path) -> Iterator[FileEntry]:
        stack = [root]
        while stack:
            current = stack.pop()
            try:
                children = list(current.iterdir())
            except OSError as exc:
                raise DiscoveryError(f"Impossible de lister {current} : {exc}") from exc

            for child in children:
                if self.exclude_hidden and child.name.startswith("."):
                    continue
                if child.is_symlink() and child.is_dir():
                    logger.debug("Lien symbolique vers un répertoire ignoré : %s", child)
                    continue
                if child.is_dir():
                    if child.name in self.exclude_dirs:
                        continue
                    stack.append(child)
                elif child.is_file():
                    yield self._entry(child)

    def _entry(self, path: Path) -> FileEntry:
        rel = os.path.relpath(str(path), str(self.project_root))
        return FileEntry(rel_path=normalize_rel_path(rel), abs_path=path)


def discover_inputs(
    project_root: Path,
    roots: Iterable[Path],
    exclude_dirs: Optional[Sequence[str]] = None,
    exclude_hidden: bool = False,
) -> List[FileEntry]:
    """Raccourci fonctionnel autour de InputDiscoverer."""
    discoverer = InputDiscoverer(
        project_root=project_root,
        exclude_dirs=tuple(exclude_dirs or ()),
        exclude_hidden=exclude_hidden,
    )
    return discoverer.discover(roots)
