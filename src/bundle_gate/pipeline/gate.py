from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from bundle_gate.core.logger import get_logger, log_phase

logger = get_logger(__name__)


# Raisons de décision du gate
REASON_NO_RECORD = "no-cache-record"
REASON_CHANGED = "fingerprint-changed"
REASON_ARTIFACT_MISSING = "artifact-missing"
REASON_FORCED = "forced"
REASON_UP_TO_DATE = "up-to-date"


class SourcesUnavailableError(Exception):
    """Sources requises absentes et aucun artefact précédent à conserver."""

    def __init__(self, missing: List[Path], artifact: Path) -> None:
        self.missing = missing
        self.artifact = artifact
        listed = ", ".join(str(p) for p in missing)
        super().__init__(
            f"Sources manquantes ({listed}) et aucun bundle pré-construit trouvé : {artifact}"
        )


@dataclass(frozen=True)
class GateDecision:
    """
    Décision du cache gate.

    - rebuild : True si l'orchestrateur doit être lancé
    - reason  : une des constantes REASON_*
    - previous: fingerprint enregistré (None si absent ou illisible)
    """

    rebuild: bool
    reason: str
    fingerprint: str
    previous: Optional[str]


def find_missing_sources(required: Iterable[Path]) -> List[Path]:
    return [Path(p) for p in required if not Path(p).exists()]


def check_sources(required: Iterable[Path], artifact: Path) -> bool:
    """
    Vérifie la présence des racines requises.

    Retour :
      - True  : toutes les sources sont présentes, le workflow continue
      - False : sources manquantes mais artefact présent, on le conserve

    Exceptions :
      - SourcesUnavailableError si sources manquantes et pas d'artefact
    """
    log_phase(logger, "sources.check", "Vérification de la présence des sources")

    missing = find_missing_sources(required)
    if not missing:
        return True

    for path in missing:
        logger.debug("Source requise absente : %s", path)

    if Path(artifact).is_file():
        logger.info("Sources manquantes ; conservation du bundle pré-construit (%s).", artifact)
        return False

    raise SourcesUnavailableError(missing, Path(artifact))


def decide(
    fingerprint: str,
    previous: Optional[str],
    artifact: Path,
    force: bool = False,
) -> GateDecision:
    """
    Compare le fingerprint calculé à l'enregistrement précédent.

    Un fingerprint identique ne suffit pas : l'artefact doit aussi exister,
    sinon un enregistrement périmé survivrait à sa suppression.
    """
    log_phase(logger, "cache.gate", "Comparaison avec le fingerprint du dernier build")

    if force:
        reason = REASON_FORCED
    elif previous is None:
        reason = REASON_NO_RECORD
    elif previous != fingerprint:
        reason = REASON_CHANGED
    elif not Path(artifact).is_file():
        reason = REASON_ARTIFACT_MISSING
    else:
        reason = REASON_UP_TO_DATE

    decision = GateDecision(
        rebuild=reason != REASON_UP_TO_DATE,
        reason=reason,
        fingerprint=fingerprint,
        previous=previous,
    )
    logger.debug("Décision du gate : %s", decision)
    return decision
