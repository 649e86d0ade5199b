from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from bundle_gate.core.config_loader import StepConfig
from bundle_gate.core.logger import get_logger, log_phase

logger = get_logger(__name__)

# Code conventionnel du shell pour "commande introuvable"
EXIT_COMMAND_NOT_FOUND = 127


class StepFailedError(Exception):
    """Une étape de build s'est terminée avec un code non nul."""

    def __init__(self, step: "BuildStep", returncode: int) -> None:
        self.step = step
        self.returncode = returncode
        super().__init__(f"Étape '{step.name}' en échec (code={returncode})")


@dataclass(frozen=True)
class BuildStep:
    """
    Invocation externe opaque : commande, arguments ordonnés, cwd optionnel.
    """

    name: str
    command: str
    args: Sequence[str] = field(default_factory=tuple)
    cwd: Optional[Path] = None

    @classmethod
    def from_config(cls, cfg: StepConfig) -> "BuildStep":
        return cls(name=cfg.name, command=cfg.command, args=tuple(cfg.args), cwd=cfg.cwd)

    def describe(self) -> str:
        return " ".join([self.command, *self.args])


# Capacité injectée : exécute une étape et renvoie son code de sortie
StepRunner = Callable[[BuildStep], int]


class SubprocessStepRunner:
    """
    Exécute une étape via subprocess, de façon bloquante et sans timeout.

    - Le binaire est résolu avec shutil.which (sous Windows, "npx" trouve
      "npx.cmd" sans passer par un shell).
    - stdout / stderr sont hérités : la sortie des outils passe telle quelle.
    """

    def __init__(self, default_cwd: Optional[Path] = None) -> None:
        self.default_cwd = default_cwd

    def __call__(self, step: BuildStep) -> int:
        executable = shutil.which(step.command)
        if executable is None:
            logger.error("Commande introuvable dans le PATH : %s", step.command)
            return EXIT_COMMAND_NOT_FOUND

        cwd = step.cwd or self.default_cwd
        try:
            result = subprocess.run(
                [executable, *step.args],
                cwd=str(cwd) if cwd else None,
                check=False,
            )
        except OSError as exc:
            logger.error("Impossible de lancer '%s' : %s", step.describe(), exc)
            return EXIT_COMMAND_NOT_FOUND

        return result.returncode


class BuildOrchestrator:
    """
    Enchaîne les étapes de build dans l'ordre, arrêt au premier échec.

    Aucune étape ne démarre avant la fin de la précédente, aucun retry.
    """

    def __init__(self, steps: Sequence[BuildStep], runner: Optional[StepRunner] = None) -> None:
        self.steps: List[BuildStep] = list(steps)
        self.runner: StepRunner = runner or SubprocessStepRunner()

    def run(self) -> int:
        """
        Exécute toutes les étapes.

        Retour :
          - nombre d'étapes exécutées

        Exceptions :
          - StepFailedError dès qu'une étape renvoie un code non nul
        """
        for index, step in enumerate(self.steps, start=1):
            log_phase(
                logger,
                "build.step",
                f"Exécution : {step.describe()} ({index}/{len(self.steps)})",
            )
            returncode = self.runner(step)
            if returncode != 0:
                logger.error("Étape terminée en erreur (code=%s)", returncode, extra={"step": step.name})
                raise StepFailedError(step, returncode)

        return len(self.steps)
