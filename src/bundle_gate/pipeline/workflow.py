from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from bundle_gate.core.cache_store import DigestStore, FileDigestStore
from bundle_gate.core.config_loader import Config
from bundle_gate.core.fingerprint import compute_fingerprint_for_roots
from bundle_gate.core.logger import get_logger, log_phase

from .gate import check_sources, decide
from .orchestrator import BuildOrchestrator, BuildStep, StepRunner, SubprocessStepRunner

logger = get_logger(__name__)


STATUS_KEPT_PREBUILT = "kept-prebuilt"
STATUS_SKIPPED = "skipped"
STATUS_BUILT = "built"
STATUS_DRY_RUN = "dry-run"


@dataclass
class WorkflowResult:
    """
    Résultat d'une exécution du workflow.

    - status      : une des constantes STATUS_*
    - fingerprint : fingerprint calculé (None si le fallback a court-circuité)
    - reason      : raison de la décision du gate (None si fallback)
    - steps_run   : nombre d'étapes de build exécutées
    """

    status: str
    fingerprint: Optional[str] = None
    reason: Optional[str] = None
    steps_run: int = 0


class BundleWorkflow:
    """
    Gate de build incrémental pour un artefact unique.

    Enchaînement :
      fallback sources -> découverte + fingerprint -> gate
        -> skip
        -> ou orchestrateur puis écriture du fingerprint

    Le store et le runner sont injectables (tests : MemoryDigestStore et
    runner factice). Le fingerprint n'est écrit qu'après un build complet
    réussi ; toute erreur remonte à l'appelant.
    """

    def __init__(
        self,
        config: Config,
        store: Optional[DigestStore] = None,
        runner: Optional[StepRunner] = None,
        force: bool = False,
        dry_run: bool = False,
    ) -> None:
        self.config = config
        self.store: DigestStore = store or FileDigestStore(config.artifact.cache_file)
        self.runner: StepRunner = runner or SubprocessStepRunner(default_cwd=config.project.root)
        self.force = force
        self.dry_run = dry_run

    def run(self) -> WorkflowResult:
        artifact = self.config.artifact.output_file
        inputs = self.config.inputs

        if not check_sources(inputs.required, artifact):
            return WorkflowResult(status=STATUS_KEPT_PREBUILT)

        fingerprint, _ = compute_fingerprint_for_roots(
            self.config.project.root,
            inputs.roots,
            exclude_dirs=inputs.exclude_dirs,
            exclude_hidden=inputs.exclude_hidden,
        )

        decision = decide(fingerprint, self.store.get(), artifact, force=self.force)

        if not decision.rebuild:
            logger.info("Bundle %s à jour ; build ignoré.", self.config.project.name)
            return WorkflowResult(
                status=STATUS_SKIPPED,
                fingerprint=fingerprint,
                reason=decision.reason,
            )

        if self.dry_run:
            logger.info("Mode dry-run : rebuild nécessaire (%s), rien n'est exécuté.", decision.reason)
            return WorkflowResult(
                status=STATUS_DRY_RUN,
                fingerprint=fingerprint,
                reason=decision.reason,
            )

        log_phase(
            logger,
            "build.start",
            f"Build du bundle {self.config.project.name} ({decision.reason})",
        )
        steps = [BuildStep.from_config(step) for step in self.config.build.steps]
        steps_run = BuildOrchestrator(steps, runner=self.runner).run()

        self.store.set(fingerprint)
        logger.info("Bundle %s mis à jour.", self.config.project.name)

        return WorkflowResult(
            status=STATUS_BUILT,
            fingerprint=fingerprint,
            reason=decision.reason,
            steps_run=steps_run,
        )
