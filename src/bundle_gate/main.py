#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from bundle_gate import __version__
from bundle_gate.core.cache_store import CacheStoreError
from bundle_gate.core.config_loader import (
    DEFAULT_RERUN_HINT,
    Config,
    ConfigError,
    ConfigLoader,
    LoggingConfig,
    build_default_config,
)
from bundle_gate.core.discovery import DiscoveryError
from bundle_gate.core.fingerprint import FingerprintError
from bundle_gate.core.logger import configure_logging, get_logger, log_phase
from bundle_gate.pipeline.gate import SourcesUnavailableError
from bundle_gate.pipeline.orchestrator import StepFailedError
from bundle_gate.pipeline.workflow import (
    STATUS_BUILT,
    STATUS_DRY_RUN,
    STATUS_KEPT_PREBUILT,
    BundleWorkflow,
)


logger = get_logger(__name__)


# Exit codes
EXIT_OK = 0
EXIT_FAILURE = 1


# ---------------------------------------------------------------------------
# CLI PARSING
# ---------------------------------------------------------------------------

def parse_cli_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Bundle Gate - rebuild d'un artefact uniquement si ses entrées ont changé"
    )

    parser.add_argument(
        "--config",
        help=(
            "Chemin vers le fichier de configuration YAML "
            f"(defaut: {ConfigLoader.DEFAULT_CONFIG_PATH} s'il existe, sinon profil A2UI intégré)"
        ),
        type=str,
        default=None,
    )

    parser.add_argument(
        "--project-root",
        help="Racine du projet (prioritaire sur la configuration)",
        type=str,
        default=None,
    )

    parser.add_argument(
        "--force",
        help="Ignore le fingerprint enregistré et reconstruit",
        action="store_true",
    )

    parser.add_argument(
        "--dry-run",
        help="Calcule le fingerprint et affiche la décision sans rien exécuter",
        action="store_true",
    )

    parser.add_argument(
        "--verbose",
        help="Active le mode DEBUG pour les logs",
        action="store_true",
    )

    parser.add_argument(
        "-v", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# MAIN ORCHESTRATION
# ---------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    args = parse_cli_args(argv)
    try:
        return _run(args)
    except KeyboardInterrupt:
        logger.error("Interruption manuelle (CTRL+C).")
        return EXIT_FAILURE


def _run(args: argparse.Namespace) -> int:
    # ------------------------
    # 1) LOAD CONFIG
    # ------------------------
    config: Optional[Config] = None
    config_error: Optional[ConfigError] = None
    try:
        config = _load_config(args)
    except ConfigError as exc:
        config_error = exc

    try:
        _configure_logging(config.logging if config else LoggingConfig(), args.verbose)
    except OSError as exc:
        # Destination fichier inutilisable : on retombe sur la console seule
        configure_logging(level="DEBUG" if args.verbose else "INFO")
        logger.error("❌ Impossible d'initialiser les logs : %s", exc)
        _log_remediation(config.build.rerun_hint if config else None)
        return EXIT_FAILURE

    logger.info("=== Bundle Gate %s ===", __version__)

    if config is None:
        logger.error("❌ Erreur de configuration : %s", config_error)
        return EXIT_FAILURE

    log_phase(logger, "config.loaded", f"✓ Configuration chargée (projet {config.project.name})")

    # ------------------------
    # 2) WORKFLOW
    # ------------------------
    try:
        result = BundleWorkflow(config, force=args.force, dry_run=args.dry_run).run()
    except SourcesUnavailableError as exc:
        logger.error("❌ %s", exc)
        return EXIT_FAILURE
    except (DiscoveryError, FingerprintError) as exc:
        logger.error("❌ Erreur sur les entrées : %s", exc)
        _log_remediation(config.build.rerun_hint)
        return EXIT_FAILURE
    except StepFailedError as exc:
        logger.error("❌ Build interrompu : %s", exc)
        _log_remediation(config.build.rerun_hint)
        return EXIT_FAILURE
    except CacheStoreError as exc:
        logger.error("❌ %s", exc)
        _log_remediation(config.build.rerun_hint)
        return EXIT_FAILURE
    except Exception as exc:
        logger.exception("❌ Erreur inattendue : %s", exc)
        _log_remediation(config.build.rerun_hint)
        return EXIT_FAILURE

    if result.status == STATUS_KEPT_PREBUILT:
        log_phase(logger, "done", "✓ Sources absentes, bundle pré-construit conservé")
    elif result.status == STATUS_DRY_RUN:
        log_phase(logger, "done", f"✓ Dry-run : rebuild nécessaire ({result.reason})")
    elif result.status == STATUS_BUILT:
        log_phase(logger, "done", f"✓ Bundle reconstruit ({result.steps_run} étape(s))")
    else:
        log_phase(logger, "done", "✓ Bundle à jour, rien à faire")

    return EXIT_OK


# ---------------------------------------------------------------------------
# Helpers internes
# ---------------------------------------------------------------------------

def _load_config(args: argparse.Namespace) -> Config:
    """
    Résout la configuration à utiliser.

    Priorité :
      1. --config explicite (doit exister)
      2. bundle-gate.yaml dans le répertoire courant s'il existe
      3. profil A2UI intégré, enraciné sur --project-root ou le cwd
    """
    project_root = Path(args.project_root) if args.project_root else None

    if args.config:
        return ConfigLoader(config_path=Path(args.config), project_root=project_root).load()

    if ConfigLoader.DEFAULT_CONFIG_PATH.is_file():
        return ConfigLoader(project_root=project_root).load()

    return build_default_config(project_root or Path.cwd())


def _configure_logging(cfg: LoggingConfig, verbose: bool) -> None:
    configure_logging(
        level="DEBUG" if verbose else cfg.level,
        fmt=cfg.format,
        console_enabled=cfg.console_enabled,
        file_enabled=cfg.file_enabled,
        file_path=cfg.file_name,
    )


def _log_remediation(rerun_hint: Optional[str]) -> None:
    logger.error("Relancez avec : %s", rerun_hint or DEFAULT_RERUN_HINT)
    logger.error("Si le problème persiste, vérifiez les dépendances de la toolchain puis réessayez.")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
