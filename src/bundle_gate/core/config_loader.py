import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import jsonschema
import yaml

from .logger import get_logger, log_phase


logger = get_logger(__name__)


# Profil intégré : bundle du renderer A2UI (reprend le script de build d'origine)
DEFAULT_RENDERER_DIR = "vendor/a2ui/renderers/lit"
DEFAULT_APP_DIR = "apps/shared/OpenClawKit/Tools/CanvasA2UI"
DEFAULT_OUTPUT_FILE = "src/canvas-host/a2ui/a2ui.bundle.js"
DEFAULT_CACHE_FILE = "src/canvas-host/a2ui/.bundle.hash"
DEFAULT_RERUN_HINT = "pnpm canvas:a2ui:bundle"


# Schéma JSON du fichier de configuration.
# IMPORTANT :
#   - inputs.roots    : liste ordonnée de fichiers / répertoires fingerprintés
#   - inputs.required : racines dont l'absence déclenche le fallback
#   - build.steps     : commandes exécutées dans l'ordre, arrêt au 1er échec
_STEP_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["command"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "command": {"type": "string", "minLength": 1},
        "args": {"type": "array", "items": {"type": "string"}},
        "cwd": {"type": ["string", "null"]},
    },
    "additionalProperties": False,
}

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["artifact", "inputs", "build"],
    "properties": {
        "project": {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "root": {"type": "string"},
            },
            "additionalProperties": False,
        },
        "artifact": {
            "type": "object",
            "required": ["output_file", "cache_file"],
            "properties": {
                "output_file": {"type": "string", "minLength": 1},
                "cache_file": {"type": "string", "minLength": 1},
            },
            "additionalProperties": False,
        },
        "inputs": {
            "type": "object",
            "required": ["roots"],
            "properties": {
                "roots": {
                    "type": "array",
                    "minItems": 1,
                    "items": {"type": "string", "minLength": 1},
                },
                "required": {
                    "type": "array",
                    "items": {"type": "string", "minLength": 1},
                },
                "exclude_dirs": {
                    "type": "array",
                    "items": {"type": "string", "minLength": 1},
                },
                "exclude_hidden": {"type": "boolean"},
            },
            "additionalProperties": False,
        },
        "build": {
            "type": "object",
            "required": ["steps"],
            "properties": {
                "steps": {"type": "array", "minItems": 1, "items": _STEP_SCHEMA},
                "rerun_hint": {"type": "string"},
            },
            "additionalProperties": False,
        },
        "logging": {
            "type": "object",
            "properties": {
                "level": {
                    "type": "string",
                    "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                },
                "format": {"type": "string", "enum": ["plain", "json"]},
                "console_enabled": {"type": "boolean"},
                "file_enabled": {"type": "boolean"},
                "file_name": {"type": ["string", "null"]},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}


@dataclass
class ProjectConfig:
    name: str
    root: Path


@dataclass
class ArtifactConfig:
    output_file: Path
    cache_file: Path


@dataclass
class InputsConfig:
    roots: List[Path]
    required: List[Path]
    exclude_dirs: List[str] = field(default_factory=list)
    exclude_hidden: bool = False


@dataclass
class StepConfig:
    name: str
    command: str
    args: List[str]
    cwd: Optional[Path]


@dataclass
class BuildConfig:
    steps: List[StepConfig]
    rerun_hint: str


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: str = "plain"
    console_enabled: bool = True
    file_enabled: bool = False
    file_name: Optional[str] = None


@dataclass
class Config:
    project: ProjectConfig
    artifact: ArtifactConfig
    inputs: InputsConfig
    build: BuildConfig
    logging: LoggingConfig


class ConfigError(Exception):
    """Erreur de configuration invalide ou introuvable."""


class ConfigLoader:
    """
    Charge, valide et normalise la configuration du gate de build.

    Responsabilités :
      - Lire un fichier YAML de configuration.
      - Valider le contenu via le schéma JSON embarqué (ou un schéma fourni).
      - Appliquer des overrides via variables d'environnement.
      - Résoudre tous les chemins par rapport à la racine du projet.
    """

    DEFAULT_CONFIG_PATH = Path("bundle-gate.yaml")

    def __init__(
        self,
        config_path: Optional[Path] = None,
        schema: Optional[Dict[str, Any]] = None,
        project_root: Optional[Path] = None,
    ) -> None:
        self.config_path = config_path or self.DEFAULT_CONFIG_PATH
        self.schema = schema or CONFIG_SCHEMA
        # Override explicite (CLI) de la racine projet
        self.project_root = project_root

    def load(self) -> Config:
        """Point d'entrée principal : retourne un objet Config prêt à l'emploi."""
        log_phase(logger, "config.load", f"Chargement configuration depuis {self.config_path}")

        raw_config = self._read_config_file(self.config_path)
        self._validate_against_schema(raw_config, self.schema)
        raw_config = self._apply_env_overrides(raw_config)

        project_cfg = self._build_project_config(raw_config.get("project", {}))
        root = project_cfg.root

        return Config(
            project=project_cfg,
            artifact=self._build_artifact_config(raw_config["artifact"], root),
            inputs=self._build_inputs_config(raw_config["inputs"], root),
            build=self._build_build_config(raw_config["build"], root),
            logging=self._build_logging_config(raw_config.get("logging", {})),
        )

    # ---- Lectures brutes ----

    def _read_config_file(self, path: Path) -> Dict[str, Any]:
        if not path.is_file():
            raise ConfigError(f"Fichier de configuration introuvable : {path}")

        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Impossible de lire le fichier de configuration : {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigError("Le fichier de configuration doit contenir un objet YAML racine.")

        return data

    # ---- Validation schéma ----

    def _validate_against_schema(self, config: Dict[str, Any], schema: Dict[str, Any]) -> None:
        try:
            jsonschema.validate(instance=config, schema=schema)
        except jsonschema.ValidationError as exc:
            location = ".".join(str(p) for p in exc.absolute_path) or "<racine>"
            raise ConfigError(f"Configuration invalide ({location}) : {exc.message}") from exc

    # ---- Overrides env ----

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Applique quelques overrides via variables d'environnement.

        Conventions :
          - BUNDLE_GATE_PROJECT_ROOT
          - BUNDLE_GATE_OUTPUT_FILE
          - BUNDLE_GATE_CACHE_FILE
        """
        log_phase(logger, "config.override", "Application des overrides via variables d'environnement")

        project = config.get("project", {})
        artifact = config.get("artifact", {})

        env_overrides: Tuple[Tuple[str, str, Dict[str, Any]], ...] = (
            ("BUNDLE_GATE_PROJECT_ROOT", "root", project),
            ("BUNDLE_GATE_OUTPUT_FILE", "output_file", artifact),
            ("BUNDLE_GATE_CACHE_FILE", "cache_file", artifact),
        )

        for env_var, key, target in env_overrides:
            val = os.getenv(env_var)
            if not val:
                continue
            logger.debug("Override %s=%s", env_var, val)
            target[key] = val

        config["project"] = project
        config["artifact"] = artifact
        return config

    # ---- Builders ----

    def _build_project_config(self, raw: Dict[str, Any]) -> ProjectConfig:
        if self.project_root is not None:
            root = Path(self.project_root)
        else:
            # Racine relative : résolue depuis le dossier du fichier de config
            root = self._resolve_path(raw.get("root", "."), self.config_path.parent)

        return ProjectConfig(name=raw.get("name", root.name), root=root.resolve())

    def _build_artifact_config(self, raw: Dict[str, Any], root: Path) -> ArtifactConfig:
        return ArtifactConfig(
            output_file=self._resolve_path(raw["output_file"], root),
            cache_file=self._resolve_path(raw["cache_file"], root),
        )

    def _build_inputs_config(self, raw: Dict[str, Any], root: Path) -> InputsConfig:
        roots = [self._resolve_path(p, root) for p in raw["roots"]]
        # Par défaut, toutes les racines fingerprintées sont requises
        required_raw = raw.get("required")
        required = roots if required_raw is None else [self._resolve_path(p, root) for p in required_raw]

        return InputsConfig(
            roots=roots,
            required=required,
            exclude_dirs=list(raw.get("exclude_dirs", [])),
            exclude_hidden=bool(raw.get("exclude_hidden", False)),
        )

    def _build_build_config(self, raw: Dict[str, Any], root: Path) -> BuildConfig:
        steps = []
        for index, step in enumerate(raw["steps"], start=1):
            cwd = step.get("cwd")
            steps.append(
                StepConfig(
                    name=step.get("name") or f"step-{index}",
                    command=step["command"],
                    args=list(step.get("args", [])),
                    cwd=self._resolve_path(cwd, root) if cwd else None,
                )
            )
        return BuildConfig(steps=steps, rerun_hint=raw.get("rerun_hint", DEFAULT_RERUN_HINT))

    def _build_logging_config(self, raw: Dict[str, Any]) -> LoggingConfig:
        return LoggingConfig(
            level=raw.get("level", "INFO"),
            format=raw.get("format", "plain"),
            console_enabled=bool(raw.get("console_enabled", True)),
            file_enabled=bool(raw.get("file_enabled", False)),
            file_name=raw.get("file_name"),
        )

    @staticmethod
    def _resolve_path(path_str: str, base_dir: Path) -> Path:
        """Résout un chemin relatif par rapport à base_dir."""
        path = Path(path_str)
        if not path.is_absolute():
            path = base_dir / path
        return path


def build_default_config(project_root: Path) -> Config:
    """
    Configuration intégrée, utilisée quand aucun fichier n'est fourni.

    Reprend le bundle A2UI : manifeste + lockfile + sources du renderer et de
    l'app, compilation TypeScript puis bundling rolldown.
    """
    root = Path(project_root).resolve()
    renderer_dir = root / DEFAULT_RENDERER_DIR
    app_dir = root / DEFAULT_APP_DIR

    return Config(
        project=ProjectConfig(name="a2ui", root=root),
        artifact=ArtifactConfig(
            output_file=root / DEFAULT_OUTPUT_FILE,
            cache_file=root / DEFAULT_CACHE_FILE,
        ),
        inputs=InputsConfig(
            roots=[root / "package.json", root / "pnpm-lock.yaml", renderer_dir, app_dir],
            # Seules les sources sont vérifiées par le fallback
            required=[renderer_dir, app_dir],
        ),
        build=BuildConfig(
            steps=[
                StepConfig(
                    name="tsc",
                    command="npx",
                    args=["pnpm", "-s", "exec", "tsc", "-p", str(renderer_dir / "tsconfig.json")],
                    cwd=None,
                ),
                StepConfig(
                    name="rolldown",
                    command="npx",
                    args=["rolldown", "-c", str(app_dir / "rolldown.config.mjs")],
                    cwd=None,
                ),
            ],
            rerun_hint=DEFAULT_RERUN_HINT,
        ),
        logging=LoggingConfig(),
    )
