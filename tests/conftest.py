"""
Fixtures communes : arbre projet temporaire, config et runner factice.
"""

import logging

import pytest

import bundle_gate.core.logger as gate_logger
from bundle_gate.core.config_loader import (
    ArtifactConfig,
    BuildConfig,
    Config,
    InputsConfig,
    LoggingConfig,
    ProjectConfig,
    StepConfig,
)


class RecordingRunner:
    """
    Runner factice : enregistre les étapes, renvoie les codes programmés.

    L'étape nommée "bundle" écrit l'artefact, comme le ferait le vrai outil.
    """

    def __init__(self, artifact=None, codes=None):
        self.artifact = artifact
        self.codes = codes or {}
        self.calls = []

    def __call__(self, step):
        self.calls.append(step.name)
        code = self.codes.get(step.name, 0)
        if code == 0 and step.name == "bundle" and self.artifact is not None:
            self.artifact.parent.mkdir(parents=True, exist_ok=True)
            self.artifact.write_text("bundle:" + str(len(self.calls)), encoding="utf-8")
        return code


@pytest.fixture
def project_root(tmp_path):
    """Projet minimal : deux fichiers d'entrée dans src/."""
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "a.txt").write_text("x", encoding="utf-8")
    (root / "src" / "b.txt").write_text("y", encoding="utf-8")
    return root


@pytest.fixture
def make_config(project_root):
    def _make(step_names=("compile", "bundle"), required=None):
        artifact = project_root / "dist" / "app.bundle.js"
        roots = [project_root / "src"]
        return Config(
            project=ProjectConfig(name="demo", root=project_root),
            artifact=ArtifactConfig(
                output_file=artifact,
                cache_file=project_root / "dist" / ".bundle.hash",
            ),
            inputs=InputsConfig(
                roots=roots,
                required=list(required) if required is not None else roots,
            ),
            build=BuildConfig(
                steps=[StepConfig(name=n, command=n, args=[], cwd=None) for n in step_names],
                rerun_hint="make bundle",
            ),
            logging=LoggingConfig(),
        )

    return _make


@pytest.fixture
def recording_runner(project_root):
    def _make(codes=None):
        return RecordingRunner(artifact=project_root / "dist" / "app.bundle.js", codes=codes)

    return _make


@pytest.fixture
def captured_logging(monkeypatch, caplog):
    """Logging déjà configuré : main() ne remplace pas le handler de caplog."""
    monkeypatch.setattr(gate_logger, "_LOGGER_CONFIGURED", True)
    caplog.set_level(logging.INFO)
    return caplog


@pytest.fixture
def unconfigured_logging(monkeypatch):
    """
    Laisse main() configurer le logging, puis retire les handlers console
    qu'il a posés et restaure ceux du logger racine.
    """
    monkeypatch.setattr(gate_logger, "_LOGGER_CONFIGURED", False)
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
    # configure_logging vide les handlers racine : on remet ceux de pytest
    for handler in before:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
