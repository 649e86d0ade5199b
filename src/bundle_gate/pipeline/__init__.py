from bundle_gate.pipeline.gate import GateDecision, SourcesUnavailableError, check_sources, decide
from bundle_gate.pipeline.orchestrator import BuildOrchestrator, BuildStep, StepFailedError, SubprocessStepRunner
from bundle_gate.pipeline.workflow import BundleWorkflow, WorkflowResult

__all__ = [
    'BuildOrchestrator',
    'BuildStep',
    'BundleWorkflow',
    'GateDecision',
    'SourcesUnavailableError',
    'StepFailedError',
    'SubprocessStepRunner',
    'WorkflowResult',
    'check_sources',
    'decide',
]
