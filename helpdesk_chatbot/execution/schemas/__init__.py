from .results import DiagnosticKind, FlowDiagnostic, OutboundMessage, RunResult

__all__ = ["DiagnosticKind", "FlowDiagnostic", "OutboundMessage", "RunResult"]
