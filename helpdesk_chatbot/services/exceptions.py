"""
Service Layer Exceptions

Custom exceptions for the ChatbotService, FlowService and related orchestration logic.
"""


class FlowNotFoundError(Exception):
    """Raised when a flow id does not exist in the catalog."""
    pass


class FlowValidationError(ValueError):
    """Raised when a flow create/update request is incomplete."""
    pass
