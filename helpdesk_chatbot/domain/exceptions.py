"""
Domain Layer Exceptions
"""


class InvalidFlowDefinitionError(ValueError):
    """Raised when a stored flow definition cannot be turned into a FlowDefinition."""
    pass
