"""Engine exceptions."""


class EngineError(Exception):
    """Base class for engine errors."""


class CollaboratorError(EngineError):
    """A call to the market data provider or the record store failed."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class CircuitOpenError(EngineError):
    """A collaborator call was refused because the circuit breaker is open."""


class ConfigurationError(EngineError):
    """Required configuration or credentials are missing."""
