"""Exceptions raised by the analysis pipeline."""


class InvalidConfiguration(ValueError):
    """Frame/hop size, sample rate or threshold out of range."""


class OracleInitializationFailure(RuntimeError):
    """The onset or pitch detection backend could not be created."""


class ExportFailure(RuntimeError):
    """The bundle writer failed after analysis completed.

    The finished analysis is kept on ``result`` so callers can still use it.
    """

    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result
