"""Exceptions raised by the analysis pipeline."""


class AnalysisError(RuntimeError):
    """A pipeline phase failed and the report cannot be produced."""

    def __init__(self, phase: str, message: str):
        self.phase = phase
        super().__init__(f"{phase} failed: {message}")
