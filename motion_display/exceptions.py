"""Exception types for motion display."""


class MotionDisplayError(Exception):
    """Base class for errors raised by the motion display package."""


class ElementNotFoundError(MotionDisplayError, KeyError):
    """Raised when an element id is not present in the scene."""

    def __init__(self, element_id: str):
        super().__init__(element_id)
        self.element_id = element_id

    def __str__(self) -> str:
        return f"Element '{self.element_id}' not found"


class ConfigError(MotionDisplayError, ValueError):
    """Raised when a configuration file cannot be loaded or parsed."""


class RenderError(MotionDisplayError):
    """Raised (and reported, never propagated) when drawing fails."""

    def __init__(self, message: str, element_id: str = None):
        super().__init__(message)
        self.element_id = element_id
