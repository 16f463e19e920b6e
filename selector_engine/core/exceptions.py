class EngineError(RuntimeError):
    """Raised when the engine cannot work with the input it was given."""


class InvalidDocumentError(EngineError):
    """Raised when the supplied HTML is not a usable document."""


class SelectorValidationError(EngineError):
    """Raised when an oracle returns an unusable selector."""


class InvalidSelectorError(ValueError):
    """Raised internally when a selector string cannot be compiled."""
