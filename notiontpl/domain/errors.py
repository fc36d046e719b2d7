"""User-facing errors raised by the application services."""


class TemplateError(ValueError):
    """Raised when a template, master object or target is unusable."""


class BlueprintError(ValueError):
    """Raised when a deployment blueprint is missing or malformed."""
