"""Exception types raised by treelight.

Failures local to a single capture or injection match are absorbed by the
pipeline and logged; the remaining errors abort the highlight request and
surface to the caller.
"""


class TreelightError(Exception):
    """Base class for all treelight errors."""


class ConfigError(TreelightError, ValueError):
    """Raised when the configuration document is malformed."""


class PathResolutionError(ConfigError):
    """Raised when a relative asset path cannot be resolved.

    Relative paths are resolved against the workspace root; this error means
    no root was available.
    """

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Cannot resolve relative path '{path}': no workspace root is available"
        )


class InvalidCaptureError(TreelightError, ValueError):
    """Raised for a capture name that cannot be classified (e.g. empty)."""

    def __init__(self, capture_name: str):
        self.capture_name = capture_name
        super().__init__(f"Invalid capture name: {capture_name!r}")


class InvalidRangeError(TreelightError, ValueError):
    """Raised when a range ends before it starts."""


class LanguageLoadError(TreelightError):
    """Raised when a grammar or one of its queries cannot be loaded.

    Attributes:
        lang: The language identifier whose load failed.
    """

    def __init__(self, lang: str, reason: str):
        self.lang = lang
        self.reason = reason
        super().__init__(f"Failed to load language '{lang}': {reason}")


class UnconfiguredLanguageError(TreelightError, LookupError):
    """Raised when a language identifier has no configuration entry."""

    def __init__(self, lang: str):
        self.lang = lang
        super().__init__(f"No configuration for language '{lang}'")


class InjectionDepthExceededError(TreelightError):
    """Raised when injections nest deeper than the configured ceiling."""

    def __init__(self, lang: str, max_depth: int):
        self.lang = lang
        self.max_depth = max_depth
        super().__init__(
            f"Injection of '{lang}' exceeds the maximum nesting depth of {max_depth}"
        )
