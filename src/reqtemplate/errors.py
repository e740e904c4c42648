"""
Exception classes.

Represent failures while preparing a request. Each one aborts preparation
of the current request only.
"""


class TemplatingError(Exception):
    """Base exception class for request preparation."""

    pass


class MissingContextKeyError(TemplatingError, KeyError):
    """Raised when a placeholder references a key absent from the context."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Context has no value for key: {key!r}")

    def __str__(self) -> str:
        return str(self.args[0])


class BodyTemplateError(TemplatingError, ValueError):
    """Raised when a body template is not a flat JSON string-to-string object."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid {source} body template: {reason}")


class UrlTemplateError(TemplatingError, ValueError):
    """Raised when a templated URL has no closing @ delimiter."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Unterminated @key@ prefix in URL: {url}")
