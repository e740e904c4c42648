"""Placeholder substitution from the per-iteration context.

A value is a placeholder only when the whole string is wrapped in a
delimiter pair: ``@key@`` for URLs, headers and query parameters, and
``{{key}}`` for JSON body values. The wrapped key is looked up in the
context and replaces the entire value. Lookups are fail-fast; a missing
key raises instead of producing an empty value.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from reqtemplate.errors import MissingContextKeyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Delimiters:
    """An opening and closing marker around a context key."""

    open: str
    close: str

    def matches(self, value: str) -> bool:
        return value.startswith(self.open) and value.endswith(self.close)

    def strip(self, value: str) -> str:
        if self.open == self.close and len(self.open) == 1:
            # @@key@@ and @key@ name the same key
            return value.strip(self.open)
        return value[len(self.open) : len(value) - len(self.close)]


AT_DELIMITERS = Delimiters("@", "@")
BRACE_DELIMITERS = Delimiters("{{", "}}")


def is_token(value: str, delimiters: Delimiters = AT_DELIMITERS) -> bool:
    """Return True when the whole value is a delimiter-wrapped placeholder."""
    return delimiters.matches(value)


def token_key(value: str, delimiters: Delimiters = AT_DELIMITERS) -> str:
    """Return the context key named by a placeholder value."""
    return delimiters.strip(value)


def lookup(context: Mapping[str, str], key: str) -> str:
    """Look up a context key, raising MissingContextKeyError when absent.

    Args:
        context: The per-iteration variable store.
        key: The variable name to resolve.

    Returns:
        The context value as a string.
    """
    try:
        value = context[key]
    except KeyError:
        raise MissingContextKeyError(key) from None
    return str(value)


def substitute(
    value: str,
    context: Mapping[str, str],
    delimiters: Delimiters = AT_DELIMITERS,
) -> str:
    """Replace a whole-string placeholder with its context value.

    Values that are not wrapped in ``delimiters`` are returned unchanged.

    Args:
        value: The candidate placeholder.
        context: The per-iteration variable store. Never modified.
        delimiters: The delimiter pair marking a placeholder.

    Returns:
        The resolved value, or ``value`` itself when it is not a placeholder.

    Raises:
        MissingContextKeyError: The placeholder names an absent key.
    """
    if not delimiters.matches(value):
        return value
    key = delimiters.strip(value)
    resolved = lookup(context, key)
    logger.debug("Resolved %s%s%s", delimiters.open, key, delimiters.close)
    return resolved


def substitute_all(
    values: Mapping[str, str],
    context: Mapping[str, str],
    delimiters: Delimiters = AT_DELIMITERS,
) -> dict[str, str]:
    """Return a new mapping with every value passed through substitute()."""
    return {name: substitute(value, context, delimiters) for name, value in values.items()}
