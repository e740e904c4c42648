"""Synthetic value generation for context fields."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable

from reqtemplate.models import Context

logger = logging.getLogger(__name__)

EMAIL_SENTINEL = "@GenerateEmailAddress@"
EMAIL_DOMAIN = "MySecretBogusEmailServiceProvider.com"
GENERATED_EMAIL_KEY = "GenerateEmailAddress"

Clock = Callable[[], float]


def generate_email(application_name: str = "", clock: Clock = time.time) -> str:
    """Build a time-based email address for sign-up style requests.

    The address is ``WebTest<ms since epoch><application_name>@<domain>``.
    Uniqueness rests on millisecond resolution only: two calls within the
    same millisecond for the same application return the same address.

    Args:
        application_name: Suffix taken from the ApplicationName setting.
        clock: Returns seconds since the epoch.

    Returns:
        The generated email address.
    """
    millis = math.floor(clock() * 1000)
    return f"WebTest{millis}{application_name}@{EMAIL_DOMAIN}"


def fill_generated_emails(
    context: Context,
    application_name: str = "",
    clock: Clock = time.time,
) -> list[str]:
    """Replace sentinel-flagged context entries with generated addresses.

    An entry is flagged when its key or its current value equals
    ``@GenerateEmailAddress@``. Only existing keys are updated.

    Returns:
        The keys that received a generated address.
    """
    flagged = [
        key for key, value in context.items() if key == EMAIL_SENTINEL or value == EMAIL_SENTINEL
    ]
    for key in flagged:
        context[key] = generate_email(application_name, clock)
    if flagged:
        logger.debug("Generated email addresses for %s", ", ".join(flagged))
    return flagged
