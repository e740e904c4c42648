"""Request preparation pipeline.

Applies context seeding, placeholder substitution, email generation, body
templating and signing to one outgoing request, in a fixed order. The
context is updated in place; the request is returned as a new object with
rebuilt header, query-parameter and body fields.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from typing import Any

from reqtemplate.config import AppSettings
from reqtemplate.errors import BodyTemplateError, UrlTemplateError
from reqtemplate.generators import (
    GENERATED_EMAIL_KEY,
    Clock,
    fill_generated_emails,
    generate_email,
)
from reqtemplate.interpolation import (
    AT_DELIMITERS,
    BRACE_DELIMITERS,
    lookup,
    substitute_all,
)
from reqtemplate.models import (
    DEFAULT_CONTENT_TYPE,
    VALID_BODY_KEY,
    Context,
    PluginParameters,
    Request,
    RequestBody,
)

logger = logging.getLogger(__name__)

Signer = Callable[[Request, Context], Request]


def noop_signer(request: Request, context: Context) -> Request:
    """Default signing step: returns the request unchanged."""
    return request


def seed_context(
    context: Context,
    settings: AppSettings | None,
    params: PluginParameters,
) -> str:
    """Copy settings into empty context entries.

    Only keys the context already declares with an empty value are filled;
    non-empty values are never overwritten. When the context has no valid
    body template yet, a non-blank partial template is stored as one.

    Args:
        context: The per-iteration variable store, updated in place.
        settings: The app settings, or None when the section is absent.
        params: The plugin parameters for this request.

    Returns:
        The ApplicationName setting, empty when unavailable.
    """
    if settings is None:
        return ""

    seeded = {
        key: settings.values[key]
        for key, value in context.items()
        if not value and key in settings.values
    }
    context.update(seeded)
    if seeded:
        logger.debug("Seeded context keys from settings: %s", ", ".join(seeded))

    if VALID_BODY_KEY not in context and params.has_variable_body:
        context[VALID_BODY_KEY] = params.variable_request_body or ""

    return settings.application_name


def resolve_url(url: str, context: Context) -> str:
    """Resolve an ``@key@suffix`` URL into ``context[key] + suffix``.

    URLs that do not start with ``@`` are returned unchanged. The suffix is
    everything after the last ``@``.

    Raises:
        UrlTemplateError: The opening ``@`` has no closing ``@``.
        MissingContextKeyError: The key is absent from the context.
    """
    if not url.startswith("@"):
        return url
    trimmed = url.lstrip("@")
    end = trimmed.find("@")
    if end < 0:
        raise UrlTemplateError(url)
    key = trimmed[:end]
    resource = url[url.rindex("@") + 1 :]
    return lookup(context, key) + resource


def _decode_template(source: str, raw: str) -> dict[str, str]:
    try:
        decoded: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise BodyTemplateError(source, str(exc)) from exc
    if not isinstance(decoded, dict):
        raise BodyTemplateError(source, f"expected a JSON object, got {type(decoded).__name__}")
    for key, value in decoded.items():
        if not isinstance(value, str):
            raise BodyTemplateError(source, f"value for {key!r} is not a string")
    return decoded


def build_body(
    context: Context,
    params: PluginParameters,
    application_name: str = "",
    clock: Clock = time.time,
) -> RequestBody:
    """Merge the partial body template over the valid one.

    The valid template comes from the context (``SuccessRequestBody``); the
    partial template from ``params.variable_request_body``. ``{{key}}``
    values in both are resolved from the context. Partial keys override
    valid keys; partial keys unknown to the valid template are ignored.
    Without a valid template the body is empty.

    Raises:
        BodyTemplateError: A template is malformed or not flat.
        MissingContextKeyError: A ``{{key}}`` value names an absent key.
    """
    body = ""

    if VALID_BODY_KEY in context:
        valid = _decode_template("valid", context[VALID_BODY_KEY])
        partial: dict[str, str] = {}
        if params.has_variable_body:
            partial = _decode_template("partial", params.variable_request_body or "")

        # Compares against the string form of "context has a valid body",
        # which is always "True" here, so this fires unless the partial
        # template is literally "True".
        if params.variable_request_body != str(VALID_BODY_KEY in context):
            context[GENERATED_EMAIL_KEY] = generate_email(application_name, clock)

        valid = substitute_all(valid, context, BRACE_DELIMITERS)

        if partial:
            partial = substitute_all(partial, context, BRACE_DELIMITERS)
            for key in partial.keys() & valid.keys():
                valid[key] = partial[key]

        body = json.dumps(valid, separators=(",", ":"))

    return RequestBody(content_type=params.content_type or DEFAULT_CONTENT_TYPE, body=body)


def prepare_request(
    context: Context,
    request: Request,
    settings: AppSettings | None,
    params: PluginParameters,
    *,
    signer: Signer | None = None,
    rebind: Callable[[], None] | None = None,
    clock: Clock = time.time,
) -> Request:
    """Prepare one outgoing request for dispatch.

    Steps, in order: seed the context from settings, resolve query
    parameters, resolve the URL, fill generated emails, resolve headers,
    then (when signing is requested) build the JSON body and sign. The
    ``rebind`` callback runs last.

    Args:
        context: The per-iteration variable store, updated in place.
        request: The request to prepare. Not modified.
        settings: App settings, or None to skip seeding.
        params: Plugin parameters for this request.
        signer: Signing step, applied when ``params.sign_request`` is set.
        rebind: Called after preparation so the caller can refresh
            data-bound fields.
        clock: Time source for generated email addresses.

    Returns:
        The prepared request.

    Raises:
        TemplatingError: Preparation failed; the request must not be sent.
    """
    application_name = seed_context(context, settings, params)

    query_params = substitute_all(request.query_params, context, AT_DELIMITERS)
    url = resolve_url(request.url, context)
    fill_generated_emails(context, application_name, clock)
    headers = substitute_all(request.headers, context, AT_DELIMITERS)

    prepared = request.model_copy(
        update={"url": url, "headers": headers, "query_params": query_params}
    )

    if params.sign_request:
        prepared = prepared.model_copy(
            update={"body": build_body(context, params, application_name, clock)}
        )
        prepared = (signer or noop_signer)(prepared, context)

    if rebind is not None:
        rebind()

    logger.debug("Prepared %s %s", prepared.method, prepared.url)
    return prepared
