"""Pre-request hook wrapping the preparation pipeline for a test driver."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path

from reqtemplate.assembler import Signer, prepare_request
from reqtemplate.config import load_app_settings
from reqtemplate.generators import Clock
from reqtemplate.models import Context, PluginParameters, Request

logger = logging.getLogger(__name__)


class RequestTemplatingPlugin:
    """Prepares each request of a test run before it is sent.

    App settings are re-read on every call so edits to the settings file
    apply to the next request. The plugin keeps no state between calls;
    each call works only on the context it is given.
    """

    def __init__(
        self,
        params: PluginParameters | None = None,
        settings_path: str | Path | None = None,
        signer: Signer | None = None,
        clock: Clock = time.time,
    ) -> None:
        self.params = params or PluginParameters()
        self.settings_path = settings_path
        self.signer = signer
        self.clock = clock

    def pre_request(
        self,
        context: Context,
        request: Request,
        rebind: Callable[[], None] | None = None,
    ) -> Request:
        """Prepare ``request`` against ``context`` and return the result.

        Raises:
            TemplatingError: Preparation failed; the request must not be sent.
        """
        settings = load_app_settings(self.settings_path)
        return prepare_request(
            context,
            request,
            settings,
            self.params,
            signer=self.signer,
            rebind=rebind,
            clock=self.clock,
        )
