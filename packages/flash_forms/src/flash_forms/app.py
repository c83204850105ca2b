from __future__ import annotations

import logging
import secrets
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from starlette.middleware.sessions import SessionMiddleware

from flash_forms.config import Config
from flash_forms.exceptions import ConfigurationError
from flash_forms.extension import FormsExtension
from flash_forms.logging import setup_logging
from flash_forms.router import create_router
from flash_forms.settings import FormsSettings
from flash_forms.template_manager import TemplateManager

if TYPE_CHECKING:
    from fastapi import FastAPI

    from flash_forms.captcha import CaptchaVerifier
    from flash_forms.events import EventDispatcher

logger = logging.getLogger(__name__)


def setup_forms(
    app: FastAPI,
    config: Config | None = None,
    *,
    settings: FormsSettings | None = None,
    dispatcher: EventDispatcher | None = None,
    template_manager: TemplateManager | None = None,
    template_directories: Sequence[Path | str] | None = None,
    captcha: CaptchaVerifier | None = None,
    configure_logging: bool = False,
) -> FormsExtension:
    """
    Install Flash Forms into a FastAPI application.

    Registers the template functions, the async submit and download routes,
    and stores the extension on ``app.state.flash_forms``. Form context and
    feedback live in the session: unless the app already has Starlette's
    ``SessionMiddleware``, one is added, signed with ``SECRET_KEY``. With
    ``configure_logging`` the ``flash_forms`` loggers are set up from
    ``LOG_LEVEL`` and ``LOG_FILE``.

    Example:
        >>> app = FastAPI()
        >>> forms = setup_forms(app, Config.from_yaml("forms.yaml"),
        ...                     template_directories=["templates"])
        >>> @forms.dispatcher.listen(FormsEvents.SUBMISSION_PROCESSOR)
        ... def notify(event): ...
    """
    settings = settings or FormsSettings()
    if configure_logging:
        setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    if config is None:
        if settings.CONFIG_FILE is None:
            raise ConfigurationError(
                "No forms configuration given and FLASH_FORMS_CONFIG_FILE is not set."
            )
        config = Config.from_yaml(settings.CONFIG_FILE)

    if template_manager is None:
        template_manager = getattr(app.state, "template_manager", None) or TemplateManager(
            directories=template_directories
        )
    app.state.template_manager = template_manager

    extension = FormsExtension(
        config,
        settings=settings,
        dispatcher=dispatcher,
        template_manager=template_manager,
        captcha=captcha,
    )
    extension.register()
    install_session(app, settings)
    app.include_router(create_router(extension))
    app.state.flash_forms = extension

    logger.info("Flash Forms ready with %d form(s)", len(config.base_forms))
    return extension


def install_session(app: FastAPI, settings: FormsSettings) -> bool:
    """
    Add ``SessionMiddleware`` signed with ``settings.SECRET_KEY``.

    Returns False when the app already has a session middleware. Without a
    key (only allowed in debug mode) a throwaway key is generated, so sessions
    do not survive a restart.
    """
    if any(middleware.cls is SessionMiddleware for middleware in app.user_middleware):
        return False

    secret_key = settings.SECRET_KEY
    if not secret_key:
        logger.warning("SECRET_KEY not set; using a temporary session key")
        secret_key = secrets.token_urlsafe(32)

    app.add_middleware(SessionMiddleware, secret_key=secret_key, same_site="lax")
    return True
