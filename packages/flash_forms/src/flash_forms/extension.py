"""
Template functions for Flash Forms.

Once registered, page templates render forms and upload listings with::

    {{ flash_forms('contact', html_post_submit='thanks.html', meta={'page': 'home'}) }}
    {{ flash_forms_uploads('contact') }}

Neither function raises: configuration and processing problems are turned
into an inline message so a broken form never takes the page down with it.
"""

from __future__ import annotations

import logging
import traceback
from typing import Any, Mapping

from fastapi import Request
from jinja2 import pass_context
from jinja2.runtime import Context
from markupsafe import Markup
from starlette.exceptions import HTTPException
from starlette.routing import NoMatchFound

from flash_forms.captcha import CaptchaVerifier
from flash_forms.config import Config
from flash_forms.events import EventDispatcher
from flash_forms.exceptions import RedirectRequired
from flash_forms.helper import REDIRECT_STATE_ATTR, FormHelper
from flash_forms.logging import scoped_form_name
from flash_forms.meta import MetaData
from flash_forms.processor import FlashForms, Processor
from flash_forms.settings import FormsSettings
from flash_forms.template_manager import TemplateManager
from flash_forms.uploads import UploadManager

logger = logging.getLogger(__name__)

ASYNC_ROUTE_NAME = "flash_forms_async_submit"
DOWNLOAD_ROUTE_NAME = "flash_forms_download"

_MISSING_FORM_HTML = Markup(
    "<p><strong>Flash Forms is missing the configuration for the form named "
    "'{}'!</strong></p>"
)
_INVALID_UPLOAD_DIR_HTML = Markup("<p><strong>Invalid upload directory</strong></p>")


class FormsExtension:
    def __init__(
        self,
        config: Config,
        *,
        settings: FormsSettings | None = None,
        dispatcher: EventDispatcher | None = None,
        template_manager: TemplateManager | None = None,
        captcha: CaptchaVerifier | None = None,
    ) -> None:
        self.config = config
        self.settings = settings or FormsSettings()
        self.dispatcher = dispatcher or EventDispatcher()
        self.template_manager = template_manager or TemplateManager()
        self.uploads = UploadManager(config.uploads)
        self.processor = Processor(self.dispatcher, self.uploads, captcha)
        self.helper = FormHelper(self.template_manager, self.processor, self.settings)

    def register(self, template_manager: TemplateManager | None = None) -> None:
        """Expose ``flash_forms`` and ``flash_forms_uploads`` to templates."""
        manager = template_manager or self.template_manager
        extension = self

        @pass_context
        def flash_forms(context: Context, form_name: str, *args: Any, **kwargs: Any) -> Markup:
            return extension.render_form(context["request"], form_name, *args, **kwargs)

        @pass_context
        def flash_forms_uploads(context: Context, form_name: str | None = None) -> Markup:
            return extension.render_uploads(context["request"], form_name)

        manager.add_global("flash_forms", flash_forms)
        manager.add_global("flash_forms_uploads", flash_forms_uploads)

    def render_form(
        self,
        request: Request,
        form_name: str,
        html_pre_submit: str | None = None,
        html_post_submit: str | None = None,
        data: dict[str, Any] | None = None,
        options: dict[str, Any] | None = None,
        defaults: dict[str, Any] | None = None,
        override: Mapping[str, Any] | None = None,
        meta: MetaData | Mapping[str, Any] | None = None,
    ) -> Markup:
        """
        Render the form named ``form_name``.

        Args:
            request: The current request.
            form_name: Name of the form in the configuration.
            html_pre_submit: HTML or template name shown before submission.
            html_post_submit: HTML or template name shown after a successful
                submission.
            data: Initial data for the form.
            options: Options for the form builder.
            defaults: Default field values; they win over ``data``.
            override: Configuration merged over the form's for this call.
            meta: Data attached to the submission but not sent with the form.

        Returns:
            The rendered form, an error fragment, or empty markup when the
            page is about to redirect.
        """
        if not self.config.has_form(form_name):
            logger.warning("Missing configuration for form %s", form_name)
            return _MISSING_FORM_HTML.format(form_name)

        # Defaults go through the options so they do not clobber ``data``
        options = dict(options or {})
        if defaults is not None:
            options["data"] = defaults

        with scoped_form_name(form_name):
            try:
                config = self.config
                if override:
                    config = config.with_override(form_name, override)

                flash_form = FlashForms(config).create(form_name, data, options).set_meta(meta)
                form_config = flash_form.form_config

                context = self.helper.get_context_compiler(request, form_name)
                self.helper.handle_form_request(request, flash_form, context)

                load_ajax = form_config.is_ajax
                context.action = self._get_relevant_action(request, form_name, load_ajax)
                context.html_pre_submit = html_pre_submit
                context.html_post_submit = html_post_submit
                context.defaults = dict(defaults or {})
                context.meta = flash_form.meta.all()
                self.helper.save_context(request, context)

                return self.helper.get_form_render(request, flash_form, context, load_ajax)
            except RedirectRequired as e:
                logger.debug("Submission handled, redirecting to %s", e.url)
                setattr(request.state, REDIRECT_STATE_ATTR, e.url)
                return Markup("")
            except HTTPException as e:
                logger.info("Form request ended with HTTP %s", e.status_code)
                return Markup("")
            except Exception as e:
                return self.handle_exception(request, form_name, e)

    def render_uploads(self, request: Request, form_name: str | None = None) -> Markup:
        """Render the files uploaded through ``form_name``."""
        uploads = self.config.uploads
        directory = self.uploads.resolve_directory(form_name)
        if directory is None:
            return _INVALID_UPLOAD_DIR_HTML

        try:
            listing = self.uploads.list_directory(directory)
        except OSError as e:
            logger.warning("Unable to list upload directory %s: %s", directory, e)
            return _INVALID_UPLOAD_DIR_HTML

        context = {
            "request": request,
            "form_name": form_name,
            "directories": listing.directories,
            "files": listing.files,
            "base_uri": "/" + uploads.base_uri.strip("/") + "/download",
            "downloads_enabled": uploads.management_controller,
        }
        try:
            return Markup(self.template_manager.render(self.config.templates.files, context))
        except Exception as e:
            return self.handle_exception(request, form_name or "", e)

    def _get_relevant_action(self, request: Request, form_name: str, load_ajax: bool) -> str:
        """Where the form posts to: the async endpoint or the current page."""
        if load_ajax:
            try:
                return request.url_for(ASYNC_ROUTE_NAME, form=form_name).path
            except NoMatchFound:
                root_path = request.scope.get("root_path", "")
                return f"{root_path}{self.settings.ASYNC_ROUTE_PREFIX}/{form_name}"

        url = request.url
        return f"{url.path}?{url.query}" if url.query else url.path

    def handle_exception(self, request: Request, form_name: str, exc: Exception) -> Markup:
        """Record ``exc`` as user feedback and render the exception template."""
        safe_trace = self.get_safe_trace(exc)
        logger.error("Form %s failed: %s", form_name, safe_trace)

        feedback = self.helper.feedback(request, form_name)
        feedback.add("debug", safe_trace)
        feedback.add("error", self._redact(str(exc)))

        if self.config.has_form(form_name):
            template_name = self.config.get_form(form_name).templates.exception
        else:
            template_name = self.config.templates.exception

        try:
            return self.helper.get_exception_render(request, form_name, template_name)
        except Exception as render_error:
            logger.error(
                "Unable to render %s: %s", template_name, self._redact(str(render_error))
            )
            return Markup("<p><strong>{}</strong></p>").format(self._redact(str(exc)))

    def get_safe_trace(self, exc: BaseException) -> str:
        """Message plus the innermost frames, with the root path replaced."""
        frames = traceback.format_tb(exc.__traceback__)
        trace = "".join(frames[-self.settings.TRACE_DEPTH :])
        return self._redact(f"{exc}\n{trace}".rstrip())

    def _redact(self, text: str) -> str:
        root = str(self.settings.ROOT_PATH.resolve())
        if not root or root == "/":
            return text
        return text.replace(root, "{root}")
