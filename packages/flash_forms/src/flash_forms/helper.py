from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from fastapi import Request
from jinja2 import TemplateNotFound
from markupsafe import Markup
from starlette.datastructures import UploadFile

from flash_forms.captcha import CAPTCHA_RESPONSE_FIELD
from flash_forms.context import FormContext
from flash_forms.exceptions import RedirectRequired
from flash_forms.feedback import Feedback, get_session
from flash_forms.flash_form import FlashForm
from flash_forms.processor import Processor, SubmissionResult
from flash_forms.settings import FormsSettings
from flash_forms.template_manager import TemplateManager

logger = logging.getLogger(__name__)

SUBMISSION_STATE_ATTR = "flash_forms_submission"
REDIRECT_STATE_ATTR = "flash_forms_redirect"

# contact[email] or contact[attachments][]
_FIELD_KEY = re.compile(r"^(?P<form>[^\[\]]+)\[(?P<field>[^\[\]]+)\](?:\[\])?$")


@dataclass
class Submission:
    """Raw payload of a POST request, all values kept as lists."""

    values: dict[str, list[Any]] = field(default_factory=dict)
    remote_ip: str | None = None

    @property
    def captcha_token(self) -> str | None:
        tokens = self.values.get(CAPTCHA_RESPONSE_FIELD)
        return str(tokens[0]) if tokens else None

    def for_form(self, form_name: str) -> tuple[dict[str, Any], dict[str, list[Any]]] | None:
        """
        Split out the data and files posted for ``form_name``.

        Returns None when the payload holds nothing for this form, which is
        how a page with several forms tells which one was submitted.
        """
        data: dict[str, Any] = {}
        files: dict[str, list[Any]] = {}
        found = False
        for key, items in self.values.items():
            match = _FIELD_KEY.match(key)
            if match is None or match["form"] != form_name:
                continue
            found = True
            name = match["field"]
            uploads = [item for item in items if isinstance(item, UploadFile)]
            plain = [item for item in items if not isinstance(item, UploadFile)]
            if uploads:
                files[name] = uploads
            if plain:
                # Only ``field[]`` keys carry several values; otherwise the last one wins
                data[name] = plain if key.endswith("[]") else plain[-1]
        return (data, files) if found else None


async def read_submission(request: Request) -> Submission | None:
    """
    Parse a POST body once and keep it on ``request.state``.

    Template functions are synchronous and cannot await the body themselves,
    so views call this before rendering.
    """
    existing = getattr(request.state, SUBMISSION_STATE_ATTR, None)
    if existing is not None:
        return existing
    if request.method not in ("POST", "PUT", "PATCH"):
        return None

    form_data = await request.form()
    values: dict[str, list[Any]] = defaultdict(list)
    for key, value in form_data.multi_items():
        values[key].append(value)

    submission = Submission(
        values=dict(values),
        remote_ip=request.client.host if request.client else None,
    )
    setattr(request.state, SUBMISSION_STATE_ATTR, submission)
    return submission


class FormHelper:
    """Request facing side of form handling: session, feedback and rendering."""

    def __init__(
        self,
        template_manager: TemplateManager,
        processor: Processor,
        settings: FormsSettings,
    ) -> None:
        self.template_manager = template_manager
        self.processor = processor
        self.settings = settings

    def feedback(self, request: Request, form_name: str) -> Feedback:
        return Feedback(get_session(request), self.settings.feedback_session_key(form_name))

    def get_context_compiler(self, request: Request, form_name: str) -> FormContext:
        stored = get_session(request).get(self.settings.compiler_session_key(form_name))
        return FormContext.restore(form_name, stored)

    def save_context(self, request: Request, context: FormContext) -> None:
        session = get_session(request)
        session[self.settings.compiler_session_key(context.form_name)] = context.to_session()

    def handle_form_request(
        self,
        request: Request,
        flash_form: FlashForm,
        context: FormContext,
    ) -> SubmissionResult | None:
        """
        Process the pending submission for this form, if there is one.

        Raises:
            RedirectRequired: After a successful submission of a form that
                configures a redirect target.
        """
        submission: Submission | None = getattr(request.state, SUBMISSION_STATE_ATTR, None)
        if submission is None:
            return None
        payload = submission.for_form(context.form_name)
        if payload is None:
            return None

        data, files = payload
        form_config = flash_form.form_config
        context.submitted = True
        result = self.processor.process(
            flash_form,
            data,
            files,
            captcha_token=submission.captcha_token,
            remote_ip=submission.remote_ip,
        )

        feedback = self.feedback(request, context.form_name)
        if not result.success:
            feedback.add("error", form_config.feedback.error)
            return result

        context.success = True
        feedback.add("info", form_config.feedback.success)

        redirect = form_config.submission.redirect
        if redirect and not form_config.is_ajax:
            context.redirected = True
            self.save_context(request, context)
            raise RedirectRequired(redirect)
        return result

    def get_optional_html(self, html: str | None) -> str | None:
        """Render ``html`` if it names a template, otherwise use it verbatim."""
        if not html:
            return None
        if not self.template_manager.is_template_name(html):
            return html
        try:
            return self.template_manager.render(html.strip(), {})
        except TemplateNotFound:
            logger.warning("Template %r not found, using the value as HTML", html)
            return html

    def get_form_render(
        self,
        request: Request,
        flash_form: FlashForm,
        context: FormContext,
        load_ajax: bool,
    ) -> Markup:
        template_context = context.build(
            flash_form,
            self.feedback(request, context.form_name).all(),
            ajax=load_ajax,
            debug=self.settings.DEBUG,
        )
        # The context keeps template names, rendered here to keep sessions small
        template_context.update(
            request=request,
            html_pre_submit=self.get_optional_html(context.html_pre_submit),
            html_post_submit=self.get_optional_html(context.html_post_submit),
        )
        html = self.template_manager.render(
            flash_form.form_config.templates.form, template_context
        )
        return Markup(html)

    def get_exception_render(
        self,
        request: Request,
        form_name: str,
        template_name: str,
    ) -> Markup:
        html = self.template_manager.render(
            template_name,
            {
                "request": request,
                "form_name": form_name,
                "feedback": self.feedback(request, form_name).all(),
                "debug": self.settings.DEBUG,
            },
        )
        return Markup(html)
