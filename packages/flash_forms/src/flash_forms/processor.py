from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from flash_forms.captcha import CaptchaVerifier, NullCaptchaVerifier
from flash_forms.config import Config
from flash_forms.events import EventDispatcher, FormsEvents, LifecycleEvent
from flash_forms.exceptions import UnknownFormError
from flash_forms.flash_form import FlashForm
from flash_forms.forms import BaseForm, FileField, build_form_class
from flash_forms.meta import FormData, MetaData
from flash_forms.uploads import UploadManager

logger = logging.getLogger(__name__)


class FlashForms:
    """
    Forms created while handling one request, by name.

    Instances are cheap and must not be shared between requests.
    """

    def __init__(self, config: Config) -> None:
        self.config = config
        self._forms: dict[str, FlashForm] = {}

    def create(
        self,
        form_name: str,
        data: dict[str, Any] | None = None,
        options: dict[str, Any] | None = None,
    ) -> FlashForm:
        """
        Build the form object for ``form_name``.

        ``data`` is the initial data; ``options["data"]`` (the template's
        defaults) takes precedence over it key by key.

        Raises:
            UnknownFormError: If ``form_name`` is not configured.
            FormOptionError: If a field definition is invalid.
        """
        form_config = self.config.get_form(form_name)
        initial = dict(data or {})
        initial.update((options or {}).get("data") or {})

        form_class = build_form_class(form_config)
        flash_form = FlashForm(form_class(form_name, initial=initial), form_config, MetaData())
        self._forms[form_name] = flash_form
        logger.debug("Created form %s with %d field(s)", form_name, len(form_class.declared_fields))
        return flash_form

    def get(self, form_name: str) -> FlashForm:
        try:
            return self._forms[form_name]
        except KeyError:
            raise UnknownFormError(f"Form '{form_name}' has not been created") from None

    def has(self, form_name: str) -> bool:
        return form_name in self._forms


@dataclass
class SubmissionResult:
    success: bool
    form_data: FormData | None = None
    event: LifecycleEvent | None = None
    errors: dict[str, list[str]] = field(default_factory=dict)


class Processor:
    """Validates a submission and runs the lifecycle for a successful one."""

    def __init__(
        self,
        dispatcher: EventDispatcher,
        uploads: UploadManager,
        captcha: CaptchaVerifier | None = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.uploads = uploads
        self.captcha = captcha or NullCaptchaVerifier()

    def process(
        self,
        flash_form: FlashForm,
        data: dict[str, Any],
        files: dict[str, Any] | None = None,
        *,
        captcha_token: str | None = None,
        remote_ip: str | None = None,
    ) -> SubmissionResult:
        form = flash_form.form
        form_config = flash_form.form_config
        if form is None or form_config is None:
            raise UnknownFormError("Form not created")

        form.bind(data, files)
        valid = form.is_valid()

        if valid and form_config.captcha:
            verdict = self.captcha.verify(captcha_token, remote_ip)
            if not verdict.success:
                for message in verdict.errors or ["The CAPTCHA was not solved correctly."]:
                    form.add_error(None, message)
                valid = False

        if not valid:
            logger.info("Submission of form %s is invalid: %s", form_config.name, sorted(form.errors))
            return SubmissionResult(success=False, errors=form.errors)

        form_data = self._build_form_data(form_config.name, form)
        event = LifecycleEvent(
            form_config=form_config,
            form_data=form_data,
            meta=flash_form.meta.snapshot(),
            clicked_button=form.clicked_button,
        )
        for name in FormsEvents.LIFECYCLE:
            self.dispatcher.dispatch(name, event)

        logger.info("Processed submission of form %s", form_config.name)
        return SubmissionResult(success=True, form_data=form_data, event=event)

    def _build_form_data(self, form_name: str, form: BaseForm) -> FormData:
        values: dict[str, Any] = {}
        stored = {}
        for name, value in form.cleaned_data.items():
            if isinstance(form.declared_fields.get(name), FileField):
                paths = [self.uploads.save(form_name, upload) for upload in value]
                stored[name] = paths
                values[name] = [path.name for path in paths]
            else:
                values[name] = value
        return FormData(values, stored)
