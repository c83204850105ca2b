from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

from flash_forms.exceptions import UnknownFormError
from flash_forms.meta import MetaData

if TYPE_CHECKING:
    from flash_forms.config import FormConfig
    from flash_forms.forms import BaseForm


class FlashForm:
    """Holds a form object together with its configuration and metadata."""

    def __init__(
        self,
        form: BaseForm | None = None,
        form_config: FormConfig | None = None,
        meta: MetaData | None = None,
    ) -> None:
        self._form = form
        self._form_config = form_config
        self._meta = meta if meta is not None else MetaData()

    @property
    def form(self) -> BaseForm | None:
        return self._form

    @form.setter
    def form(self, form: BaseForm | None) -> None:
        self._form = form

    @property
    def form_config(self) -> FormConfig | None:
        return self._form_config

    @form_config.setter
    def form_config(self, form_config: FormConfig | None) -> None:
        self._form_config = form_config

    @property
    def meta(self) -> MetaData:
        return self._meta

    def set_meta(self, meta: MetaData | Mapping[str, Any] | None) -> "FlashForm":
        """
        Merge ``meta`` into the form's metadata.

        Raises:
            UnknownFormError: If no form object has been created yet.
        """
        if self._form is None:
            raise UnknownFormError("Form not created")
        if isinstance(meta, MetaData):
            meta = meta.all()
        self._meta.replace(dict(meta or {}))
        return self
