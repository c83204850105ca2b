from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from flash_forms.flash_form import FlashForm


class FormContext(BaseModel):
    """
    Everything needed to render one form, minus the form object itself.

    The context is stored in the session after each render, which lets the
    async endpoint and the page after a redirect render the form the way the
    embedding page did.
    """

    form_name: str
    action: str = ""
    html_pre_submit: str | None = None
    html_post_submit: str | None = None
    defaults: dict[str, Any] = Field(default_factory=dict)
    meta: dict[str, Any] = Field(default_factory=dict)
    submitted: bool = False
    success: bool = False
    # Set when a successful submission redirected; the next render shows success
    redirected: bool = False

    @classmethod
    def restore(cls, form_name: str, stored: dict[str, Any] | None) -> "FormContext":
        if not stored:
            return cls(form_name=form_name)
        context = cls.model_validate({**stored, "form_name": form_name})
        if context.redirected:
            context.redirected = False
        else:
            context.submitted = False
            context.success = False
        return context

    def to_session(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def build(
        self,
        flash_form: FlashForm,
        feedback: dict[str, list[str]],
        *,
        ajax: bool = False,
        debug: bool = False,
    ) -> dict[str, Any]:
        """Template context for the form and exception templates."""
        return {
            "form_name": self.form_name,
            "form": flash_form.form,
            "config": flash_form.form_config,
            "meta": flash_form.meta.all(),
            "action": self.action,
            "ajax": ajax,
            "html_pre_submit": self.html_pre_submit,
            "html_post_submit": self.html_post_submit,
            "defaults": self.defaults,
            "submitted": self.submitted,
            "success": self.success,
            "feedback": feedback,
            "debug": debug,
        }
