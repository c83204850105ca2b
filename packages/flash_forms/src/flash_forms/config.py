"""
Forms configuration.

Forms are declared once, usually in a YAML file, and looked up by name when a
template calls ``flash_forms('contact')``::

    templates:
      form: flash_forms/form.html
    uploads:
      enabled: true
      base_directory: /srv/uploads
    forms:
      contact:
        submission:
          ajax: false
          redirect: /thanks
        fields:
          name:
            type: text
            options:
              label: Your name
          submit:
            type: submit

Each form is validated into an immutable :class:`FormConfig`. Per-request
overrides never touch the shared :class:`Config`; ``with_override`` returns a
new instance instead.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from flash_forms.exceptions import ConfigurationError, UnknownFormError

logger = logging.getLogger(__name__)

FieldType = Literal[
    "text",
    "textarea",
    "email",
    "url",
    "integer",
    "checkbox",
    "choice",
    "hidden",
    "file",
    "submit",
]


class FieldOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    required: bool = True
    label: str | None = None
    placeholder: str | None = None
    help_text: str | None = None
    initial: Any = None
    choices: list[Any] | dict[str, str] | None = None
    min_length: int | None = None
    max_length: int | None = None
    min_value: int | None = None
    max_value: int | None = None
    pattern: str | None = None
    rows: int | None = None
    multiple: bool = False
    attrs: dict[str, Any] = Field(default_factory=dict)


class FieldConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: FieldType = "text"
    options: FieldOptions = Field(default_factory=FieldOptions)


class SubmissionConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    ajax: bool = False
    # URL to redirect to after a successful, non-ajax submission
    redirect: str | None = None


class FeedbackConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    success: str = "Form submission successful"
    error: str = "There are errors in the form, please fix before submitting"


class TemplatesConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    form: str = "flash_forms/form.html"
    exception: str = "flash_forms/exception.html"
    files: str = "flash_forms/files.html"


class UploadsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    enabled: bool = False
    base_directory: Path | None = None
    base_uri: str = "flash_forms"
    filename_handling: Literal["prefix", "suffix", "keep"] = "suffix"
    # Serve stored uploads through the download route
    management_controller: bool = False


class FormConfig(BaseModel):
    """Validated, read-only definition of a single form."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    fields: dict[str, FieldConfig] = Field(default_factory=dict)
    submission: SubmissionConfig = Field(default_factory=SubmissionConfig)
    feedback: FeedbackConfig = Field(default_factory=FeedbackConfig)
    templates: TemplatesConfig = Field(default_factory=TemplatesConfig)
    captcha: bool = False

    @property
    def is_ajax(self) -> bool:
        return self.submission.ajax


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` over ``base`` without mutating either."""
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class Config:
    """Registry of every configured form plus the shared upload/template settings."""

    def __init__(
        self,
        forms: Mapping[str, Any] | None = None,
        *,
        templates: Mapping[str, Any] | None = None,
        uploads: Mapping[str, Any] | None = None,
    ) -> None:
        try:
            self._templates = TemplatesConfig.model_validate(templates or {})
            self._uploads = UploadsConfig.model_validate(uploads or {})
        except PydanticValidationError as exc:
            raise ConfigurationError(f"Invalid forms configuration: {exc}") from exc

        self._raw_forms: dict[str, dict[str, Any]] = {
            name: dict(definition or {}) for name, definition in (forms or {}).items()
        }
        self._forms: dict[str, FormConfig] = {
            name: self._build_form(name, raw) for name, raw in self._raw_forms.items()
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "Config":
        data = data or {}
        if not isinstance(data, Mapping):
            raise ConfigurationError("Forms configuration must be a mapping.")
        return cls(
            data.get("forms"),
            templates=data.get("templates"),
            uploads=data.get("uploads"),
        )

    @classmethod
    def from_yaml(cls, path: Path | str) -> "Config":
        path = Path(path)
        try:
            with path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as exc:
            raise ConfigurationError(f"Unable to read {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Unable to parse {path}: {exc}") from exc

        config = cls.from_mapping(data)
        logger.debug("Loaded %d form(s) from %s", len(config.base_forms), path)
        return config

    def _build_form(self, name: str, raw: Mapping[str, Any]) -> FormConfig:
        definition = dict(raw)
        # Form level templates only need to name what differs from the defaults
        definition["templates"] = {
            **self._templates.model_dump(),
            **(definition.get("templates") or {}),
        }
        definition["name"] = name
        try:
            return FormConfig.model_validate(definition)
        except PydanticValidationError as exc:
            raise ConfigurationError(
                f"Invalid configuration for form '{name}': {exc}"
            ) from exc

    @property
    def base_forms(self) -> Mapping[str, FormConfig]:
        return MappingProxyType(self._forms)

    @property
    def templates(self) -> TemplatesConfig:
        return self._templates

    @property
    def uploads(self) -> UploadsConfig:
        return self._uploads

    def has_form(self, name: str) -> bool:
        return name in self._forms

    def get_form(self, name: str) -> FormConfig:
        try:
            return self._forms[name]
        except KeyError:
            raise UnknownFormError(f"Unknown form '{name}'") from None

    def with_override(self, name: str, override: Mapping[str, Any]) -> "Config":
        """
        Return a copy of this configuration with ``override`` merged into ``name``.

        Raises:
            UnknownFormError: If ``name`` is not configured.
        """
        if name not in self._raw_forms:
            raise UnknownFormError(f"Unknown form '{name}'")

        clone = copy.copy(self)
        clone._raw_forms = {
            **self._raw_forms,
            name: deep_merge(self._raw_forms[name], override),
        }
        clone._forms = {**self._forms, name: clone._build_form(name, clone._raw_forms[name])}
        return clone
