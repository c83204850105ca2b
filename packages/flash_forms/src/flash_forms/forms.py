from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import AnyUrl, EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from flash_forms.exceptions import FormOptionError

if TYPE_CHECKING:
    from flash_forms.config import FieldConfig, FormConfig


class ValidationError(ValueError):
    def __init__(self, message: str | list[str]) -> None:
        if isinstance(message, list):
            self.messages = message
            super().__init__("\n".join(message))
        else:
            self.messages = [message]
            super().__init__(message)


_EMAIL_ADAPTER = TypeAdapter(EmailStr)
_URL_ADAPTER = TypeAdapter(AnyUrl)


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == []


class Field:
    input_type: ClassVar[str] = "text"

    def __init__(
        self,
        *,
        required: bool = True,
        label: str | None = None,
        initial: Any | None = None,
        placeholder: str | None = None,
        help_text: str | None = None,
        max_length: int | None = None,
        min_length: int | None = None,
        choices: list[tuple[str, str]] | None = None,
        pattern: str | None = None,
        attrs: dict[str, Any] | None = None,
    ) -> None:
        self.required = required
        self.label = label
        self.initial = initial
        self.placeholder = placeholder
        self.help_text = help_text
        self.max_length = max_length
        self.min_length = min_length
        self.choices = choices
        self.pattern = pattern
        self.attrs = dict(attrs or {})

    def to_python(self, value: Any) -> Any:
        return value

    def validate(self, value: Any) -> None:
        if self.required and _is_empty(value):
            raise ValidationError("This field is required.")

        if isinstance(value, str) and value:
            if self.max_length is not None and len(value) > self.max_length:
                message = f"Ensure this value has at most {self.max_length} characters."
                raise ValidationError(message)
            if self.min_length is not None and len(value) < self.min_length:
                message = (
                    f"Ensure this value has at least {self.min_length} characters."
                )
                raise ValidationError(message)
            if self.pattern is not None and not re.fullmatch(self.pattern, value):
                raise ValidationError("Enter a valid value.")

        if self.choices is not None and not _is_empty(value):
            if value not in {key for key, _ in self.choices}:
                raise ValidationError("Select a valid choice.")

    def clean(self, value: Any) -> Any:
        value = self.to_python(value)
        self.validate(value)
        return value


class CharField(Field):
    def to_python(self, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()


class TextAreaField(CharField):
    input_type = "textarea"

    def __init__(self, *, rows: int | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if rows is not None:
            self.attrs["rows"] = rows

    def to_python(self, value: Any) -> str:
        # Leading whitespace can be meaningful in free text
        if value is None:
            return ""
        return str(value).rstrip()


class HiddenField(CharField):
    input_type = "hidden"


class EmailField(CharField):
    input_type = "email"

    def validate(self, value: Any) -> None:
        super().validate(value)
        if value:
            try:
                _EMAIL_ADAPTER.validate_python(value)
            except PydanticValidationError:
                raise ValidationError("Enter a valid email address.") from None


class URLField(CharField):
    input_type = "url"

    def validate(self, value: Any) -> None:
        super().validate(value)
        if value:
            try:
                _URL_ADAPTER.validate_python(value)
            except PydanticValidationError:
                raise ValidationError("Enter a valid URL.") from None


class IntegerField(Field):
    input_type = "number"

    def __init__(
        self,
        *,
        min_value: int | None = None,
        max_value: int | None = None,
        **kwargs: Any,
    ) -> None:
        self.min_value = min_value
        self.max_value = max_value
        super().__init__(**kwargs)
        if min_value is not None:
            self.attrs.setdefault("min", min_value)
        if max_value is not None:
            self.attrs.setdefault("max", max_value)

    def to_python(self, value: Any) -> int | None:
        if value in ("", None):
            return None
        try:
            return int(str(value).strip())
        except ValueError:
            raise ValidationError("Enter a whole number.") from None

    def validate(self, value: Any) -> None:
        super().validate(value)
        if value is None:
            return
        if self.min_value is not None and value < self.min_value:
            message = f"Ensure this value is greater than or equal to {self.min_value}."
            raise ValidationError(message)
        if self.max_value is not None and value > self.max_value:
            message = f"Ensure this value is less than or equal to {self.max_value}."
            raise ValidationError(message)


class BooleanField(Field):
    input_type = "checkbox"

    def to_python(self, value: Any) -> bool:
        if value in (True, "true", "True", "1", 1, "on", "yes", "y"):
            return True
        if value in (False, "false", "False", "0", 0, "off", "no", "n", None, ""):
            return False
        return bool(value)

    def validate(self, value: Any) -> None:
        if self.required and value is False:
            raise ValidationError("This field is required.")


class ChoiceField(Field):
    input_type = "select"

    def to_python(self, value: Any) -> str:
        if value is None:
            return ""
        return str(value)


class FileField(Field):
    """Upload field; its value is the list of uploaded files."""

    input_type = "file"

    def __init__(self, *, multiple: bool = False, **kwargs: Any) -> None:
        self.multiple = multiple
        super().__init__(**kwargs)
        if multiple:
            self.attrs["multiple"] = True

    def to_python(self, value: Any) -> list[Any]:
        if value is None:
            return []
        uploads = value if isinstance(value, list) else [value]
        # Browsers send an empty part when no file was chosen
        uploads = [upload for upload in uploads if getattr(upload, "filename", None)]
        if not self.multiple:
            return uploads[:1]
        return uploads


class SubmitButton:
    def __init__(self, *, label: str | None = None, attrs: dict[str, Any] | None = None):
        self.label = label
        self.attrs = dict(attrs or {})


@dataclass
class BoundField:
    name: str
    html_name: str
    id: str
    label: str
    value: Any
    errors: list[str]
    input_type: str
    required: bool
    placeholder: str | None
    help_text: str | None
    choices: list[tuple[str, str]] | None
    attrs: dict[str, Any]


@dataclass
class BoundButton:
    name: str
    html_name: str
    label: str
    attrs: dict[str, Any]


class BaseForm:
    """
    A named HTML form.

    Inputs are namespaced by the form name (``contact[email]``) so several
    forms can live on one page and each only picks up its own submission.

    Examples:
        >>> class ContactForm(BaseForm):
        ...     email = EmailField()
        ...     send = SubmitButton(label="Send")
        ...
        >>> form = ContactForm("contact")
        >>> form.bind({"email": "ada@example.com", "send": ""})
        >>> form.is_valid()
        True
        >>> form.clicked_button.label
        'Send'
    """

    declared_fields: ClassVar[dict[str, Field]] = {}
    declared_buttons: ClassVar[dict[str, SubmitButton]] = {}

    def __init_subclass__(cls) -> None:
        fields: dict[str, Field] = {}
        buttons: dict[str, SubmitButton] = {}
        for base in reversed(cls.__mro__[1:]):
            fields.update(getattr(base, "declared_fields", {}))
            buttons.update(getattr(base, "declared_buttons", {}))
        for name, value in cls.__dict__.items():
            if isinstance(value, Field):
                fields[name] = value
            elif isinstance(value, SubmitButton):
                buttons[name] = value
        cls.declared_fields = fields
        cls.declared_buttons = buttons
        super().__init_subclass__()

    def __init__(
        self,
        name: str = "form",
        data: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        initial: dict[str, Any] | None = None,
    ) -> None:
        self.name = name
        self.initial = dict(initial or {})
        self.data: dict[str, Any] = {}
        self.files: dict[str, Any] = {}
        self.is_bound = False
        self.cleaned_data: dict[str, Any] = {}
        self._errors: dict[str, list[str]] = {}
        if data is not None or files is not None:
            self.bind(data or {}, files)

    def bind(self, data: dict[str, Any], files: dict[str, Any] | None = None) -> None:
        self.data = dict(data)
        self.files = dict(files or {})
        self.is_bound = True

    def html_name(self, field_name: str) -> str:
        return f"{self.name}[{field_name}]"

    def html_id(self, field_name: str) -> str:
        return f"{self.name}_{field_name}"

    @property
    def errors(self) -> dict[str, list[str]]:
        return self._errors

    @property
    def non_field_errors(self) -> list[str]:
        return self._errors.get("__all__", [])

    def add_error(self, field: str | None, message: str) -> None:
        key = field or "__all__"
        self._errors.setdefault(key, []).append(message)

    def _raw_value(self, name: str, field: Field) -> Any:
        if isinstance(field, FileField):
            return self.files.get(name)
        if self.is_bound:
            # An unchecked checkbox is simply absent from the payload
            return self.data.get(name)
        return self.initial.get(name, field.initial)

    def is_valid(self) -> bool:
        if not self.is_bound:
            return False

        self._errors = {}
        self.cleaned_data = {}

        for name, field in self.declared_fields.items():
            try:
                self.cleaned_data[name] = field.clean(self._raw_value(name, field))
            except ValidationError as exc:
                for message in exc.messages:
                    self.add_error(name, message)

        if self._errors:
            return False

        try:
            cleaned = self.clean()
            if cleaned is not None:
                self.cleaned_data.update(cleaned)
        except ValidationError as exc:
            for message in exc.messages:
                self.add_error(None, message)

        return not self._errors

    def clean(self) -> dict[str, Any] | None:
        return None

    @property
    def clicked_button(self) -> SubmitButton | None:
        if not self.is_bound:
            return None
        for name, button in self.declared_buttons.items():
            if name in self.data:
                return button
        return None

    @property
    def clicked_button_name(self) -> str | None:
        if not self.is_bound:
            return None
        return next((name for name in self.declared_buttons if name in self.data), None)

    @property
    def fields(self) -> list[BoundField]:
        bound_fields: list[BoundField] = []
        for name, field in self.declared_fields.items():
            if isinstance(field, FileField):
                value = None
            elif name in self.cleaned_data:
                value = self.cleaned_data[name]
            else:
                value = self._raw_value(name, field)
            bound_fields.append(
                BoundField(
                    name=name,
                    html_name=self.html_name(name),
                    id=self.html_id(name),
                    label=field.label or name.replace("_", " ").title(),
                    value=value,
                    errors=self._errors.get(name, []),
                    input_type=field.input_type,
                    required=field.required,
                    placeholder=field.placeholder,
                    help_text=field.help_text,
                    choices=field.choices,
                    attrs=field.attrs,
                )
            )
        return bound_fields

    @property
    def buttons(self) -> list[BoundButton]:
        return [
            BoundButton(
                name=name,
                html_name=self.html_name(name),
                label=button.label or name.replace("_", " ").title(),
                attrs=button.attrs,
            )
            for name, button in self.declared_buttons.items()
        ]


def normalize_choices(choices: Any) -> list[tuple[str, str]] | None:
    """Accept ``[value, ...]``, ``[[value, label], ...]`` or ``{value: label}``."""
    if not choices:
        return None
    if isinstance(choices, dict):
        return [(str(value), str(label)) for value, label in choices.items()]
    normalized: list[tuple[str, str]] = []
    for item in choices:
        if isinstance(item, (list, tuple)) and len(item) == 2:
            normalized.append((str(item[0]), str(item[1])))
        else:
            normalized.append((str(item), str(item)))
    return normalized


_FIELD_TYPES: dict[str, type[Field]] = {
    "text": CharField,
    "textarea": TextAreaField,
    "email": EmailField,
    "url": URLField,
    "integer": IntegerField,
    "checkbox": BooleanField,
    "choice": ChoiceField,
    "hidden": HiddenField,
    "file": FileField,
}


def build_field(name: str, field_config: FieldConfig) -> Field | SubmitButton:
    options = field_config.options
    if field_config.type == "submit":
        return SubmitButton(label=options.label, attrs=options.attrs)

    field_class = _FIELD_TYPES.get(field_config.type)
    if field_class is None:
        raise FormOptionError(f"Field '{name}' has unknown type '{field_config.type}'")

    kwargs: dict[str, Any] = {
        "required": options.required,
        "label": options.label,
        "initial": options.initial,
        "placeholder": options.placeholder,
        "help_text": options.help_text,
        "min_length": options.min_length,
        "max_length": options.max_length,
        "pattern": options.pattern,
        "attrs": options.attrs,
    }
    if field_class is ChoiceField:
        kwargs["choices"] = normalize_choices(options.choices)
        if kwargs["choices"] is None:
            raise FormOptionError(f"Choice field '{name}' needs 'choices'")
    elif options.choices is not None:
        raise FormOptionError(f"Field '{name}' of type '{field_config.type}' has choices")
    if field_class is IntegerField:
        kwargs.update(min_value=options.min_value, max_value=options.max_value)
    elif options.min_value is not None or options.max_value is not None:
        raise FormOptionError(f"Field '{name}' does not support min/max values")
    if field_class is TextAreaField:
        kwargs["rows"] = options.rows
    if field_class is FileField:
        kwargs["multiple"] = options.multiple
    return field_class(**kwargs)


def build_form_class(form_config: FormConfig) -> type[BaseForm]:
    """Create a :class:`BaseForm` subclass from a form's configuration."""
    fields: dict[str, Field] = {}
    buttons: dict[str, SubmitButton] = {}
    for name, field_config in form_config.fields.items():
        field = build_field(name, field_config)
        if isinstance(field, SubmitButton):
            buttons[name] = field
        else:
            fields[name] = field

    class_name = "".join(part.title() for part in re.split(r"[^0-9a-zA-Z]+", form_config.name))
    form_class = type(f"{class_name}Form", (BaseForm,), {})
    # Assigned after class creation so field names never shadow form attributes
    form_class.declared_fields = fields
    form_class.declared_buttons = buttons
    return form_class
