import pytest
from flash_forms import Config, ConfigurationError, FormsSettings, UnknownFormError
from pydantic import ValidationError

CONFIG_YAML = """
templates:
  exception: site/exception.html
uploads:
  enabled: true
  filename_handling: prefix
forms:
  contact:
    fields:
      name:
        type: text
      send:
        type: submit
  quote:
    templates:
      form: site/quote.html
    submission:
      ajax: true
    fields:
      amount:
        type: integer
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "forms.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    return path


class TestConfig:
    def test_from_yaml(self, config_file):
        config = Config.from_yaml(config_file)

        assert sorted(config.base_forms) == ["contact", "quote"]
        assert config.uploads.enabled is True
        assert config.uploads.filename_handling == "prefix"
        assert config.get_form("quote").is_ajax is True
        assert config.get_form("contact").fields["send"].type == "submit"

    def test_form_templates_inherit_global_defaults(self, config_file):
        config = Config.from_yaml(config_file)

        contact = config.get_form("contact").templates
        quote = config.get_form("quote").templates
        assert contact.form == "flash_forms/form.html"
        assert contact.exception == "site/exception.html"
        assert quote.form == "site/quote.html"
        assert quote.exception == "site/exception.html"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Unable to read"):
            Config.from_yaml(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("forms: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Unable to parse"):
            Config.from_yaml(path)

    def test_invalid_field_type(self):
        with pytest.raises(ConfigurationError, match="form 'contact'"):
            Config({"contact": {"fields": {"name": {"type": "colour"}}}})

    def test_unknown_keys_are_rejected(self):
        with pytest.raises(ConfigurationError):
            Config({"contact": {"submision": {"ajax": True}}})

    def test_get_unknown_form(self):
        config = Config({"contact": {}})
        assert config.has_form("contact") is True
        assert config.has_form("nope") is False
        with pytest.raises(UnknownFormError):
            config.get_form("nope")

    def test_base_forms_is_read_only(self):
        config = Config({"contact": {}})
        with pytest.raises(TypeError):
            config.base_forms["other"] = config.get_form("contact")

    def test_form_config_is_frozen(self):
        form = Config({"contact": {}}).get_form("contact")
        with pytest.raises(ValidationError):
            form.captcha = True

    def test_with_override_leaves_original_untouched(self, config_file):
        config = Config.from_yaml(config_file)

        overridden = config.with_override(
            "contact", {"fields": {"name": {"options": {"label": "Full name"}}}}
        )

        assert overridden.get_form("contact").fields["name"].options.label == "Full name"
        assert overridden.get_form("contact").fields["name"].type == "text"
        assert "send" in overridden.get_form("contact").fields
        assert config.get_form("contact").fields["name"].options.label is None
        assert overridden.get_form("quote") is config.get_form("quote")

    def test_override_unknown_form(self):
        with pytest.raises(UnknownFormError):
            Config({}).with_override("nope", {})


class TestSettings:
    def test_defaults(self):
        settings = FormsSettings()
        assert settings.TRACE_DEPTH == 10
        assert settings.compiler_session_key("contact") == "flash_forms_compiler_contact"
        assert settings.feedback_session_key("contact") == "flash_forms_feedback_contact"

    def test_secret_key_is_mandatory_in_production(self):
        with pytest.raises(ValidationError, match="SECRET_KEY is mandatory"):
            FormsSettings(DEBUG=False, SECRET_KEY="")

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("FLASH_FORMS_TRACE_DEPTH", "3")
        monkeypatch.setenv("FLASH_FORMS_SESSION_NAMESPACE", "forms")
        settings = FormsSettings()
        assert settings.TRACE_DEPTH == 3
        assert settings.compiler_session_key("contact") == "forms_compiler_contact"
