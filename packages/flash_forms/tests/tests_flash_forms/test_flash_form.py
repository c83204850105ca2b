from pathlib import Path

import pytest
from flash_forms import FlashForm, FormData, MetaData, UnknownFormError
from flash_forms.forms import BaseForm, CharField


class ContactForm(BaseForm):
    name = CharField()


class TestFlashForm:
    def test_set_meta_requires_a_form(self):
        with pytest.raises(UnknownFormError, match="Form not created"):
            FlashForm().set_meta({"source": "footer"})

    def test_set_meta_merges_and_chains(self):
        flash_form = FlashForm(ContactForm("contact"), meta=MetaData({"a": 1, "b": 2}))

        result = flash_form.set_meta({"b": 3, "c": 4})

        assert result is flash_form
        assert flash_form.meta.all() == {"a": 1, "b": 3, "c": 4}

    def test_set_meta_accepts_meta_data(self):
        flash_form = FlashForm(ContactForm("contact"))
        flash_form.set_meta(MetaData({"source": "footer"}))
        assert flash_form.meta["source"] == "footer"

    def test_set_meta_none_is_a_no_op(self):
        flash_form = FlashForm(ContactForm("contact"), meta=MetaData({"a": 1}))
        flash_form.set_meta(None)
        assert flash_form.meta.all() == {"a": 1}

    def test_form_can_be_assigned_later(self):
        flash_form = FlashForm()
        flash_form.form = ContactForm("contact")
        flash_form.set_meta({"a": 1})
        assert flash_form.form.name == "contact"


class TestMetaData:
    def test_mapping_behaviour(self):
        meta = MetaData({"a": 1})
        meta["b"] = 2
        del meta["a"]

        assert meta.has("b") is True
        assert meta.has("a") is False
        assert dict(meta) == {"b": 2}

    def test_snapshot_is_detached(self):
        meta = MetaData({"a": 1})
        snapshot = meta.snapshot()
        meta["a"] = 2

        assert snapshot["a"] == 1
        with pytest.raises(TypeError):
            snapshot["a"] = 3


class TestFormData:
    def test_read_only(self):
        data = FormData({"name": "Ada"})

        assert data["name"] == "Ada"
        assert data.has("name") is True
        assert data.all() == {"name": "Ada"}
        with pytest.raises(TypeError):
            data["name"] = "Grace"

    def test_files(self):
        data = FormData({"cv": ["cv.pdf"]}, files={"cv": [Path("/tmp/cv.pdf")]})

        assert data.files["cv"] == [Path("/tmp/cv.pdf")]
        with pytest.raises(TypeError):
            data.files["other"] = []
