from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from flash_forms.context import FormContext
from flash_forms.feedback import Feedback, get_session


class TestFeedback:
    def test_add_and_peek(self):
        session = {}
        feedback = Feedback(session, "flash_forms_feedback")

        feedback.add("info", "Saved")
        feedback.add("info", "Mailed")
        feedback.add("error", "Oops")

        assert feedback.has("info") is True
        assert feedback.has("debug") is False
        assert feedback.peek("info") == ["Saved", "Mailed"]
        assert feedback.peek_all() == {"info": ["Saved", "Mailed"], "error": ["Oops"]}
        # Peeking leaves the messages in place
        assert session["flash_forms_feedback"]["info"] == ["Saved", "Mailed"]

    def test_get_removes_one_type(self):
        feedback = Feedback({}, "key")
        feedback.add("info", "Saved")
        feedback.add("error", "Oops")

        assert feedback.get("info") == ["Saved"]
        assert feedback.get("info") == []
        assert feedback.peek("error") == ["Oops"]

    def test_all_removes_everything(self):
        session = {}
        feedback = Feedback(session, "key")
        feedback.add("info", "Saved")

        assert feedback.all() == {"info": ["Saved"]}
        assert feedback.all() == {}
        assert "key" not in session


class TestFormContext:
    def test_restore_without_stored_context(self):
        context = FormContext.restore("contact", None)
        assert context.form_name == "contact"
        assert context.submitted is False
        assert context.defaults == {}

    def test_restore_resets_submission_state(self):
        stored = FormContext(
            form_name="contact", action="/contact", submitted=True, success=True
        ).to_session()

        context = FormContext.restore("contact", stored)

        assert context.action == "/contact"
        assert context.submitted is False
        assert context.success is False

    def test_restore_after_redirect_keeps_success_once(self):
        stored = FormContext(
            form_name="contact", submitted=True, success=True, redirected=True
        ).to_session()

        context = FormContext.restore("contact", stored)
        assert context.success is True
        assert context.redirected is False

        again = FormContext.restore("contact", context.to_session())
        assert again.success is False

    def test_to_session_is_json_friendly(self):
        context = FormContext(
            form_name="contact",
            html_post_submit="thanks.html",
            defaults={"name": "Ada"},
            meta={"campaign": "spring"},
        )
        assert context.to_session() == {
            "form_name": "contact",
            "action": "",
            "html_pre_submit": None,
            "html_post_submit": "thanks.html",
            "defaults": {"name": "Ada"},
            "meta": {"campaign": "spring"},
            "submitted": False,
            "success": False,
            "redirected": False,
        }


class TestGetSession:
    def test_falls_back_to_request_state(self, caplog):
        app = FastAPI()

        @app.get("/")
        def view(request: Request):
            first = get_session(request)
            first["seen"] = True
            return {"same": get_session(request) is first, "seen": get_session(request)["seen"]}

        with caplog.at_level("WARNING", logger="flash_forms.feedback"):
            response = TestClient(app).get("/")

        assert response.json() == {"same": True, "seen": True}
        assert "SessionMiddleware not installed" in caplog.text
