import io

from flash_forms.helper import Submission
from starlette.datastructures import UploadFile


class TestSubmission:
    def test_for_form_splits_by_form_name(self):
        submission = Submission(
            values={
                "contact[name]": ["Ada"],
                "newsletter[email]": ["ada@example.com"],
                "unrelated": ["x"],
            }
        )

        assert submission.for_form("contact") == ({"name": "Ada"}, {})
        assert submission.for_form("newsletter") == ({"email": "ada@example.com"}, {})
        assert submission.for_form("quote") is None

    def test_repeated_scalar_keeps_last_value(self):
        submission = Submission(values={"contact[name]": ["Ada", "Grace"]})
        assert submission.for_form("contact") == ({"name": "Grace"}, {})

    def test_list_keys_keep_every_value(self):
        submission = Submission(values={"contact[topics][]": ["sales", "support"]})
        assert submission.for_form("contact") == ({"topics": ["sales", "support"]}, {})

    def test_uploads_are_kept_apart(self):
        upload = UploadFile(file=io.BytesIO(b"cv"), filename="cv.txt")
        submission = Submission(values={"contact[cv][]": [upload]})

        data, files = submission.for_form("contact")

        assert data == {}
        assert files == {"cv": [upload]}

    def test_captcha_token(self):
        assert Submission(values={"g-recaptcha-response": ["token"]}).captcha_token == "token"
        assert Submission().captcha_token is None
