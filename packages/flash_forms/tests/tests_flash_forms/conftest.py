import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from flash_forms import Config, EventDispatcher, FormPageView, FormsSettings, setup_forms
from starlette.middleware.sessions import SessionMiddleware

PAGES = {
    "contact": "{{ flash_forms('contact') }}",
    "missing": "{{ flash_forms('nope') }}",
    "newsletter": "{{ flash_forms('newsletter') }}",
    "callback": "{{ flash_forms('callback') }}",
    "pair": "{{ flash_forms('callback') }}{{ flash_forms('contact') }}",
    "upload": "{{ flash_forms('upload') }}",
    "uploads": "{{ flash_forms_uploads('upload') }}",
    "escape": "{{ flash_forms_uploads('../') }}",
    "meta": (
        "{{ flash_forms('contact', meta={'campaign': 'spring'}, "
        "defaults={'name': 'Ada'}, html_post_submit='<p>Done!</p>') }}"
    ),
    "override": (
        "{{ flash_forms('contact', "
        "override={'fields': {'name': {'options': {'label': 'Full name'}}}}) }}"
    ),
}


def forms_definition(upload_dir) -> dict:
    return {
        "uploads": {
            "enabled": True,
            "base_directory": str(upload_dir),
            "management_controller": True,
        },
        "forms": {
            "contact": {
                "feedback": {
                    "success": "Thanks for your message",
                    "error": "Please fix the errors",
                },
                "fields": {
                    "name": {"type": "text", "options": {"label": "Your name"}},
                    "email": {"type": "email"},
                    "message": {"type": "textarea", "options": {"required": False}},
                    "send": {"type": "submit", "options": {"label": "Send"}},
                },
            },
            "newsletter": {
                "submission": {"ajax": True},
                "fields": {
                    "email": {"type": "email"},
                    "subscribe": {"type": "submit"},
                },
            },
            "callback": {
                "submission": {"redirect": "/thanks"},
                "fields": {"phone": {"type": "text"}},
            },
            "upload": {
                "fields": {
                    "attachment": {"type": "file"},
                    "send": {"type": "submit"},
                },
            },
        },
    }


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    (path / "upload").mkdir(parents=True)
    return path


@pytest.fixture
def forms_mapping(upload_dir) -> dict:
    return forms_definition(upload_dir)


@pytest.fixture
def forms_config(forms_mapping) -> Config:
    return Config.from_mapping(forms_mapping)


@pytest.fixture
def settings(tmp_path) -> FormsSettings:
    return FormsSettings(DEBUG=True, ROOT_PATH=tmp_path)


@pytest.fixture
def dispatcher() -> EventDispatcher:
    return EventDispatcher()


@pytest.fixture
def site_templates(tmp_path):
    tpl_dir = tmp_path / "site_templates"
    tpl_dir.mkdir()
    for name, source in PAGES.items():
        (tpl_dir / f"{name}.html").write_text(source, encoding="utf-8")
    return tpl_dir


@pytest.fixture
def app(forms_config, settings, dispatcher, site_templates) -> FastAPI:
    app = FastAPI()
    app.add_middleware(SessionMiddleware, secret_key="test-secret")
    setup_forms(
        app,
        forms_config,
        settings=settings,
        dispatcher=dispatcher,
        template_directories=[site_templates],
    )

    for page in PAGES:
        app.add_api_route(
            f"/{page}",
            FormPageView.as_view(template_name=f"{page}.html"),
            methods=["GET", "POST"],
        )

    @app.get("/_session")
    def session_keys(request: Request) -> list[str]:
        return sorted(request.session.keys())

    return app


@pytest.fixture
def extension(app):
    return app.state.flash_forms


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
