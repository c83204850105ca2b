"""
Flash Forms example site: a contact form, an ajax newsletter signup and an
upload form.

Run this application with:
    uvicorn main:app --reload
"""

import logging
from pathlib import Path

import uvicorn
from fastapi import FastAPI
from flash_forms import (
    Config,
    FormPageView,
    FormsEvents,
    FormsSettings,
    LifecycleEvent,
    setup_forms,
)

BASE_DIR = Path(__file__).parent

logger = logging.getLogger("flash_forms.example")

app = FastAPI(
    title="Flash Forms Example",
    description="Configuration driven forms rendered from Jinja2 templates",
    version="1.0.0",
)

config = Config.from_yaml(BASE_DIR / "forms.yaml")
forms = setup_forms(
    app,
    config,
    # Sessions are signed with FLASH_FORMS_SECRET_KEY
    settings=FormsSettings(ROOT_PATH=BASE_DIR),
    template_directories=[BASE_DIR / "templates"],
    configure_logging=True,
)


@forms.dispatcher.listen(FormsEvents.SUBMISSION_PROCESSOR)
def log_submission(event: LifecycleEvent) -> None:
    button = event.clicked_button.label if event.clicked_button else None
    logger.info(
        "New %s submission (button=%s, meta=%s): %s",
        event.form_config.name,
        button,
        dict(event.meta),
        event.form_data.all(),
    )


def register_routes(app: FastAPI) -> None:
    """Register all application routes."""
    pages = {
        "/": "home.html",
        "/contact": "contact.html",
        "/uploads": "uploads.html",
    }
    for path, template_name in pages.items():
        app.add_api_route(
            path,
            FormPageView.as_view(template_name=template_name),
            methods=["GET", "POST"],
        )

    app.add_api_route(
        "/thanks",
        FormPageView.as_view(template_name="thanks.html"),
        methods=["GET"],
    )


register_routes(app)
if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
