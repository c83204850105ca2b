from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import FileResponse, HTMLResponse

from flash_forms.extension import ASYNC_ROUTE_NAME, DOWNLOAD_ROUTE_NAME
from flash_forms.feedback import get_session
from flash_forms.helper import read_submission

if TYPE_CHECKING:
    from flash_forms.extension import FormsExtension

logger = logging.getLogger(__name__)


def create_router(extension: FormsExtension) -> APIRouter:
    """
    Routes used by rendered forms.

    * ``POST <ASYNC_ROUTE_PREFIX>/{form}`` handles ajax submissions and
      returns the re-rendered form as an HTML fragment.
    * ``GET /<uploads.base_uri>/download/{form}/{filename}`` serves stored
      uploads when ``uploads.management_controller`` is enabled.
    """
    router = APIRouter()
    settings = extension.settings
    uploads = extension.config.uploads

    @router.post(
        f"{settings.ASYNC_ROUTE_PREFIX}/{{form}}",
        name=ASYNC_ROUTE_NAME,
        response_class=HTMLResponse,
    )
    async def async_submit(request: Request, form: str) -> HTMLResponse:
        if not extension.config.has_form(form):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)

        # Render the way the page that showed the form did
        stored = get_session(request).get(settings.compiler_session_key(form)) or {}
        await read_submission(request)
        html = extension.render_form(
            request,
            form,
            html_pre_submit=stored.get("html_pre_submit"),
            html_post_submit=stored.get("html_post_submit"),
            defaults=stored.get("defaults") or None,
            meta=stored.get("meta") or None,
        )
        return HTMLResponse(str(html))

    @router.get(
        "/" + uploads.base_uri.strip("/") + "/download/{form}/{filename}",
        name=DOWNLOAD_ROUTE_NAME,
    )
    async def download(form: str, filename: str) -> FileResponse:
        if not uploads.management_controller:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)

        path = extension.uploads.resolve_file(form, filename)
        if path is None:
            logger.info("Download of %s/%s refused", form, filename)
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return FileResponse(path, filename=path.name)

    return router
