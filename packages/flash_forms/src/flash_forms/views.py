from typing import Any, Callable, ClassVar, Coroutine

from fastapi import Request, Response, status
from fastapi.responses import PlainTextResponse, RedirectResponse

from flash_forms.helper import REDIRECT_STATE_ATTR, read_submission
from flash_forms.template_manager import TemplateManager


class FormPageView:
    """
    Render a page template that embeds ``flash_forms(...)`` calls.

    GET renders the page. POST first parses the body so the template functions
    can process it, then renders the same page. When a form asks for a
    redirect after a successful submission the rendered page is dropped and a
    303 is returned instead.

    Example:
        >>> app.add_api_route(
        ...     "/contact",
        ...     FormPageView.as_view(template_name="contact.html"),
        ...     methods=["GET", "POST"],
        ... )
    """

    http_method_names: ClassVar[list[str]] = ["get", "post"]

    template_name: str | None = None
    template_engine: TemplateManager | None = None
    extra_context: dict[str, Any] | None = None

    request: Request

    def __init__(self, **kwargs: Any) -> None:
        for key, value in kwargs.items():
            setattr(self, key, value)

    @classmethod
    def as_view(cls, **initkwargs: Any) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        for key in initkwargs:
            if not hasattr(cls, key):
                msg = (
                    f"{cls.__name__}() received an invalid keyword {key!r}. "
                    f"as_view() only accepts arguments that are already attributes "
                    f"of the class."
                )
                raise TypeError(msg)

        async def view(request: Request) -> Response:
            self = cls(**initkwargs)
            self.request = request
            return await self.dispatch()

        view.__doc__ = cls.__doc__
        view.__module__ = cls.__module__
        view.__name__ = cls.__name__
        return view

    async def dispatch(self) -> Response:
        method = self.request.method.lower()
        if method not in self.http_method_names:
            return PlainTextResponse(
                "Method Not Allowed", status_code=status.HTTP_405_METHOD_NOT_ALLOWED
            )
        return await getattr(self, method)()

    async def get(self) -> Response:
        return self.render_to_response(self.get_context_data())

    async def post(self) -> Response:
        await read_submission(self.request)
        return self.render_to_response(self.get_context_data())

    def get_context_data(self, **kwargs: Any) -> dict[str, Any]:
        context = dict(kwargs)
        context.setdefault("view", self)
        if self.extra_context is not None:
            context.update(self.extra_context)
        return context

    def get_template_engine(self) -> TemplateManager:
        engine = self.template_engine
        if engine is None:
            engine = getattr(self.request.app.state, "template_manager", None)
        if engine is None:
            msg = (
                "Template engine not found. "
                "Attach a TemplateManager to `app.state.template_manager` "
                "or pass it via `as_view(template_engine=...)`."
            )
            raise RuntimeError(msg)
        return engine

    def render_to_response(self, context: dict[str, Any]) -> Response:
        if self.template_name is None:
            msg = f"{self.__class__.__name__} requires 'template_name'."
            raise ValueError(msg)

        # Rendering happens here, so form redirects are known once this returns
        response = self.get_template_engine().templates.TemplateResponse(
            self.request, name=self.template_name, context=context
        )

        redirect_url = getattr(self.request.state, REDIRECT_STATE_ATTR, None)
        if redirect_url:
            return RedirectResponse(redirect_url, status_code=status.HTTP_303_SEE_OTHER)
        return response
