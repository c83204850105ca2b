"""
Jinja2 environment used to render forms.

Site templates always take priority over the ones shipped with Flash Forms,
so a site overrides ``flash_forms/form.html`` simply by providing a file with
the same name in one of its own template directories.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Sequence

from fastapi.templating import Jinja2Templates

logger = logging.getLogger(__name__)

# Suffixes that mark a template argument as a template name instead of HTML
TEMPLATE_SUFFIXES = (".html", ".htm", ".jinja", ".jinja2", ".j2", ".twig")


class TemplateManager:
    """
    Owns the ``Jinja2Templates`` instance shared by the site and Flash Forms.

    Attributes:
        templates (Jinja2Templates): The configured environment, usable for
            page responses via ``templates.TemplateResponse(...)``.
    """

    def __init__(
        self,
        directories: Sequence[Path | str] | None = None,
        global_context: dict[str, Any] | None = None,
        global_functions: dict[str, Callable] | None = None,
    ):
        """
        Args:
            directories: Site template directories, highest priority first.
            global_context: Variables available in every template.
            global_functions: Functions available in every template.
        """
        self._directories: list[str] = []

        for d in directories or ():
            self._add_directory(d)

        # Package defaults go last so any site directory can override them
        self._add_directory(Path(__file__).parent / "templates")

        logger.debug("Template directories: %s", self._directories)
        self.templates = Jinja2Templates(directory=self._directories)

        for name, value in (global_context or {}).items():
            self.templates.env.globals[name] = value
        for name, func in (global_functions or {}).items():
            self.templates.env.globals[name] = func

    @property
    def directories(self) -> list[str]:
        return list(self._directories)

    def _add_directory(self, path: Path | str) -> None:
        path_str = str(Path(path).resolve())
        if path_str not in self._directories:
            self._directories.append(path_str)

    def add_global(self, name: str, value: Any) -> None:
        self.templates.env.globals[name] = value

    def render(self, template_name: str, context: dict[str, Any]) -> str:
        return self.templates.env.get_template(template_name).render(context)

    def render_string(self, source: str, context: dict[str, Any] | None = None) -> str:
        return self.templates.env.from_string(source).render(context or {})

    @staticmethod
    def is_template_name(value: str) -> bool:
        value = value.strip()
        return "<" not in value and value.lower().endswith(TEMPLATE_SUFFIXES)


__all__ = ["TemplateManager"]
