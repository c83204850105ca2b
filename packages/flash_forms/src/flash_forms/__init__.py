from .app import setup_forms
from .config import Config, FormConfig
from .events import EventDispatcher, FormsEvents, LifecycleEvent
from .exceptions import (
    ConfigurationError,
    FileUploadError,
    FormOptionError,
    FormsError,
    RedirectRequired,
    UnknownFormError,
)
from .extension import FormsExtension
from .flash_form import FlashForm
from .meta import FormData, MetaData
from .settings import FormsSettings
from .template_manager import TemplateManager
from .views import FormPageView

__all__ = [
    "Config",
    "ConfigurationError",
    "EventDispatcher",
    "FileUploadError",
    "FlashForm",
    "FormConfig",
    "FormData",
    "FormOptionError",
    "FormPageView",
    "FormsError",
    "FormsEvents",
    "FormsExtension",
    "FormsSettings",
    "LifecycleEvent",
    "MetaData",
    "RedirectRequired",
    "TemplateManager",
    "UnknownFormError",
    "setup_forms",
]
