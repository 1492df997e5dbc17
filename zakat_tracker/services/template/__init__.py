"""Default template services."""

from zakat_tracker.services.template.loader import (
    DefaultTemplateLoader,
    TemplateFetchError,
)

__all__ = ["DefaultTemplateLoader", "TemplateFetchError"]
