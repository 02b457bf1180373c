"""Jinja2 notification renderer."""

from collections.abc import Mapping
from typing import Any, Callable

from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from review_monitor.config import TemplateConfig
from review_monitor.core import Category, DeliveryError, Notification, TemplateRenderer


class JinjaTemplateRenderer(TemplateRenderer):
    """Render subject and body from per-category templates.

    Templates run in a sandboxed environment since item text comes straight
    from remote users; bodies are HTML and autoescaped, subjects are plain text.
    """

    def __init__(self, template_for: Callable[[str], TemplateConfig]) -> None:
        """Initialize renderer.

        Args:
            template_for: Returns the category template merged over the default
        """
        self.template_for = template_for
        self.subject_env = SandboxedEnvironment(autoescape=False, undefined=StrictUndefined)
        self.body_env = SandboxedEnvironment(autoescape=True, undefined=StrictUndefined)

    def render(self, category: Category, context: Mapping[str, Any]) -> Notification:
        template = self.template_for(category.value)

        try:
            subject = self.subject_env.from_string(template.subject).render(context)
            body = self.body_env.from_string(template.body).render(context)
        except TemplateError as e:
            raise DeliveryError(f"Could not render {category.value} template: {e}") from e

        # Subjects are header values, not markup
        return Notification(subject=" ".join(subject.split()), body=body)
