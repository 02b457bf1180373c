"""Notification template renderers."""

from review_monitor.adapters.templates.jinja_renderer import JinjaTemplateRenderer

__all__ = ["JinjaTemplateRenderer"]
