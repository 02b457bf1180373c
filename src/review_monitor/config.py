"""Configuration management."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from review_monitor.core import ConfigError, Source

DEFAULT_SUBJECT = "New {{ category_label }} for {{ source_name }}"
DEFAULT_BODY = (
    "<p><b>{{ author.name or 'Anonymous' }}</b> wrote on {{ created.strftime('%Y-%m-%d %H:%M') }}:</p>"
    "<p>{{ comment }}</p>"
)


@dataclass
class RemoteConfig:
    """Remote thread endpoint settings."""
    endpoint: str = "https://chrome.google.com/reviews/components"
    permalink: str = "http://chrome.google.com/extensions/permalink?id={id}"
    app_id: int = 94
    version: str = "150922"
    locale: str = "en"
    page_size: int = 25
    callback: str = "google.annotations2.component.load"
    timeout: float = 30.0


@dataclass
class NotificationsConfig:
    """Delivery settings."""
    transport: str = "email"
    min_interval: float = 1.0


@dataclass
class EmailConfig:
    """SMTP settings."""
    host: str = "localhost"
    port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    start_tls: bool = True
    use_tls: bool = False
    sender: str = ""
    recipients: list[str] = field(default_factory=list)


@dataclass
class TemplateConfig:
    """Subject and body template for one category."""
    subject: str = DEFAULT_SUBJECT
    body: str = DEFAULT_BODY


@dataclass
class Settings:
    """Application settings."""

    sources: list[Source]

    # Secrets (from environment only)
    slack_webhook_url: Optional[str] = None

    remote: RemoteConfig = field(default_factory=RemoteConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    templates: dict[str, dict[str, str]] = field(default_factory=dict)

    def template_for(self, category: str) -> TemplateConfig:
        """Category template merged over the default template."""
        merged = {**self.templates.get("default", {}), **self.templates.get(category, {})}
        return TemplateConfig(**merged)


def load_config(config_path: Path) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read config {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError(f"Config {config_path} must be a mapping")

    return config


def parse_sources(raw: object) -> list[Source]:
    """Parse sources given as a name -> id mapping or a plain list of ids."""
    if isinstance(raw, dict):
        pairs = [(str(name), str(source_id)) for name, source_id in raw.items()]
    elif isinstance(raw, list):
        pairs = [(str(source_id), str(source_id)) for source_id in raw]
    else:
        raise ConfigError("'sources' must be a mapping of name to id or a list of ids")

    if not pairs:
        raise ConfigError("No sources configured")

    ids = [source_id for _, source_id in pairs]
    if len(set(ids)) != len(ids):
        raise ConfigError("Source ids must be unique")

    try:
        return [Source(id=source_id, name=name) for name, source_id in pairs]
    except ValueError as e:
        raise ConfigError(str(e)) from e


def _apply(section: object, values: object, name: str) -> None:
    if not isinstance(values, dict):
        raise ConfigError(f"'{name}' must be a mapping")

    for key, value in values.items():
        if not hasattr(section, key):
            raise ConfigError(f"Unknown setting '{name}.{key}'")
        setattr(section, key, value)


def get_settings(config_path: Path) -> Settings:
    """Get application settings from YAML config and environment."""
    config = load_config(config_path)

    if "sources" not in config:
        raise ConfigError("Config is missing 'sources'")

    settings = Settings(
        sources=parse_sources(config["sources"]),
        slack_webhook_url=os.getenv("SLACK_WEBHOOK_URL"),
    )

    if "remote" in config:
        _apply(settings.remote, config["remote"], "remote")

    if "notifications" in config:
        _apply(settings.notifications, config["notifications"], "notifications")

    if "email" in config:
        _apply(settings.email, config["email"], "email")

    if "templates" in config:
        templates = config["templates"]
        if not isinstance(templates, dict) or not all(
            isinstance(value, dict) for value in templates.values()
        ):
            raise ConfigError("'templates' must map categories to subject/body mappings")
        settings.templates = templates

    settings.email.password = os.getenv("SMTP_PASSWORD", settings.email.password)

    _validate(settings)
    return settings


def _check_number(section: object, key: str, name: str, integer: bool = False) -> None:
    value = getattr(section, key)
    allowed = int if integer else (int, float)
    if isinstance(value, bool) or not isinstance(value, allowed):
        kind = "an integer" if integer else "a number"
        raise ConfigError(f"{name}.{key} must be {kind}, got {value!r}")
    if value < 0:
        raise ConfigError(f"{name}.{key} cannot be negative, got {value!r}")


def _check_flag(section: object, key: str, name: str) -> None:
    value = getattr(section, key)
    if not isinstance(value, bool):
        raise ConfigError(f"{name}.{key} must be true or false, got {value!r}")


def _validate(settings: Settings) -> None:
    if isinstance(settings.email.recipients, str):
        settings.email.recipients = [settings.email.recipients]

    _check_number(settings.remote, "app_id", "remote", integer=True)
    _check_number(settings.remote, "page_size", "remote", integer=True)
    _check_number(settings.remote, "timeout", "remote")
    _check_number(settings.notifications, "min_interval", "notifications")
    _check_number(settings.email, "port", "email", integer=True)
    _check_flag(settings.email, "start_tls", "email")
    _check_flag(settings.email, "use_tls", "email")

    transport = settings.notifications.transport
    if transport == "email":
        if not settings.email.sender:
            raise ConfigError("email.sender is required for the email transport")
        if not settings.email.recipients:
            raise ConfigError("email.recipients is required for the email transport")
    elif transport == "slack":
        if not settings.slack_webhook_url:
            raise ConfigError("SLACK_WEBHOOK_URL is required for the slack transport")
    else:
        raise ConfigError(f"Unknown transport '{transport}'")

    for category, template in settings.templates.items():
        unknown = set(template) - {"subject", "body"}
        if unknown:
            raise ConfigError(f"Unknown template keys for '{category}': {sorted(unknown)}")
