"""
Configuration management for onboarding runs.

Provides type-safe settings loading and validation with support
for multiple configuration sources and priority-based merging.
"""

from .loader import ConfigLoader, build_notification_target, load_env_file, load_settings
from .models import (
    DEFAULT_TEMPLATES,
    NotificationTarget,
    OnboardingSettings,
    RetryPolicy,
    TemplateKey,
    TemplateSpec,
)

__all__ = [
    # Loader
    "ConfigLoader",
    "build_notification_target",
    "load_env_file",
    "load_settings",
    # Models
    "DEFAULT_TEMPLATES",
    "NotificationTarget",
    "OnboardingSettings",
    "RetryPolicy",
    "TemplateKey",
    "TemplateSpec",
]
