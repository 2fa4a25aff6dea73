"""Provision Azure onboarding resources from remote ARM templates."""

__version__ = "0.1.0"
