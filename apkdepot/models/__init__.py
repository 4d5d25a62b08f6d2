"""Database models."""
from apkdepot.models.user import User
from apkdepot.models.application import Application
from apkdepot.models.api_key import ApiKey
from apkdepot.models.application_version import ApplicationVersion

__all__ = [
    "User",
    "Application",
    "ApiKey",
    "ApplicationVersion",
]
