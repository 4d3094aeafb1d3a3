"""Durable named AWS profiles."""

from aws_account_mcp.profiles.models import Environment, Profile
from aws_account_mcp.profiles.store import ProfileStore

__all__ = ["Environment", "Profile", "ProfileStore"]
