"""Repository inspection with dulwich."""

from .remote import get_active_config, get_remote_url

__all__ = ["get_active_config", "get_remote_url"]
