from .shortlink_manager import ShortlinkManager, validate_short, validate_url

__all__ = ["ShortlinkManager", "validate_short", "validate_url"]
