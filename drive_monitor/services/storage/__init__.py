from .config_store import JsonConfigurationStore

__all__ = ["JsonConfigurationStore"]
