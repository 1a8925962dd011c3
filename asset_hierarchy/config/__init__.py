from .loader import ConfigError, ImportConfig, UploadConfig, load_config

__all__ = [
    "ConfigError",
    "ImportConfig",
    "UploadConfig",
    "load_config",
]
