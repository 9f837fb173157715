from .settings import ClientConfig, force_https, load_config

__all__ = ["ClientConfig", "force_https", "load_config"]
