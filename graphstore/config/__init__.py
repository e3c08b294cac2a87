from graphstore.config.models import ProxyConfig

__all__ = ("ProxyConfig",)
