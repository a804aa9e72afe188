from .manager import RedisManager

__all__ = ["RedisManager"]
