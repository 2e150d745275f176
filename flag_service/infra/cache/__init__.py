"""Cache infrastructure."""

from flag_service.infra.cache.redis import RedisCache

__all__ = ["RedisCache"]
