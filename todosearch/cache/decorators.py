from functools import wraps
from typing import Callable


def async_cached(key_builder: Callable[..., str], l2_ttl: int = None):
    """
    Decorator for async service functions that take a ``cache`` keyword.
    key_builder receives the same args/kwargs. Without a cache the
    function is called directly.
    Example:
      @async_cached(lambda todo_id, *_, **__: f"todo:{todo_id}")
      async def get_todo(todo_id, db, cache=None): ...
    """

    def decorator(fn: Callable):
        @wraps(fn)
        async def wrapper(*args, **kwargs):
            cache = kwargs.get("cache")
            if cache is None:
                return await fn(*args, **kwargs)

            key = key_builder(*args, **kwargs)

            async def loader():
                value = await fn(*args, **kwargs)
                if value is None:
                    return None
                if hasattr(value, "model_dump"):
                    return value.model_dump(mode="json")
                return value

            return await cache.get(key, loader=loader, l2_ttl=l2_ttl)

        return wrapper

    return decorator


def async_cached_expire(key_builder: Callable[..., str]):
    def decorator(fn: Callable):
        @wraps(fn)
        async def wrapper(*args, **kwargs):
            result = await fn(*args, **kwargs)
            cache = kwargs.get("cache")
            if cache is not None:
                await cache.delete(key_builder(*args, **kwargs))
            return result

        return wrapper

    return decorator
