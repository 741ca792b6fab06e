import inspect
import json
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple, Union

import wrapt

from ttc.app.hash import short_hash
from ttc.app.tags import TagLike

if TYPE_CHECKING:
    from ttc.app.engine import Engine

LOGGER = logging.getLogger("ttc.app.decorator")

TagsArg = Optional[Union[List[TagLike], Callable[..., List[TagLike]]]]


def _get_key(
    location: List[str],
    key: Optional[Callable[..., str]],
    instance: Any,
    *decorated_args,
    **decorated_kwargs,
) -> Optional[str]:
    if key is not None:
        try:
            if instance is None:
                return key(*decorated_args, **decorated_kwargs)
            else:
                return key(instance, *decorated_args, **decorated_kwargs)
        except Exception:
            LOGGER.warning(
                "error while computing dynamic key => cache bypassed",
                exc_info=True,
            )
        return None
    try:
        serialized_args = json.dumps(
            [
                location,
                decorated_args,
                decorated_kwargs,
            ],
            sort_keys=True,
        ).encode("utf-8")
        return "-".join([location[2], short_hash(serialized_args)])
    except Exception:
        LOGGER.warning(
            "arguments are not JSON serializable => cache bypassed",
            exc_info=True,
        )
        return None


def _get_full_tags(
    tags: TagsArg,
    instance: Any,
    *decorated_args,
    **decorated_kwargs,
) -> Optional[List[TagLike]]:
    if callable(tags):
        try:
            if instance is None:
                return tags(*decorated_args, **decorated_kwargs)
            else:
                return tags(instance, *decorated_args, **decorated_kwargs)
        except Exception:
            LOGGER.warning(
                "error while computing dynamic tags => cache bypassed",
                exc_info=True,
            )
            return None
    return tags or []


def cache_decorator(
    *,
    engine: "Engine",
    tags: TagsArg = None,
    ttl: Optional[int] = None,
    key: Optional[Callable[..., str]] = None,
    hook_userdata: Optional[Any] = None,
):
    """Decorator caching the result of a function (or method) with `engine.remember()`.

    If you don't provide a `key` argument, a key is automatically generated
    from the function location and its calling arguments (they must be JSON
    serializable, `self` is ignored for methods). Else, `key` is called with the
    same arguments as the decorated function and must return a string.

    `tags` can be a list of tags or a callable (called with the same arguments
    as the decorated function) returning a list of tags.

    Nested decorated calls propagate their tags to the wrapping ones.

    """

    @wrapt.decorator
    def wrapper(wrapped: Callable, instance: Any, args: Tuple, kwargs: Dict) -> Any:
        class_name: str = ""
        if instance is not None:
            try:
                class_name = instance.__class__.__name__
            except Exception:
                pass
        location = [inspect.getfile(wrapped), class_name, wrapped.__name__]
        ckey = _get_key(location, key, instance, *args, **kwargs)
        full_tags = _get_full_tags(tags, instance, *args, **kwargs)
        if ckey is None or full_tags is None:
            return wrapped(*args, **kwargs)
        return engine.remember(
            ckey,
            lambda: wrapped(*args, **kwargs),
            tags=full_tags,
            ttl=ttl,
            hook_userdata=hook_userdata,
        ).value

    return wrapper
