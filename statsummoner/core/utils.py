# statsummoner/core/utils.py
import asyncio
import logging
import os
import discord
from typing import Coroutine, Any, TypeVar, Callable

logger = logging.getLogger(__name__)

T = TypeVar('T')

async def retry_on_transient_error(
    coro_func: Callable[[], Coroutine[Any, Any, T]],
    operation_name: str,
    retry_on: tuple[type[BaseException], ...] = (discord.errors.DiscordServerError,),
    max_retries: int = 3,
    initial_delay: float = 2.0,
    backoff_factor: float = 2.0
) -> T:
    """
    Run a coroutine again with exponential backoff while it raises one of `retry_on`.

    :param coro_func: a callable returning a fresh coroutine on every attempt
                      (e.g. lambda: channel.send(embed=embed))
    :param operation_name: human-readable name used in log records
    :param retry_on: exception types considered transient
    :param max_retries: total number of attempts
    :param initial_delay: seconds to wait before the second attempt
    :param backoff_factor: multiplier applied to the delay after each failure
    :return: the coroutine result on success
    :raises: the last exception once every attempt has failed
    """
    delay = initial_delay
    logger.debug(f"Starting '{operation_name}' (up to {max_retries} attempts).")

    for attempt in range(1, max_retries + 1):
        try:
            result = await coro_func()
            logger.debug(f"'{operation_name}' succeeded.")
            return result
        except retry_on as e:
            if attempt == max_retries:
                logger.error(
                    f"'{operation_name}' failed after {max_retries} attempts. Last error: {e}",
                    exc_info=True
                )
                raise

            # a server-provided Retry-After wins over the backoff when it is longer
            wait = max(delay, getattr(e, 'retry_after', None) or 0)
            logger.warning(
                f"'{operation_name}' failed (attempt {attempt}/{max_retries}): {e}. Retrying in {wait:.2f}s..."
            )
            await asyncio.sleep(wait)
            delay *= backoff_factor

    raise RuntimeError(f"Retry loop for '{operation_name}' exited unexpectedly.")


def env_number(name: str, default: T, cast: Callable[[str], T] = int) -> T:
    """Read a numeric setting from the environment, falling back to `default` when unset or invalid."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw.strip())
    except (ValueError, TypeError):
        logger.warning(f"Invalid value for {name}: '{raw}', using default {default}.")
        return default
    if value <= 0:
        logger.warning(f"{name} must be positive, got {value}; using default {default}.")
        return default
    return value
