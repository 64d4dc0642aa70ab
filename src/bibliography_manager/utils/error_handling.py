"""Error handling utilities."""
import logging
import random
import time
from functools import wraps
from typing import Any, Callable, TypeVar, cast

import requests

logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def handle_api_errors(max_retries: int = 2, backoff_factor: float = 0.5):
    """
    Decorator to handle API errors with retries and exponential backoff.

    Client errors (4xx other than 429) are not retried. After the last
    attempt the wrapped call returns None.

    Args:
        max_retries: Maximum number of retry attempts
        backoff_factor: Factor for exponential backoff between retries
    """
    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)

                except requests.exceptions.RequestException as e:
                    last_exception = e
                    response = getattr(e, 'response', None)
                    status_code = getattr(response, 'status_code', None)

                    if status_code and 400 <= status_code < 500 and status_code != 429:
                        logger.error(f"API client error {status_code}: {str(e)}")
                        break

                    if status_code == 429:
                        try:
                            retry_after = int(response.headers.get('Retry-After', 5))
                        except (TypeError, ValueError):
                            retry_after = 5
                        if attempt < max_retries:
                            logger.warning(f"Rate limited. Retrying after {retry_after} seconds...")
                            time.sleep(retry_after)
                        continue

                    if attempt < max_retries:
                        backoff = min(backoff_factor * (2 ** attempt) + random.uniform(0, 1), 30)
                        logger.warning(f"API request failed (attempt {attempt + 1}/{max_retries}): {str(e)}")
                        logger.info(f"Retrying in {backoff:.2f} seconds...")
                        time.sleep(backoff)

            error_message = f"{func.__name__} failed after {max_retries + 1} attempts"
            if last_exception:
                error_message += f": {str(last_exception)}"
            logger.error(error_message)
            return None

        return cast(F, wrapper)
    return decorator


def file_operation_handler(func: Callable) -> Callable:
    """Decorator for handling file operation errors."""
    @wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except OSError as e:
            logger.error(f"File operation error in {func.__name__}: {str(e)}")
            return None
    return wrapper


def user_input_handler(func: Callable) -> Callable:
    """Decorator for handling user input errors."""
    @wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except (KeyboardInterrupt, EOFError):
            print("\nOperation cancelled by user.")
            return None
    return wrapper
