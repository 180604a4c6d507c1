import logging
import time
from functools import wraps

logger = logging.getLogger("curtaincore")
logger.addHandler(logging.NullHandler())


def log_time(task_name):
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            logger.debug(f"{task_name} started")
            start_time = time.perf_counter()
            result = func(*args, **kwargs)
            duration = time.perf_counter() - start_time
            logger.debug(f"{task_name} completed, took {duration:.3f} seconds.")
            return result

        return wrapper

    return decorator
