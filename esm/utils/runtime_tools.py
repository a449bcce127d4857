import logging
import os
import functools
import time
from typing import Callable
import pathlib as Path

LOG_FILENAME = "esm_log.txt"

def setup_logging_file(directory: str):
    """Setup file logging to the specified directory."""

    os.makedirs(directory, exist_ok=True)
    file_path = os.path.join(directory, LOG_FILENAME)
    Path.Path(file_path).touch(exist_ok=True)
    file_handler = logging.FileHandler(file_path)
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter('%(message)s'))

    root_logger = logging.getLogger()
    root_logger.addHandler(file_handler)

    return file_handler

def close_logging_file(file_handler: logging.FileHandler):
    """Detach a handler created by `setup_logging_file` from the root logger."""

    logging.getLogger().removeHandler(file_handler)
    file_handler.close()

def timeit(func: Callable):
    """
    A decorator that measures the execution time of the decorated function.
    """
    first_line = func.__doc__.strip().splitlines()[0].strip()
    first_line = first_line.rstrip('.')
    first_line = first_line[0].lower() + first_line[1:]
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logging.info(f"> Initializing {first_line} ... ")
        start_time = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed_time = time.perf_counter() - start_time
        logging.info(f"> Completed in {elapsed_time:.2f} seconds. \n")
        return result
    return wrapper
