"""General utilities."""
import logging.config
from pathlib import Path
from typing import Any, Iterable, Union

import yaml

LOGGING_SETUP = Path(__file__).parent / "logging_setup.yml"


def setup_logging(path: Union[str, Path] = LOGGING_SETUP):
    """Set up logging."""
    with open(path, "r") as stream:
        config = yaml.load(stream.read(), Loader=yaml.SafeLoader)
    logging.config.dictConfig(config)


def ensure_list(arg: Any) -> list:
    """Enclose in list if necessary."""
    if arg is None:
        return []
    if isinstance(arg, list):
        return arg
    if isinstance(arg, tuple):
        return list(arg)
    return [arg]


def batch(iterable: Iterable, n: int = 1):
    """Batch things into batches of size n."""
    N = len(iterable)
    for ndx in range(0, N, n):
        yield iterable[ndx : min(ndx + n, N)]


def deduplicate(values: Iterable) -> list:
    """De-duplicate, keeping first-seen order."""
    return list(dict.fromkeys(values))


def log_request(r):
    """Serialize a httpx.Request object into a dict for logging"""
    return {
        "method": r.method,
        "url": str(r.url),
        "headers": dict(r.headers),
    }


def log_response(r):
    """Serialize a httpx.Response object into a dict for logging"""
    return {
        "status_code": r.status_code,
        "headers": dict(r.headers),
        "data": r.text,
    }
