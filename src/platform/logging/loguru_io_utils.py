from inspect import getfile
from os.path import basename
from time import time
from typing import Any, Callable

from src.platform.logging.loguru_io_config import (
    MAX_CONTENT_LENGTH,
    SENSITIVE_KEYWORDS,
    call_depth_var,
    chain_start_time_var,
)


def get_chain_start_time() -> float:
    if not (start_time := chain_start_time_var.get()):
        start_time = time()
        chain_start_time_var.set(start_time)
    return start_time


def enter_call() -> None:
    call_depth_var.set(call_depth_var.get() + 1)


def exit_call() -> None:
    depth = call_depth_var.get() - 1
    call_depth_var.set(depth)
    if depth <= 0:
        chain_start_time_var.set(0)


def build_call_target_func_path(func: Callable[..., Any]) -> str:
    target = getattr(func, '__func__', func)
    try:
        filename = basename(getfile(target))
    except TypeError:
        filename = '<builtin>'
    return f'{filename}::{func.__qualname__}'


def mask_sensitive(data: Any) -> Any:
    if isinstance(data, dict):
        return {
            key: '********' if key in SENSITIVE_KEYWORDS else mask_sensitive(value)
            for key, value in data.items()
        }
    if isinstance(data, list | tuple):
        return type(data)(mask_sensitive(item) for item in data)
    return data


def truncate_content(data: Any, limit: int = MAX_CONTENT_LENGTH) -> str:
    text = repr(data)
    if len(text) <= limit:
        return text
    return f'{text[:limit]}...(+{len(text) - limit} chars)'
