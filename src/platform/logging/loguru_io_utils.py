from inspect import FullArgSpec, getfile, getfullargspec, getsourcelines
from os.path import basename
import re
from time import time
from typing import Any, Callable

from src.platform.logging.loguru_io_config import (
    PHONE_KEYWORDS,
    SENSITIVE_KEYWORDS,
    call_depth_var,
    chain_start_time_var,
)


_MAX_CONTENT_LENGTH = 1000

# key='value' / key="value" / key: value pairs inside repr() output
_SENSITIVE_PAIR = re.compile(
    r'(?P<key>\b(?:' + '|'.join(sorted(SENSITIVE_KEYWORDS)) + r')\b[\'"]?\s*[=:]\s*)'
    r'(?P<quote>[\'"]?)(?P<value>[^\'",)\s]+)(?P=quote)'
)
_PHONE_PAIR = re.compile(
    r'(?P<key>\b(?:' + '|'.join(sorted(PHONE_KEYWORDS)) + r')\b[\'"]?\s*[=:]\s*)'
    r'(?P<quote>[\'"]?)(?P<value>\+?\d{7,15})(?P=quote)'
)


def get_chain_start_time() -> float:
    if not (start_time := chain_start_time_var.get()):
        start_time = time()
        chain_start_time_var.set(start_time)
    return start_time


def build_call_target_func_path(func: Callable[..., Any]) -> str:
    try:
        lineno = getsourcelines(func)[1]
    except (OSError, TypeError):
        lineno = 0
    return f'{basename(getfile(getattr(func, "__func__", func)))}::{func.__qualname__}:{lineno}'


def reset_call_depth() -> None:
    layer = call_depth_var.get() - 1
    call_depth_var.set(layer)
    if not layer:
        chain_start_time_var.set(0)


def normalize_args_kwargs(
    func: Callable[..., Any], *args: Any, **kwargs: Any
) -> tuple[tuple[Any, ...], dict[Any, Any]]:
    """Drop arguments the wrapped function would not accept (e.g. injected extras)."""
    if hasattr(func, '__wrapped__'):
        func = func.__wrapped__  # type: ignore
    full_arg_spec: FullArgSpec = getfullargspec(func)
    spec_args: list[str] = full_arg_spec.args

    if not full_arg_spec.varkw:
        kw_list: list[str] = spec_args + full_arg_spec.kwonlyargs
        kwargs = {k: v for k, v in kwargs.items() if k in kw_list}

    if not full_arg_spec.varargs:
        positional_names = [name for name in spec_args if name not in kwargs]
        args = args[: len(positional_names)]

    return args, kwargs


def mask_phone_number(value: str) -> str:
    digits = value.lstrip('+')
    if len(digits) <= 6:
        return '*' * len(value)
    return f'{value[: len(value) - len(digits) + 3]}{"*" * (len(digits) - 6)}{digits[-3:]}'


def mask_sensitive(data: Any) -> Any:
    """Mask secrets and phone numbers that appear inside an object's string form."""
    try:
        text = str(data)
    except Exception:
        return data

    masked = _SENSITIVE_PAIR.sub(
        lambda m: f"{m.group('key')}{m.group('quote')}********{m.group('quote')}", text
    )
    masked = _PHONE_PAIR.sub(
        lambda m: (
            f"{m.group('key')}{m.group('quote')}"
            f"{mask_phone_number(m.group('value'))}{m.group('quote')}"
        ),
        masked,
    )
    return data if masked == text else masked


def should_mask_keyword(keyword: Any, value: Any) -> Any:
    if keyword in SENSITIVE_KEYWORDS:
        return '********'
    if keyword in PHONE_KEYWORDS and isinstance(value, str):
        return mask_phone_number(value)
    return value


def truncate_content(content: Any) -> Any:
    text = content if isinstance(content, str) else str(content)
    if len(text) <= _MAX_CONTENT_LENGTH:
        return content
    return f'{text[:_MAX_CONTENT_LENGTH]}... [truncated {len(text) - _MAX_CONTENT_LENGTH} chars]'
