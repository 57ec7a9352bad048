from collections import OrderedDict

import structlog


def reorder_keys(_, __, event_dict: dict) -> OrderedDict:
    ordered = OrderedDict()
    for key in ("timestamp", "level", "event", "src"):
        if key in event_dict:
            ordered[key] = event_dict.pop(key)
    for key, value in event_dict.items():
        ordered[key] = value
    return ordered


def get_logger(name: str) -> structlog.BoundLogger:
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            reorder_keys,
            structlog.processors.JSONRenderer(),
        ]
    )
    return structlog.get_logger(src=name)
