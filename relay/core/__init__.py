"""Core domain types and helpers."""

from .config import Config, ConfigError, RunEnvironment, load_config, load_environment
from .errors import ErrorCode
from .result import Err, Ok, Result

__all__ = [
    # config
    "Config",
    "ConfigError",
    "RunEnvironment",
    "load_config",
    "load_environment",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
]
