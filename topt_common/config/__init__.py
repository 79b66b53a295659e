"""Configuration helpers for topt_common."""

from .env import parse_bool_env, parse_int_env, parse_path_env

__all__ = [
    "parse_bool_env",
    "parse_int_env",
    "parse_path_env",
]
