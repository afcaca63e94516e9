"""API helper utilities."""
from api.helpers.errors import prompt_http_error
from api.helpers.query_params import optional_int_param, optional_visibility_param

__all__ = [
    "optional_int_param",
    "optional_visibility_param",
    "prompt_http_error",
]
