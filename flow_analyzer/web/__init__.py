"""Response builders for the web API."""

from .result_builder import create_meta, prepare_analytics, prepare_error, prepare_response

__all__ = ["create_meta", "prepare_analytics", "prepare_error", "prepare_response"]
