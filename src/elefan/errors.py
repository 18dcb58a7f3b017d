"""
Error types for the ELEFAN core.
"""


class ElefanError(Exception):
    """Base error for all elefan failures."""


class InvalidParameter(ElefanError, ValueError):
    """잘못된 설정값 (짝수 MA, Linf/K <= 0, low > up 등). 계산 전에 즉시 실패."""
