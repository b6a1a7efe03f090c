from .authority import NumberingAuthority, validate_format

__all__ = ["NumberingAuthority", "validate_format"]
