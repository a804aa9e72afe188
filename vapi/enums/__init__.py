from .monitoring import SpanAttr

__all__ = ["SpanAttr"]
