from .manager import SessionManager

__all__ = ["SessionManager"]
