from .registry import SessionRegistry, session_id_for

__all__ = ["SessionRegistry", "session_id_for"]
