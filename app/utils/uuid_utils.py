"""
Identifier helpers: entity ids and interview session tokens.
"""
import secrets
import time
import uuid


def new_id() -> str:
    """Generate a new opaque entity identifier."""
    return str(uuid.uuid4())


def generate_session_token(prefix: str = "session") -> str:
    """Generate a globally unique session token.

    Format is ``{prefix}_{epoch_ms}_{32 hex chars}``. The random part comes from
    ``secrets`` so tokens are unguessable and need no shared counter.
    """
    timestamp = int(time.time() * 1000)
    return f"{prefix}_{timestamp}_{secrets.token_hex(16)}"
