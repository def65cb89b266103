"""Session module - the streaming chat session controller."""

from .controller import Composer, Session, SessionController, SessionState
from .transforms import append_exchange, make_title, remove_messages, replace_message_text

__all__ = [
    'Composer', 'Session', 'SessionController', 'SessionState',
    'append_exchange', 'make_title', 'remove_messages', 'replace_message_text',
]
