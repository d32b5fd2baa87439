"""Infrastructure layer - sessions, Ozone and chat clients, file stores, observability."""

from autolabel.infra.chat import ChatGateway
from autolabel.infra.observability import configure_observability, instrument_app
from autolabel.infra.ozone import OzoneClient
from autolabel.infra.session import AtpSession, SessionState
from autolabel.infra.store import CursorStore, PersistedSet

__all__ = [
    "AtpSession",
    "ChatGateway",
    "CursorStore",
    "OzoneClient",
    "PersistedSet",
    "SessionState",
    "configure_observability",
    "instrument_app",
]
