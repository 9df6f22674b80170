from borderpass.relay.hub import SessionRelay
from borderpass.relay.protocol import MessageType, ProtocolError, RelayMessage, parse_client_message
from borderpass.relay.roster import Participant, SessionRoster

__all__ = [
    "MessageType",
    "Participant",
    "ProtocolError",
    "RelayMessage",
    "SessionRelay",
    "SessionRoster",
    "parse_client_message",
]
