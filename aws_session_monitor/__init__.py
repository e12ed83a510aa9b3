"""AWS Session Monitor - track and renew AWS SSO and role credential sessions."""

__version__ = "1.0.0"
__author__ = "AgentGino"
__email__ = "himakar@qwik.tools"

from .fingerprint import fingerprint
from .credentials import parse_credential
from .matcher import CacheMatcher
from .monitor import SessionMonitor, SessionStatus
from .service import SessionGateway

__all__ = [
    "fingerprint",
    "parse_credential",
    "CacheMatcher",
    "SessionMonitor",
    "SessionStatus",
    "SessionGateway",
]
