from .dsn import Dsn
from .http_transport import HttpTransport, sentry_payload

__all__ = ["Dsn", "HttpTransport", "sentry_payload"]
