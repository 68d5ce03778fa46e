from flask import request


def client_ip() -> str:
    """
    Source address of the current request. X-Forwarded-For is only honoured
    through ProxyFix, which create_app installs when PROXY_FIX_X_FOR > 0.
    """
    return request.remote_addr or "unknown"
