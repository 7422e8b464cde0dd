from __future__ import annotations

import socket


def local_ip() -> str:
    """Best guess at this host's LAN address, ``localhost`` when offline."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        # UDP connect sends nothing; it only selects the outbound interface
        sock.connect(("192.0.2.1", 80))
        address = sock.getsockname()[0]
    except OSError:
        return "localhost"
    finally:
        sock.close()
    if not address or address.startswith("127."):
        return "localhost"
    return address


__all__ = ["local_ip"]
