import socket

LOOPBACK = "127.0.0.1"


def get_local_ip():
    """Return the IPv4 address other LAN devices can reach us on.

    Connecting a UDP socket sends no packets; it only makes the OS pick the
    outgoing interface. Falls back to loopback when there is no route.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(("10.255.255.255", 1))
        address = sock.getsockname()[0]
    except OSError:
        return LOOPBACK
    finally:
        sock.close()
    if address.startswith("127.") or address == "0.0.0.0":
        return LOOPBACK
    return address
