"""Serve a folder to other devices on the LAN."""
