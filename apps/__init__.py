"""
Apps package - ASGI services built on the shared libraries.

- client_ip_service: Echo service exposing the resolved client IP
"""
