"""
Application Layer for the exchange recorder.

This package contains:
- ports/: Abstract interfaces for exchange transports and the demo user store
"""
