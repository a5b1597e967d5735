"""bettlebox-preflight — prepare a WSL2 Ubuntu host for embedded CI work."""

__version__ = "0.1.0"
