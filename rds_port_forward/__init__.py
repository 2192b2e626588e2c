"""Resolve ECS targets and DB forwarding parameters for SSM port forwarding."""

__version__ = "0.1.0"
