"""
Order Service Clients Module

HTTP clients for external providers
"""

from .email_client import ResendEmailClient

__all__ = [
    "ResendEmailClient",
]
