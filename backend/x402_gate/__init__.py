"""
x402 payment gate for tiered content.

Exports middleware installer via x402_gate.middleware.install_payment_gate.
"""

from .middleware import install_payment_gate  # noqa: F401
