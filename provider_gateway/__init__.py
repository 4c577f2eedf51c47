"""
Provider Gateway - Resilience Layer for Financial Provider Integrations

A FastAPI-based service that guards calls to banking aggregators, crypto
exchanges and blockchain endpoints with per-(provider, region) circuit
breakers and deadline enforcement, and authenticates and de-duplicates
inbound provider webhooks.
"""

__version__ = "0.1.0"
