"""Core domain package for clubhub.

Core contains scopes, reconciliation, snapshot loading and subscription
logic without any HTTP, websocket or UI-specific code, keeping the live
collection behavior portable and testable with fakes.
"""
