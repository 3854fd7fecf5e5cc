"""Adapters binding the core to the hosted backend and to output sinks."""
