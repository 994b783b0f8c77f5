"""Magnetic fields and field-line tracing."""
