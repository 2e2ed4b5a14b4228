"""Service layer — compilation pipeline, bindings, and row views.

Services may import from domain and infrastructure layers.
They must never import from commands or output.
"""
