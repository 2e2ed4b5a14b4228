"""Infrastructure layer — document loading and domain-data sources.

This layer depends on stdlib, ruamel.yaml and the domain layer.
It must never import from services, commands, or output.
"""
