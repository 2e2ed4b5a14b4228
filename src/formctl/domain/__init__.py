"""Domain layer — control definitions, expressions, model nodes, hierarchies.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
