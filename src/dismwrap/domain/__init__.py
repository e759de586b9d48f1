"""Domain layer: argument classification, command-line building, output rewriting.

This layer depends only on stdlib and the frozen config models.
It must never import from services, infrastructure, output, or cli.
"""
