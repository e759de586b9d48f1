"""Infrastructure layer: child process spawning and stream draining.

This layer depends on stdlib only.
It must never import from services, output, or cli.
"""
