"""Service layer: invocation planning and execution returning ServiceResult.

Services may import from domain, config and infrastructure layers.
They must never import from cli or output.
"""
