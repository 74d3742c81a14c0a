"""API module for Linkage.

API layer:
- Exposes attach/detach/list as custom actions on each resource
- Resolves request-scoped repositories, frames results and errors
- Forbidden: relation semantics (linkage.core owns those)
"""
