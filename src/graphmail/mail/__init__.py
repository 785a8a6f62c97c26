"""
Mail package: generic model, Graph wire schema, translator, dispatcher and facade.

Keep package import side-effects to a minimum to avoid circular imports.
"""

__all__ = [
    "models",
    "wire",
    "translator",
    "dispatcher",
    "sender",
]
