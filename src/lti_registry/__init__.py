"""
LTI tool registry.

Stores installed LTI 2 tools within an account/course hierarchy and
resolves which installed message handler serves a tool identity.
"""

__version__ = "0.1.0"
