"""
Entra Identity Blog Toolchain
=============================
Markdown posts about Azure identity management, plus the one-shot
automation examples those posts walk through (PIM activation, group
membership, Azure RBAC assignment) as runnable commands.

Automations stop on the first error. Nothing is retried.
"""

__version__ = "1.0.0"
__author__ = "Entra Identity Blog"
