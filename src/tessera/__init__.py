"""Tessera — multi-tenant identity and credential backend.

Organizations own projects, projects own applications (OAuth-style
clients), and end users register through an application into a
project-scoped account. Platform admins and end users authenticate
with separate, independently signed bearer tokens.
"""

__version__ = "0.1.0"
