"""Authentication and authorization.

Two principal classes, never interchangeable:
1. Platform admins → username/password → admin JWT (admin secret)
2. End users → login method through an application → user JWT (user secret)

Admin routes sit behind the escalation guard in guard.py.
"""
