"""
Use cases of the business card app.

Routers call these services instead of touching the repository, the auth
backend or the blob store directly.
"""
