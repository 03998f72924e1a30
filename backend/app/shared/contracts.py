"""Backend-side API contract constants.

Keep externally visible prefixes centralized for drift control.
"""

API_PREFIXES = {
    "sessions": "/api/sessions",
    "projects": "/api/projects",
}
