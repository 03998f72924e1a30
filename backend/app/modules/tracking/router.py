"""Time tracking module router aggregation."""
from app.routers import projects, sessions

ROUTERS = [sessions.router, projects.router]
