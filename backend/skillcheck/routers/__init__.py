from skillcheck.routers import admin, assessments, health

__all__ = [
    "admin",
    "assessments",
    "health",
]
