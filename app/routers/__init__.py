from app.routers import analytics, reports

__all__ = [
    "analytics",
    "reports",
]
