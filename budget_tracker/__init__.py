"""Family Budget Tracker package."""

__all__ = [
    "actions",
    "ai_service",
    "analytics",
    "categorizer",
    "cli",
    "config",
    "data_loader",
    "db",
    "errors",
    "log",
    "models",
    "reports",
    "schemas",
    "settings",
    "webapp",
]

__version__ = "0.1.0"
