from . import auth, health, jobs, uploads

__all__ = ["auth", "health", "jobs", "uploads"]
