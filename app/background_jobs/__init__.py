"""Background jobs: in-process subscription scheduler and Celery tasks."""
