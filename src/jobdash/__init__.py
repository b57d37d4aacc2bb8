"""jobdash: terminal monitor and controller for a remote job-queue service."""

__version__ = "0.1.0"
