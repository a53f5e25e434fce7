"""Convenience entry point for running the media Celery worker.

Production deployments usually run ``celery -A infrastructure.tasks worker -B``;
this script covers local runs and Procfile-style launchers.
"""
from __future__ import annotations

from core.logging_config import configure_logging

from .config.celery import celery_app


def main() -> None:
    configure_logging()
    celery_app.worker_main(
        argv=[
            "worker",
            "--beat",
            "--hostname=media-worker@%h",
            "--queues=high,default,low",
            "--loglevel=INFO",
        ]
    )


if __name__ == "__main__":
    main()
