from __future__ import annotations

from carekit_bg_worker.celery_app import celery_app
from carekit_bg_worker import export_worker  # noqa: F401  registers tasks


def main() -> None:
    # solo pool: prefork is unreliable on Windows hosts.
    argv = ["worker", "--loglevel=info", "-P", "solo"]
    celery_app.worker_main(argv)


if __name__ == "__main__":
    main()
