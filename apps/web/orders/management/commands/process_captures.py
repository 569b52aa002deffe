"""
Run due payment captures and submit the orders to their POS.

Usage:
    python apps/web/manage.py process_captures
    python apps/web/manage.py process_captures --once
    python apps/web/manage.py process_captures --interval 2 --limit 100
"""

import logging
import time
from typing import Any

from django.core.management.base import BaseCommand

from apps.web.orders.services import process_due_captures

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Capture authorized payments whose capture window has closed"

    def add_arguments(self, parser: Any) -> None:
        parser.add_argument(
            "--once",
            action="store_true",
            help="Process once and exit (default: poll every 5s)",
        )
        parser.add_argument(
            "--interval",
            type=int,
            default=5,
            help="Polling interval in seconds (default: 5)",
        )
        parser.add_argument(
            "--limit",
            type=int,
            default=50,
            help="Maximum captures per batch (default: 50)",
        )

    def handle(self, *_args: Any, **options: Any) -> None:
        once = options["once"]
        interval = options["interval"]
        limit = options["limit"]

        self.stdout.write("Starting capture worker...")

        while True:
            counts = process_due_captures(limit=limit)

            if any(counts.values()):
                self.stdout.write(
                    f"Captured {counts['captured']}, skipped {counts['skipped']}, "
                    f"failed {counts['failed']}, {counts['errors']} errors"
                )

            if once:
                break

            time.sleep(interval)
