"""
Management command to forward overdue planned tasks.

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import json
import logging

from django.core.management.base import BaseCommand

from apps.tasks.forwarding import TaskForwardingService

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Move Planned tasks whose due day has passed to Pending, due tomorrow'

    def add_arguments(self, parser):
        parser.add_argument(
            '--stats',
            action='store_true',
            help='Only print forwarding statistics'
        )

    def handle(self, *args, **options):
        if options['stats']:
            self.stdout.write(json.dumps(TaskForwardingService.forwarding_stats(), indent=2))
            return

        result = TaskForwardingService.forward_overdue_tasks()

        for error in result.errors:
            self.stdout.write(
                self.style.ERROR(f"Failed to forward task {error['task_id']}: {error['error']}")
            )

        if result.forwarded_count > 0:
            self.stdout.write(
                self.style.SUCCESS(f'Successfully forwarded {result.forwarded_count} task(s)')
            )
        else:
            self.stdout.write('No overdue planned tasks to forward')
