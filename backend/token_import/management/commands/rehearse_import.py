"""
Django management command to rehearse a token import batch.

The batch runs against in-process registries so input errors, in-batch
duplicates and parent ordering problems show up before anything is sent to
the real destination registry.
"""

import asyncio
import json

from django.core.management.base import BaseCommand, CommandError

from token_import.clients import LocalAccountRegistry, LocalDestinationRegistry
from token_import.config import get_import_config
from token_import.exceptions import ImportErrorCode, TokenImportError
from token_import.migration.db_registry import DatabaseDedupRegistry
from token_import.migration.dedup_registry import InMemoryDedupRegistry
from token_import.migration.records import ImportRecord, ImportResult
from token_import.services import TokenImportService


class Command(BaseCommand):
    help = 'Rehearse a token import batch from a JSON file of records'

    def add_arguments(self, parser):
        parser.add_argument(
            'records_file',
            type=str,
            help='JSON file containing a list of import records',
        )
        parser.add_argument(
            '--registry',
            type=str,
            required=True,
            help='Destination registry address the batch is meant for',
        )
        parser.add_argument(
            '--actor',
            type=str,
            required=True,
            help='Address of the importing actor',
        )
        parser.add_argument(
            '--check-admitted',
            action='store_true',
            help='Also flag origin tags already admitted in the database for this registry',
        )
        parser.add_argument(
            '--output',
            type=str,
            help='Save the rehearsal report to the specified file',
        )

    def handle(self, *args, **options):
        records = self._load_records(options['records_file'])

        self.stdout.write(
            self.style.SUCCESS(f'Rehearsing import of {len(records)} records...')
        )

        try:
            report = asyncio.run(self._rehearse(
                records, options['registry'], options['actor'], options['check_admitted']
            ))
        except TokenImportError as e:
            raise CommandError(f"Rehearsal failed: {e.reason}")

        self.stdout.write(self.style.SUCCESS('\n=== Rehearsal Results ==='))
        self.stdout.write(f"Batch: {report['batch_id']}")
        self.stdout.write(f"Successful: {report['successful_items']}")
        self.stdout.write(f"Failed: {report['failed_items']}")

        for result in report['results']:
            if not result['success']:
                self.stdout.write(
                    self.style.WARNING(
                        f"  {result['origin_tag']}: [{result['error_code']}] {result['reason']}"
                    )
                )

        if options['output']:
            with open(options['output'], 'w') as f:
                json.dump(report, f, indent=2)
            self.stdout.write(f"Report saved to {options['output']}")

        if report['failed_items']:
            self.stdout.write(self.style.ERROR('\nSome records would fail to import'))
        else:
            self.stdout.write(self.style.SUCCESS('\nAll records would import'))

    def _load_records(self, path):
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise CommandError(f"Cannot read records file {path}: {e}")

        if not isinstance(data, list):
            raise CommandError("Records file must contain a JSON list")

        records = []
        for position, item in enumerate(data):
            if not isinstance(item, dict):
                raise CommandError(f"Import record {position} must be a JSON object")
            try:
                records.append(ImportRecord.from_dict(item))
            except (TypeError, ValueError) as e:
                raise CommandError(f"Malformed import record {position}: {e}")
        return records

    async def _rehearse(self, records, registry_address, actor, check_admitted):
        config = get_import_config()
        service = TokenImportService(
            LocalDestinationRegistry(registry_address),
            InMemoryDedupRegistry(),
            account_registry=LocalAccountRegistry(config['nested_account']['registry']),
            config=config
        )
        report = (await service.import_batch(records, actor)).to_dict()

        if check_admitted:
            database = DatabaseDedupRegistry()
            for position, record in enumerate(records):
                if await database.is_admitted(registry_address, record.origin_tag):
                    report['results'][position] = ImportResult.failed(
                        record.origin_tag,
                        f"Token already imported: {record.origin_tag}",
                        ImportErrorCode.ALREADY_IMPORTED
                    ).to_dict()
            report['failed_items'] = sum(1 for r in report['results'] if not r['success'])
            report['successful_items'] = len(report['results']) - report['failed_items']

        return report
