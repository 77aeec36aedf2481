from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='AdmittedOrigin',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('registry_address', models.CharField(db_index=True, help_text='Destination registry address (lowercase)', max_length=42)),
                ('origin_tag', models.TextField(help_text='Origin tag in <sourceCollection>/<sourceTokenId> form')),
                ('origin_hash', models.CharField(help_text='SHA-256 digest of the origin tag', max_length=64)),
                ('status', models.CharField(choices=[('reserved', 'Reserved'), ('admitted', 'Admitted')], db_index=True, default='reserved', help_text='Reservation state', max_length=10)),
                ('token_id', models.PositiveBigIntegerField(blank=True, help_text='Token id minted in the destination registry', null=True)),
                ('admitted_by', models.CharField(blank=True, help_text='Actor that imported the token', max_length=42)),
                ('admitted_at', models.DateTimeField(blank=True, help_text='When the admission was committed', null=True)),
            ],
            options={
                'db_table': 'token_import_admitted_origin',
            },
        ),
        migrations.CreateModel(
            name='ImporterStats',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('actor', models.CharField(help_text='Importing actor address (lowercase)', max_length=42, unique=True)),
                ('total_imported', models.PositiveBigIntegerField(default=0)),
                ('total_failed', models.PositiveBigIntegerField(default=0)),
                ('last_import_time', models.DateTimeField(blank=True, help_text='Time of the last successful import', null=True)),
            ],
            options={
                'db_table': 'token_import_importer_stats',
                'verbose_name_plural': 'importer stats',
            },
        ),
        migrations.CreateModel(
            name='EngineState',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('admin_address', models.CharField(blank=True, help_text='Current administrator address (lowercase)', max_length=42)),
                ('balance', models.DecimalField(decimal_places=0, default=0, help_text='Value held by the engine in the smallest unit', max_digits=78)),
            ],
            options={
                'db_table': 'token_import_engine_state',
            },
        ),
        migrations.AddConstraint(
            model_name='admittedorigin',
            constraint=models.UniqueConstraint(fields=('registry_address', 'origin_hash'), name='unique_origin_per_registry'),
        ),
    ]
