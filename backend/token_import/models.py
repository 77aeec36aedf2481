"""
Persistence models for the token import engine.

These models back DatabaseDedupRegistry: admitted origin tags per
destination registry, per-actor import statistics, and the singleton
engine state holding the administrator and the value balance.
"""

from django.db import models


class TimestampedModel(models.Model):
    """Abstract base model with timestamp fields."""

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when the record was created"
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when the record was last updated"
    )

    class Meta:
        abstract = True


class AdmittedOrigin(TimestampedModel):
    """
    An origin tag reserved or admitted for one destination registry.

    A row in 'reserved' status exists only while its import is in flight;
    it is either promoted to 'admitted' or deleted.
    """

    STATUS_RESERVED = 'reserved'
    STATUS_ADMITTED = 'admitted'

    STATUS_CHOICES = [
        (STATUS_RESERVED, 'Reserved'),
        (STATUS_ADMITTED, 'Admitted'),
    ]

    registry_address = models.CharField(
        max_length=42,
        db_index=True,
        help_text="Destination registry address (lowercase)"
    )

    origin_tag = models.TextField(
        help_text="Origin tag in <sourceCollection>/<sourceTokenId> form"
    )

    origin_hash = models.CharField(
        max_length=64,
        help_text="SHA-256 digest of the origin tag"
    )

    status = models.CharField(
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_RESERVED,
        db_index=True,
        help_text="Reservation state"
    )

    token_id = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Token id minted in the destination registry"
    )

    admitted_by = models.CharField(
        max_length=42,
        blank=True,
        help_text="Actor that imported the token"
    )

    admitted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the admission was committed"
    )

    class Meta:
        db_table = 'token_import_admitted_origin'
        constraints = [
            models.UniqueConstraint(
                fields=['registry_address', 'origin_hash'],
                name='unique_origin_per_registry'
            ),
        ]

    def __str__(self):
        return f"{self.origin_tag} -> {self.registry_address} ({self.status})"


class ImporterStats(TimestampedModel):
    """Per-actor import counters. Counters only ever increase."""

    actor = models.CharField(
        max_length=42,
        unique=True,
        help_text="Importing actor address (lowercase)"
    )

    total_imported = models.PositiveBigIntegerField(default=0)

    total_failed = models.PositiveBigIntegerField(default=0)

    last_import_time = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Time of the last successful import"
    )

    class Meta:
        db_table = 'token_import_importer_stats'
        verbose_name_plural = 'importer stats'

    def __str__(self):
        return f"{self.actor}: {self.total_imported} imported, {self.total_failed} failed"


class EngineState(TimestampedModel):
    """Singleton row holding the administrator and the engine value balance."""

    SINGLETON_ID = 1

    admin_address = models.CharField(
        max_length=42,
        blank=True,
        help_text="Current administrator address (lowercase)"
    )

    balance = models.DecimalField(
        max_digits=78,
        decimal_places=0,
        default=0,
        help_text="Value held by the engine in the smallest unit"
    )

    class Meta:
        db_table = 'token_import_engine_state'

    def __str__(self):
        return f"EngineState(admin={self.admin_address}, balance={self.balance})"
