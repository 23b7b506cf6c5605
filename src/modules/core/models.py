"""Abstract models and the order event outbox.

- ``BaseModel``: UUIDv7 primary key with created/updated timestamps.
- ``SoftDeleteModel``: rows are hidden through ``deleted_at`` instead of
  being removed, so order lines and analytics keep pointing at them.
- ``OutboxEvent``: one row per domain event, written in the transaction
  that produced it.
"""

from __future__ import annotations

import uuid6
from django.db import models
from django.utils import timezone


class BaseModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid6.uuid7, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        # auto_now is skipped unless the field is listed explicitly.
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = [*update_fields, "updated_at"]
        super().save(*args, **kwargs)


class SoftDeleteQuerySet(models.QuerySet):
    def alive(self) -> SoftDeleteQuerySet:
        return self.filter(deleted_at=None)

    def delete(self) -> tuple[int, dict[str, int]]:
        stamp = timezone.now()
        hidden = self.alive().update(deleted_at=stamp, updated_at=stamp)
        return hidden, {self.model._meta.label: hidden}


class SoftDeleteModel(BaseModel):
    """``objects`` returns every row; call ``.alive()`` to skip deleted ones."""

    deleted_at = models.DateTimeField(null=True, blank=True, default=None, db_index=True)

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        abstract = True

    @property
    def is_deleted(self) -> bool:
        return bool(self.deleted_at)

    def delete(self, using=None, keep_parents=False) -> tuple[int, dict[str, int]]:
        """Stamp ``deleted_at``; related rows are left untouched."""
        if self.is_deleted:
            return 0, {}
        self.deleted_at = timezone.now()
        self.save(update_fields=["deleted_at"])
        return 1, {self._meta.label: 1}


class OutboxEvent(BaseModel):
    """A domain event as recorded at commit time.

    ``payload`` holds the event's fields as JSON; ``topic`` names the
    aggregate family (``orders``) for consumers reading the table.
    """

    event_type = models.CharField(max_length=100)
    aggregate_id = models.CharField(max_length=255)
    topic = models.CharField(max_length=100)
    payload = models.JSONField()
    published_at = models.DateTimeField(null=True, blank=True, default=None)

    class Meta:
        db_table = "outbox_events"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["aggregate_id", "created_at"], name="outbox_aggregate_idx"),
            models.Index(fields=["event_type"], name="outbox_event_type_idx"),
            models.Index(
                fields=["created_at"],
                name="outbox_unpublished_idx",
                condition=models.Q(published_at__isnull=True),
            ),
        ]

    def __str__(self) -> str:
        return f"{self.topic}:{self.event_type} ({self.aggregate_id})"
