"""
Model mixins providing reusable functionality for Django models.

Available Mixins:
    UUIDPrimaryKeyMixin: Use UUID as primary key
    OptimisticVersionMixin: Version counter bumped atomically on every update

Usage:
    from core.models import BaseModel
    from core.model_mixins import OptimisticVersionMixin, UUIDPrimaryKeyMixin

    class Purchase(UUIDPrimaryKeyMixin, OptimisticVersionMixin, BaseModel):
        amount_cents = models.PositiveBigIntegerField()

Note:
    - Always list mixins before BaseModel in inheritance
    - Mixins are abstract and don't create database tables
"""

from __future__ import annotations

import uuid

from django.db import models
from django.db.models import F


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use UUID as primary key instead of auto-increment integer.

    Purchase and entitlement ids appear in checkout and watch URLs, so
    they must not reveal record counts or be guessable.

    Fields:
        id: UUIDField as primary key (auto-generated)
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True


class OptimisticVersionMixin(models.Model):
    """
    Optimistic locking counter.

    Every update (not force_insert) writes ``version = version + 1`` as a
    database expression, so two writers that loaded the same row both land
    their increment and the stored value reflects the number of writes.

    Fields:
        version: Incremented on each save after the first

    Note:
        Models with a protected FSMField cannot use refresh_from_db() for
        the state column; only ``version`` is reloaded here.
    """

    version = models.PositiveIntegerField(
        default=1,
        help_text="Optimistic locking version, incremented on each update",
    )

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        """Save with version auto-increment for optimistic locking."""
        is_update = not self._state.adding and not kwargs.get("force_insert", False)
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])
