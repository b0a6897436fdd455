from django.db import models


class LifecycleState(models.TextChoices):
    ACTIVE = 'active', 'Active'
    INACTIVE = 'inactive', 'Inactive'
    DELETED = 'deleted', 'Deleted'


class LifecycleQuerySet(models.QuerySet):
    def alive(self):
        """Everything that has not been deleted"""
        return self.exclude(lifecycle_state=LifecycleState.DELETED)

    def active(self):
        return self.filter(lifecycle_state=LifecycleState.ACTIVE)


class LifecycleModel(models.Model):
    """
    Abstract base for entities that are soft-deleted.

    One enum replaces the is_active / is_deleted flag pairs: deleted rows stay
    in the table (orders and batches keep pointing at them) but drop out of
    every listing.
    """
    lifecycle_state = models.CharField(
        max_length=10,
        choices=LifecycleState.choices,
        default=LifecycleState.ACTIVE,
        db_index=True,
    )

    objects = LifecycleQuerySet.as_manager()

    class Meta:
        abstract = True

    @property
    def is_deleted(self):
        return self.lifecycle_state == LifecycleState.DELETED

    def soft_delete(self):
        self.lifecycle_state = LifecycleState.DELETED
        self.save(update_fields=['lifecycle_state'])

    def set_lifecycle(self, value):
        """Apply a client supplied state; raises ValueError on anything unknown"""
        if value not in LifecycleState.values:
            raise ValueError(f"Invalid lifecycle state '{value}'")
        self.lifecycle_state = value
