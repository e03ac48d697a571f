import uuid
from django.db import models
from django.utils import timezone
from django.contrib.auth.models import AbstractUser, UserManager


class Role(models.TextChoices):
    ADMIN   = "ADMIN",   "Admin"
    HR      = "HR",      "HR"
    MANAGER = "MANAGER", "Manager"
    HEAD    = "HEAD",    "Head"
    MD      = "MD",      "Managing Director"
    STAFF   = "STAFF",   "Staff"
    USER    = "USER",    "User"


class LifecycleState(models.TextChoices):
    ACTIVE  = "ACTIVE",  "Active"
    DELETED = "DELETED", "Deleted"


class LifecycleQuerySet(models.QuerySet):
    def alive(self):
        return self.filter(state=LifecycleState.ACTIVE)

    def deleted(self):
        return self.filter(state=LifecycleState.DELETED)


class LifecycleManager(models.Manager.from_queryset(LifecycleQuerySet)):
    """Default manager: hides soft-deleted rows."""

    def get_queryset(self):
        return super().get_queryset().alive()


class AllLifecycleManager(models.Manager.from_queryset(LifecycleQuerySet)):
    """Explicit override used by restore / purge."""


class SoftDeleteModel(models.Model):
    state      = models.CharField(max_length=8, choices=LifecycleState.choices, default=LifecycleState.ACTIVE)
    deleted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        abstract = True

    @property
    def is_deleted(self):
        return self.state == LifecycleState.DELETED

    def soft_delete(self):
        self.state = LifecycleState.DELETED
        self.deleted_at = timezone.now()
        self.save(update_fields=["state", "deleted_at"])

    def restore(self):
        self.state = LifecycleState.ACTIVE
        self.deleted_at = None
        self.save(update_fields=["state", "deleted_at"])


class ActiveUserManager(UserManager):
    def get_queryset(self):
        return super().get_queryset().filter(state=LifecycleState.ACTIVE)


class User(AbstractUser):
    user_id    = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name       = models.CharField(max_length=120, blank=True)
    # nullable so username-only accounts can exist next to email accounts
    email      = models.EmailField(unique=True, null=True, blank=True)
    phone      = models.CharField(max_length=30, blank=True)
    avatar     = models.URLField(blank=True)
    role       = models.CharField(max_length=8, choices=Role.choices, default=Role.USER, blank=True)
    primary_membership = models.ForeignKey(
        "evaluation_app.UserDepartment",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    state      = models.CharField(max_length=8, choices=LifecycleState.choices, default=LifecycleState.ACTIVE)
    deleted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    objects     = ActiveUserManager()
    all_objects = UserManager()

    class Meta:
        default_manager_name = "objects"

    def __str__(self):
        return self.name or self.get_full_name() or self.username

    def save(self, *args, **kwargs):
        # UserManager normalises a missing email to "", which would collide on the unique index
        if not self.email:
            self.email = None
        super().save(*args, **kwargs)

    @property
    def is_deleted(self):
        return self.state == LifecycleState.DELETED

    def soft_delete(self):
        self.state = LifecycleState.DELETED
        self.deleted_at = timezone.now()
        self.is_active = False
        self.save(update_fields=["state", "deleted_at", "is_active", "updated_at"])

    def restore(self):
        self.state = LifecycleState.ACTIVE
        self.deleted_at = None
        self.is_active = True
        self.save(update_fields=["state", "deleted_at", "is_active", "updated_at"])
