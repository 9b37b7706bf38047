"""
Core models for SafraReport editorial back office.
Base classes and shared functionality.
"""

from django.conf import settings
from django.db import models
from django.db.models.signals import post_save
from django.dispatch import receiver
from django.utils import timezone


class TimestampedModel(models.Model):
    """
    Abstract base model with timestamp tracking.

    Primary keys stay integer (DEFAULT_AUTO_FIELD) because article ids travel
    through the admin API as positive integers.
    """

    created_at = models.DateTimeField(
        default=timezone.now,
        editable=False,
        db_index=True,
        verbose_name='Created At',
        help_text='Timestamp when record was created'
    )

    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name='Updated At',
        help_text='Timestamp when record was last updated'
    )

    class Meta:
        abstract = True
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.__class__.__name__} ({self.pk})"


class EditorProfile(TimestampedModel):
    """
    Editorial role for a back-office user.
    Linked 1:1 with the Django User model.
    """

    class Role(models.TextChoices):
        AUTHOR = 'author', 'Author'
        EDITOR = 'editor', 'Editor'
        ADMIN = 'admin', 'Administrator'
        SUPER_ADMIN = 'super_admin', 'Super Administrator'

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='editor_profile',
        verbose_name='User',
        help_text='The associated Django user account'
    )

    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.AUTHOR,
        db_index=True,
        verbose_name='Role',
        help_text='Editorial role determining permissions'
    )

    class Meta:
        db_table = 'editor_profiles'
        verbose_name = 'Editor Profile'
        verbose_name_plural = 'Editor Profiles'

    def __str__(self):
        return f"{self.user.username} ({self.role})"

    @property
    def is_reviewer(self):
        """Editors and admins may review and publish."""
        return self.role in (self.Role.EDITOR, self.Role.ADMIN, self.Role.SUPER_ADMIN)

    @property
    def can_override(self):
        """Admins may act on articles they do not own."""
        return self.role in (self.Role.ADMIN, self.Role.SUPER_ADMIN)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_editor_profile(sender, instance, created, **kwargs):
    """Auto-create EditorProfile when a new User is created."""
    if created:
        EditorProfile.objects.create(user=instance)
