"""
Shared Data Contract Models
===========================
Per-object metadata shared by the ingest path and the offload core.

Models:
    - ContentObject: Unique content, keyed by its SHA-256 hash, with its storage location
    - FileReference: Logical file as known to the application (references ContentObject)
"""

from django.db import models
import uuid


class ObjectLocation(models.IntegerChoices):
    """Where the bytes of a ContentObject currently live."""
    LOCAL_ONLY = 0, 'Local only'
    DUPLICATED = 1, 'Duplicated'
    REMOTE_ONLY = 2, 'Remote only'


class ContentObject(models.Model):
    """
    Represents unique physical content.
    Primary key is the SHA-256 hash of the content.
    Multiple FileReference records can point at the same ContentObject.
    """
    hash = models.CharField(
        max_length=64,
        primary_key=True,
        help_text="SHA-256 hash of the content"
    )
    size = models.BigIntegerField(
        help_text="Content size in bytes"
    )
    location = models.SmallIntegerField(
        choices=ObjectLocation.choices,
        default=ObjectLocation.LOCAL_ONLY,
        help_text="Stores currently holding verified bytes"
    )
    checksum = models.CharField(
        max_length=32,
        null=True,
        blank=True,
        help_text="MD5 of the content, recorded once the bytes were confirmed readable"
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When this content was first observed locally"
    )

    class Meta:
        verbose_name = "Content Object"
        verbose_name_plural = "Content Objects"
        indexes = [
            models.Index(fields=['location', 'size'], name='contentobject_loc_size_idx'),
            models.Index(fields=['created_at'], name='contentobject_created_idx'),
        ]

    def __str__(self):
        return f"{self.hash[:12]}... ({self.size} bytes, {self.get_location_display()})"


class FileReference(models.Model):
    """
    Represents a logical file known to the application.
    Several references may share one ContentObject (deduplication).
    """
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    original_filename = models.CharField(
        max_length=255,
        help_text="Original filename as uploaded by user"
    )
    file_type = models.CharField(
        max_length=100,
        help_text="MIME type of the file"
    )
    uploaded_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When this file was uploaded"
    )
    content = models.ForeignKey(
        ContentObject,
        on_delete=models.PROTECT,
        related_name='references',
        help_text="Reference to the actual content"
    )

    class Meta:
        ordering = ['-uploaded_at']
        verbose_name = "File Reference"
        verbose_name_plural = "File References"
        indexes = [
            models.Index(fields=['uploaded_at'], name='filereference_uploaded_idx'),
        ]

    def __str__(self):
        return self.original_filename

    @property
    def size(self):
        """Size accessed via content reference."""
        return self.content.size
