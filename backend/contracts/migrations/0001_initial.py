# Generated migration for shared data contract

from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='ContentObject',
            fields=[
                ('hash', models.CharField(
                    help_text='SHA-256 hash of the content',
                    max_length=64,
                    primary_key=True,
                    serialize=False
                )),
                ('size', models.BigIntegerField(
                    help_text='Content size in bytes'
                )),
                ('location', models.SmallIntegerField(
                    choices=[(0, 'Local only'), (1, 'Duplicated'), (2, 'Remote only')],
                    default=0,
                    help_text='Stores currently holding verified bytes'
                )),
                ('checksum', models.CharField(
                    blank=True,
                    help_text='MD5 of the content, recorded once the bytes were confirmed readable',
                    max_length=32,
                    null=True
                )),
                ('created_at', models.DateTimeField(
                    auto_now_add=True,
                    help_text='When this content was first observed locally'
                )),
            ],
            options={
                'verbose_name': 'Content Object',
                'verbose_name_plural': 'Content Objects',
            },
        ),
        migrations.CreateModel(
            name='FileReference',
            fields=[
                ('id', models.UUIDField(
                    default=uuid.uuid4,
                    editable=False,
                    primary_key=True,
                    serialize=False
                )),
                ('original_filename', models.CharField(
                    help_text='Original filename as uploaded by user',
                    max_length=255
                )),
                ('file_type', models.CharField(
                    help_text='MIME type of the file',
                    max_length=100
                )),
                ('uploaded_at', models.DateTimeField(
                    auto_now_add=True,
                    help_text='When this file was uploaded'
                )),
                ('content', models.ForeignKey(
                    help_text='Reference to the actual content',
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='references',
                    to='contracts.contentobject'
                )),
            ],
            options={
                'verbose_name': 'File Reference',
                'verbose_name_plural': 'File References',
                'ordering': ['-uploaded_at'],
            },
        ),
        migrations.AddIndex(
            model_name='contentobject',
            index=models.Index(fields=['location', 'size'], name='contentobject_loc_size_idx'),
        ),
        migrations.AddIndex(
            model_name='contentobject',
            index=models.Index(fields=['created_at'], name='contentobject_created_idx'),
        ),
        migrations.AddIndex(
            model_name='filereference',
            index=models.Index(fields=['uploaded_at'], name='filereference_uploaded_idx'),
        ),
    ]
