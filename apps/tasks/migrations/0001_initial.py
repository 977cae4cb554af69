# Initial schema for tasks, assignees, proofs, attachments and history

import datetime
import uuid

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('jobs', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Task',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('priority', models.CharField(choices=[('High', 'High'), ('Medium', 'Medium'), ('Low', 'Low')], db_index=True, default='Medium', max_length=10)),
                ('status', models.CharField(choices=[('Planned', 'Planned'), ('Not Started', 'Not Started'), ('In Progress', 'In Progress'), ('Paused', 'Paused'), ('Completed', 'Completed'), ('Pending', 'Pending')], db_index=True, default='Not Started', max_length=20)),
                ('completion_type', models.CharField(blank=True, choices=[('with_proof', 'With Proof'), ('without_proof', 'Without Proof')], max_length=20)),
                ('price', models.DecimalField(blank=True, decimal_places=2, help_text='Earnings value of the task', max_digits=10, null=True, validators=[django.core.validators.MinValueValidator(0)])),
                ('due_date', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('start_date', models.DateTimeField(blank=True, null=True)),
                ('end_date', models.DateTimeField(blank=True, null=True)),
                ('estimated_time', models.PositiveIntegerField(blank=True, help_text='Estimated minutes', null=True)),
                ('time_assigning', models.PositiveIntegerField(blank=True, help_text='Minutes allotted; the task auto-completes once this much work time has elapsed', null=True)),
                ('progress_percentage', models.PositiveSmallIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('last_pause_at', models.DateTimeField(blank=True, null=True)),
                ('total_pause_duration', models.DurationField(default=datetime.timedelta(0))),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('actual_time', models.PositiveIntegerField(blank=True, help_text='Worked minutes at completion', null=True)),
                ('location_based', models.BooleanField(default=False)),
                ('required_latitude', models.DecimalField(blank=True, decimal_places=8, max_digits=10, null=True)),
                ('required_longitude', models.DecimalField(blank=True, decimal_places=8, max_digits=11, null=True)),
                ('required_radius_meters', models.PositiveIntegerField(default=100)),
                ('auto_check_in', models.BooleanField(default=False)),
                ('auto_check_out', models.BooleanField(default=False)),
                ('proof_photo_url', models.CharField(blank=True, max_length=500)),
                ('completion_notes', models.TextField(blank=True)),
                ('original_due_date', models.DateTimeField(blank=True, null=True)),
                ('forwarded_at', models.DateTimeField(blank=True, null=True)),
                ('assigned_to', models.ForeignKey(blank=True, help_text='First assignee, kept in step with the assignee set', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='primary_tasks', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='task_created', to=settings.AUTH_USER_MODEL)),
                ('job', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='tasks', to='jobs.job')),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='task_updated', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Task',
                'verbose_name_plural': 'Tasks',
                'db_table': 'tasks',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='TaskAssignee',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('assigned_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('assigned_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assignments_made', to=settings.AUTH_USER_MODEL)),
                ('task', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assignee_links', to='tasks.task')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='task_links', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Task Assignee',
                'verbose_name_plural': 'Task Assignees',
                'db_table': 'task_assignees',
                'ordering': ['assigned_at'],
            },
        ),
        migrations.AddField(
            model_name='task',
            name='assignees',
            field=models.ManyToManyField(blank=True, related_name='assigned_tasks', through='tasks.TaskAssignee', through_fields=('task', 'user'), to=settings.AUTH_USER_MODEL),
        ),
        migrations.AddIndex(
            model_name='task',
            index=models.Index(fields=['assigned_to'], name='idx_tasks_assigned_to'),
        ),
        migrations.AddIndex(
            model_name='task',
            index=models.Index(fields=['status', 'due_date'], name='idx_tasks_status_due_date'),
        ),
        migrations.AddIndex(
            model_name='task',
            index=models.Index(fields=['job'], name='idx_tasks_job_id'),
        ),
        migrations.AddConstraint(
            model_name='taskassignee',
            constraint=models.UniqueConstraint(fields=('task', 'user'), name='uniq_task_assignee'),
        ),
        migrations.AddIndex(
            model_name='taskassignee',
            index=models.Index(fields=['user'], name='idx_task_assignees_user_id'),
        ),
        migrations.CreateModel(
            name='TaskProof',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('image_url', models.CharField(max_length=500)),
                ('description', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('Pending', 'Pending'), ('Approved', 'Approved'), ('Rejected', 'Rejected')], db_index=True, default='Pending', max_length=10)),
                ('reviewed_at', models.DateTimeField(blank=True, null=True)),
                ('rejection_reason', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('reviewed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reviewed_proofs', to=settings.AUTH_USER_MODEL)),
                ('submitted_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='submitted_proofs', to=settings.AUTH_USER_MODEL)),
                ('task', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='proofs', to='tasks.task')),
            ],
            options={
                'verbose_name': 'Task Proof',
                'verbose_name_plural': 'Task Proofs',
                'db_table': 'task_proofs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['task', 'created_at'], name='idx_task_proofs_task_created'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TaskAttachment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('file_name', models.CharField(max_length=255)),
                ('file_size', models.PositiveBigIntegerField()),
                ('mime_type', models.CharField(blank=True, max_length=100)),
                ('file_url', models.CharField(max_length=500)),
                ('storage_path', models.CharField(max_length=500)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('task', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attachments', to='tasks.task')),
                ('uploaded_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='task_attachments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Task Attachment',
                'verbose_name_plural': 'Task Attachments',
                'db_table': 'task_attachments',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='TaskHistory',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('action', models.CharField(choices=[('created', 'Created'), ('updated', 'Updated'), ('status_changed', 'Status Changed'), ('progress_updated', 'Progress Updated'), ('assigned', 'Assigned'), ('proof_submitted', 'Proof Submitted'), ('proof_reviewed', 'Proof Reviewed'), ('reassigned', 'Reassigned'), ('forwarded', 'Forwarded'), ('file_uploaded', 'File Uploaded'), ('checked_in', 'Checked In'), ('checked_out', 'Checked Out')], db_index=True, max_length=50)),
                ('field_name', models.CharField(blank=True, max_length=100)),
                ('old_value', models.TextField(blank=True)),
                ('new_value', models.TextField(blank=True)),
                ('details', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('task', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='history', to='tasks.task')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='task_history', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Task History',
                'verbose_name_plural': 'Task History',
                'db_table': 'task_history',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['task', 'created_at'], name='idx_task_history_task_created'),
                ],
            },
        ),
    ]
