# Initial schema for jobs and issued materials

import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Job',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('job_number', models.CharField(max_length=20, unique=True)),
                ('category', models.CharField(blank=True, choices=[('DA', 'DA'), ('AL', 'AL'), ('TB', 'TB')], max_length=2)),
                ('customer_name', models.CharField(max_length=255)),
                ('contact_number', models.CharField(blank=True, max_length=50)),
                ('sales_person', models.CharField(blank=True, max_length=255)),
                ('start_date', models.DateField()),
                ('completion_date', models.DateField()),
                ('contractor_name', models.CharField(blank=True, max_length=255)),
                ('description', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('completed', 'Completed'), ('on_hold', 'On Hold'), ('cancelled', 'Cancelled')], default='active', max_length=20)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='job_created', to=settings.AUTH_USER_MODEL)),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='job_updated', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Job',
                'verbose_name_plural': 'Jobs',
                'db_table': 'jobs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='idx_jobs_status'),
                    models.Index(fields=['customer_name'], name='idx_jobs_customer_name'),
                ],
            },
        ),
        migrations.CreateModel(
            name='JobMaterial',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('date', models.DateField()),
                ('description', models.TextField(blank=True)),
                ('quantity', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('rate', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), editable=False, max_digits=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('job', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='materials', to='jobs.job')),
            ],
            options={
                'verbose_name': 'Job Material',
                'verbose_name_plural': 'Job Materials',
                'db_table': 'job_materials',
                'ordering': ['date', 'created_at'],
                'indexes': [
                    models.Index(fields=['job'], name='idx_job_materials_job_id'),
                ],
            },
        ),
    ]
