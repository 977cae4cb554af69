# Initial schema for geofences, task locations and location events

import uuid

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


LATITUDE_VALIDATORS = [django.core.validators.MinValueValidator(-90), django.core.validators.MaxValueValidator(90)]
LONGITUDE_VALIDATORS = [django.core.validators.MinValueValidator(-180), django.core.validators.MaxValueValidator(180)]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('tasks', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Geofence',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('center_latitude', models.DecimalField(decimal_places=8, max_digits=10, validators=LATITUDE_VALIDATORS)),
                ('center_longitude', models.DecimalField(decimal_places=8, max_digits=11, validators=LONGITUDE_VALIDATORS)),
                ('radius_meters', models.PositiveIntegerField(default=100, validators=[django.core.validators.MinValueValidator(1)])),
                ('is_active', models.BooleanField(default=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='geofences', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Geofence',
                'verbose_name_plural': 'Geofences',
                'db_table': 'geofences',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['is_active'], name='idx_geofences_active'),
                    models.Index(fields=['created_by'], name='idx_geofences_created_by'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TaskLocation',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('required_latitude', models.DecimalField(blank=True, decimal_places=8, max_digits=10, null=True, validators=LATITUDE_VALIDATORS)),
                ('required_longitude', models.DecimalField(blank=True, decimal_places=8, max_digits=11, null=True, validators=LONGITUDE_VALIDATORS)),
                ('required_radius_meters', models.PositiveIntegerField(default=100)),
                ('arrival_required', models.BooleanField(default=True)),
                ('departure_required', models.BooleanField(default=False)),
                ('location_name', models.CharField(blank=True, max_length=255)),
                ('location_address', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('geofence', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='task_locations', to='locations.geofence')),
                ('task', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='locations', to='tasks.task')),
            ],
            options={
                'verbose_name': 'Task Location',
                'verbose_name_plural': 'Task Locations',
                'db_table': 'task_locations',
                'ordering': ['created_at'],
                'indexes': [
                    models.Index(fields=['task'], name='idx_task_locations_task_id'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TaskLocationEvent',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('event_type', models.CharField(choices=[('check_in', 'Check In'), ('check_out', 'Check Out'), ('arrival', 'Arrival'), ('departure', 'Departure'), ('boundary_violation', 'Boundary Violation')], max_length=20)),
                ('latitude', models.DecimalField(decimal_places=8, max_digits=10, validators=LATITUDE_VALIDATORS)),
                ('longitude', models.DecimalField(decimal_places=8, max_digits=11, validators=LONGITUDE_VALIDATORS)),
                ('distance_meters', models.FloatField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('geofence', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='events', to='locations.geofence')),
                ('task', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='location_events', to='tasks.task')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='location_events', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Task Location Event',
                'verbose_name_plural': 'Task Location Events',
                'db_table': 'task_location_events',
                'ordering': ['timestamp'],
                'indexes': [
                    models.Index(fields=['task', 'timestamp'], name='idx_location_events_task'),
                    models.Index(fields=['user', 'timestamp'], name='idx_location_events_user'),
                ],
            },
        ),
    ]
