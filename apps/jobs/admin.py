"""
Jobs Admin Configuration

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from django.contrib import admin
from .models import Job, JobMaterial


class JobMaterialInline(admin.TabularInline):
    model = JobMaterial
    extra = 0
    readonly_fields = ['amount']


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ['job_number', 'customer_name', 'sales_person', 'status', 'start_date', 'completion_date']
    list_filter = ['status', 'category', 'start_date']
    search_fields = ['job_number', 'customer_name', 'sales_person', 'contractor_name']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [JobMaterialInline]
