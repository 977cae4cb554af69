"""
Report Generators

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from .base import BaseReportGenerator

# Import all generator modules to register them
from . import earnings_reports
from . import attendance_reports

__all__ = ['BaseReportGenerator']
