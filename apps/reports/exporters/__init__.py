"""
Report Exporters

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
