"""
Pagination

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from rest_framework.pagination import PageNumberPagination


class CustomPageNumberPagination(PageNumberPagination):
    """
    ``?page=`` with an optional ``?page_size=`` capped at 100.
    """
    page_size = 10
    page_size_query_param = 'page_size'
    max_page_size = 100
