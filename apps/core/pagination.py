# apps/core/pagination.py
from rest_framework.pagination import PageNumberPagination


class StaticPagination(PageNumberPagination):
    page_size = 10  # Default page size
    page_size_query_param = 'page_size'  # Allows client to override via `?page_size=xxx`
    max_page_size = 100  # Maximum limit for page_size
    page_query_param = 'page'
