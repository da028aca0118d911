# apps/core/tests.py
"""
Core app tests - Testing permissions, error rendering and pagination
"""
import os
from unittest import mock

from django.test import TestCase
from django.contrib.auth import get_user_model
from django.http import Http404
from rest_framework import serializers, status
from rest_framework.exceptions import NotAuthenticated, PermissionDenied
from rest_framework.test import APITestCase, APIClient

from apps.core.exceptions import (
    ConcurrentModificationError,
    DomainError,
    InvalidArgumentError,
    InvalidReferenceError,
    InvalidStateError,
    MissingRequiredFieldError,
    NotFoundError,
    OutOfRangeError,
    custom_exception_handler,
)

User = get_user_model()


class BaseTestCase(APITestCase):
    """Base test case with common setup for all tests"""

    def setUp(self):
        """Set up test users and authentication"""
        self.superuser = User.objects.create_superuser(
            username='admin',
            email='admin@test.com',
            password='testpass123'
        )

        self.admin = User.objects.create_user(
            username='admin_user',
            email='admin@example.com',
            password='testpass123',
            role=User.ROLE_ADMIN
        )

        self.assistant = User.objects.create_user(
            username='assistant_user',
            email='assistant@example.com',
            password='testpass123',
            role=User.ROLE_ASSISTANT
        )

        self.client_login = User.objects.create_user(
            username='client_user',
            email='client@example.com',
            password='testpass123',
            role=User.ROLE_CLIENT
        )

        self.client = APIClient()

    def authenticate(self, user):
        """Helper to authenticate as a specific user"""
        self.client.force_authenticate(user=user)


class MockRequest:
    def __init__(self, user):
        self.user = user


class PermissionTests(BaseTestCase):
    """Test custom permission classes"""

    def test_is_admin_permission(self):
        from apps.core.permissions import IsAdmin

        permission = IsAdmin()

        self.assertTrue(permission.has_permission(MockRequest(self.superuser), None))
        self.assertTrue(permission.has_permission(MockRequest(self.admin), None))
        self.assertFalse(permission.has_permission(MockRequest(self.assistant), None))
        self.assertFalse(permission.has_permission(MockRequest(self.client_login), None))

    def test_is_admin_or_assistant_permission(self):
        from apps.core.permissions import IsAdminOrAssistant

        permission = IsAdminOrAssistant()

        self.assertTrue(permission.has_permission(MockRequest(self.admin), None))
        self.assertTrue(permission.has_permission(MockRequest(self.assistant), None))
        self.assertFalse(permission.has_permission(MockRequest(self.client_login), None))

    def test_anonymous_user_is_refused(self):
        from django.contrib.auth.models import AnonymousUser
        from apps.core.permissions import IsAdminOrAssistant

        permission = IsAdminOrAssistant()
        self.assertFalse(permission.has_permission(MockRequest(AnonymousUser()), None))


class ExceptionTests(TestCase):
    """Test the domain error taxonomy"""

    def test_every_kind_has_a_distinct_code(self):
        kinds = [
            NotFoundError,
            InvalidReferenceError,
            InvalidArgumentError,
            OutOfRangeError,
            InvalidStateError,
            MissingRequiredFieldError,
            ConcurrentModificationError,
        ]
        codes = {kind.default_code for kind in kinds}

        self.assertEqual(len(codes), len(kinds))
        for kind in kinds:
            self.assertTrue(issubclass(kind, DomainError))

    def test_status_codes(self):
        self.assertEqual(NotFoundError().status_code, 404)
        self.assertEqual(InvalidStateError().status_code, 409)
        self.assertEqual(ConcurrentModificationError().status_code, 409)
        self.assertEqual(OutOfRangeError().status_code, 400)
        self.assertEqual(InvalidArgumentError().status_code, 400)

    def test_message_defaults_and_override(self):
        self.assertEqual(str(OutOfRangeError()), 'Índice de pagamento fora dos limites.')
        self.assertEqual(str(InvalidStateError("Cliente já está ativo.")), 'Cliente já está ativo.')


class ExceptionHandlerTests(TestCase):
    """Every error is rendered as {message, code}"""

    def test_domain_error(self):
        response = custom_exception_handler(NotFoundError("Cliente não encontrado"), {})

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'message': 'Cliente não encontrado', 'code': 'not_found'})

    def test_missing_field_validation_error(self):
        class InputSerializer(serializers.Serializer):
            index = serializers.IntegerField()

        serializer = InputSerializer(data={})
        with self.assertRaises(serializers.ValidationError) as context:
            serializer.is_valid(raise_exception=True)

        response = custom_exception_handler(context.exception, {})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'missing_required_field')
        self.assertIn('index', response.data['message'])

    def test_invalid_field_validation_error(self):
        class InputSerializer(serializers.Serializer):
            index = serializers.IntegerField()

        serializer = InputSerializer(data={'index': 'abc'})
        with self.assertRaises(serializers.ValidationError) as context:
            serializer.is_valid(raise_exception=True)

        response = custom_exception_handler(context.exception, {})

        self.assertEqual(response.data['code'], 'invalid_argument')

    def test_auth_errors(self):
        response = custom_exception_handler(NotAuthenticated(), {})
        self.assertEqual(response.data['code'], 'not_authenticated')

        response = custom_exception_handler(PermissionDenied(), {})
        self.assertEqual(response.data['code'], 'permission_denied')

    def test_http404(self):
        response = custom_exception_handler(Http404(), {})

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')

    def test_unhandled_exception_is_left_to_django(self):
        self.assertIsNone(custom_exception_handler(ValueError("boom"), {}))


class PaginationTests(TestCase):
    """Test pagination classes"""

    def test_static_pagination_settings(self):
        from apps.core.pagination import StaticPagination

        pagination = StaticPagination()
        self.assertEqual(pagination.page_size, 10)
        self.assertEqual(pagination.page_size_query_param, 'page_size')
        self.assertEqual(pagination.max_page_size, 100)


class SettingsTests(TestCase):

    def test_debug_is_off_unless_configured(self):
        from config.settings import base

        with mock.patch.dict(os.environ):
            os.environ.pop('DEBUG', None)
            self.assertIs(base.env('DEBUG'), False)

        with mock.patch.dict(os.environ, {'DEBUG': 'true'}):
            self.assertIs(base.env('DEBUG'), True)
