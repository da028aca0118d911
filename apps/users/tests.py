# apps/users/tests.py
"""
Users app tests - Testing user model roles and the authenticated profile endpoint
"""
from django.test import TestCase
from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase, APIClient
from rest_framework import status

User = get_user_model()


class UserModelTests(TestCase):
    """Test CustomUser model"""

    def test_create_user(self):
        """Test creating a regular user"""
        user = User.objects.create_user(
            username='testuser',
            email='test@example.com',
            password='testpass123'
        )

        self.assertEqual(user.username, 'testuser')
        self.assertTrue(user.check_password('testpass123'))
        self.assertFalse(user.is_staff)
        self.assertEqual(user.role, User.ROLE_ADMIN)

    def test_create_superuser(self):
        """Test creating a superuser"""
        user = User.objects.create_superuser(
            username='admin',
            email='admin@example.com',
            password='adminpass123'
        )

        self.assertTrue(user.is_superuser)
        self.assertTrue(user.is_admin())

    def test_user_role_methods(self):
        """Test user role checking methods"""
        admin = User.objects.create_user(username='admin', password='pass', role=User.ROLE_ADMIN)
        assistant = User.objects.create_user(username='assistant', password='pass', role=User.ROLE_ASSISTANT)
        client_login = User.objects.create_user(username='cliente', password='pass', role=User.ROLE_CLIENT)

        self.assertTrue(admin.is_admin())
        self.assertFalse(admin.is_client())

        self.assertFalse(assistant.is_admin())
        self.assertTrue(assistant.is_assistant())

        self.assertFalse(client_login.is_admin())
        self.assertTrue(client_login.is_client())


class CurrentUserEndpointTests(APITestCase):
    """Test the djoser profile endpoint with the custom serializer"""

    def setUp(self):
        self.client = APIClient()
        self.assistant = User.objects.create_user(
            username='assistant',
            password='pass123',
            role=User.ROLE_ASSISTANT
        )

    def test_me_returns_role(self):
        self.client.force_authenticate(user=self.assistant)
        response = self.client.get('/api/auth/users/me/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'assistant')
        self.assertEqual(response.data['role'], User.ROLE_ASSISTANT)

    def test_me_requires_authentication(self):
        response = self.client.get('/api/auth/users/me/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['code'], 'not_authenticated')
