from django.contrib.auth.models import AbstractUser
from django.db import models


class CustomUser(AbstractUser):
    ROLE_ADMIN = 'ADMIN'
    ROLE_ASSISTANT = 'ASSISTANT'
    ROLE_CLIENT = 'CLIENT'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_ASSISTANT, 'Assistant'),
        (ROLE_CLIENT, 'Client'),
    ]

    phone_number = models.CharField(max_length=30, blank=True, null=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_ADMIN)

    def is_admin(self):
        return self.role == self.ROLE_ADMIN or self.is_superuser

    def is_assistant(self):
        return self.role == self.ROLE_ASSISTANT

    def is_client(self):
        return self.role == self.ROLE_CLIENT
