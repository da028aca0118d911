# apps/clients/views.py
from django_filters import rest_framework as filters
from rest_framework import filters as drf_filters
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.core.mixins import AdminWritePermissionMixin
from apps.core.pagination import StaticPagination
from .models import Client
from .serializers import (
    ClientSerializer,
    ClientWriteSerializer,
    DueDateSerializer,
    ObservationsSerializer,
    PaymentDeleteSerializer,
    PaymentEditSerializer,
    PaymentSerializer,
    VisualPaymentStatusSerializer,
)
from .services import ClientService
from .store import DjangoClientStore


class ClientFilter(filters.FilterSet):
    """Structured filters; free-text search goes through ?search="""
    plan = filters.NumberFilter(field_name='plan_id')
    payment_method = filters.NumberFilter(field_name='payment_method_id')

    class Meta:
        model = Client
        fields = ['plan', 'payment_method', 'visual_payment_confirmed']


class ClientViewSet(AdminWritePermissionMixin,
                    mixins.ListModelMixin,
                    viewsets.GenericViewSet):
    """
    Clients and their payment ledger.

    Listing shows clients whose effective state is ACTIVE; /expired/ shows the
    rest. Every write goes through ClientService.
    """
    serializer_class = ClientSerializer
    filter_backends = [filters.DjangoFilterBackend, drf_filters.OrderingFilter]
    filterset_class = ClientFilter
    pagination_class = StaticPagination
    ordering_fields = ['full_name', 'due_date', 'gross_amount', 'created_at']
    ordering = ['-created_at']

    def get_service(self):
        return ClientService(DjangoClientStore())

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Client.objects.none()
        service = self.get_service()
        is_active = self.action != 'expired'
        return service.list_clients(
            is_active=is_active,
            search=self.request.query_params.get('search', '')
        )

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['today'] = self.get_service().today()
        return context

    def _input(self, serializer_class, partial=False):
        serializer = serializer_class(data=self.request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    def _client_response(self, client, status_code=status.HTTP_200_OK):
        serializer = ClientSerializer(client, context=self.get_serializer_context())
        return Response(serializer.data, status=status_code)

    def retrieve(self, request, pk=None):
        client = self.get_service().get_client(pk)
        return self._client_response(client)

    def create(self, request):
        data = self._input(ClientWriteSerializer)
        client = self.get_service().create_client(data)
        return self._client_response(client, status.HTTP_201_CREATED)

    def update(self, request, pk=None):
        data = self._input(ClientWriteSerializer, partial=True)
        client = self.get_service().update_client(pk, data)
        return self._client_response(client)

    def partial_update(self, request, pk=None):
        return self.update(request, pk)

    def destroy(self, request, pk=None):
        self.get_service().delete_client(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['get'])
    def expired(self, request):
        """Clients whose effective state is EXPIRED"""
        return self.list(request)

    @action(detail=True, methods=['put', 'post'])
    def renew(self, request, pk=None):
        data = self._input(DueDateSerializer)
        client = self.get_service().renew(pk, data.get('due_date'))
        return self._client_response(client)

    @action(detail=True, methods=['put', 'post'])
    def reactivate(self, request, pk=None):
        data = self._input(DueDateSerializer)
        client = self.get_service().reactivate(pk, data.get('due_date'))
        return self._client_response(client)

    @action(detail=True, methods=['put'])
    def observations(self, request, pk=None):
        data = self._input(ObservationsSerializer)
        client = self.get_service().update_observations(pk, data.get('observations'))
        return self._client_response(client)

    @action(detail=True, methods=['put'], url_path='visual-payment-status')
    def visual_payment_status(self, request, pk=None):
        data = self._input(VisualPaymentStatusSerializer)
        client = self.get_service().set_visual_payment_status(pk, data['status'])
        return self._client_response(client)

    @action(detail=True, methods=['post'])
    def payments(self, request, pk=None):
        """Append a payment to the end of the ledger"""
        data = self._input(PaymentSerializer)
        client = self.get_service().append_payment(pk, data)
        return self._client_response(client, status.HTTP_201_CREATED)

    @action(detail=True, methods=['put'], url_path='payments/edit')
    def edit_payment(self, request, pk=None):
        """
        Replace the payment at `index`. Pass `entry_id` (from the last read)
        to have the call refused if the ledger changed in between.
        """
        data = self._input(PaymentEditSerializer)
        client = self.get_service().edit_payment(
            pk, data['index'], data, entry_id=data.get('entry_id')
        )
        return self._client_response(client)

    @action(detail=True, methods=['post', 'delete'], url_path='payments/delete')
    def delete_payment(self, request, pk=None):
        data = self._input(PaymentDeleteSerializer)
        client = self.get_service().delete_payment(
            pk, data['index'], entry_id=data.get('entry_id')
        )
        return self._client_response(client)
