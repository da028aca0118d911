# apps/core/exceptions.py
from rest_framework.views import exception_handler
from rest_framework import status
from rest_framework.exceptions import APIException


class DomainError(APIException):
    """
    Base class for business errors raised by the service layer.
    Every subclass carries a stable code so callers can tell the kinds apart.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Operação inválida'
    default_code = 'domain_error'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(detail={'message': self.message}, code=self.default_code)

    def __str__(self):
        return str(self.message)


class NotFoundError(DomainError):
    """Raised when a client, plan or payment method id does not exist"""
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Registro não encontrado'
    default_code = 'not_found'


class InvalidReferenceError(DomainError):
    """Raised when a referenced plan or payment method is inactive or malformed"""
    default_message = 'Referência inválida'
    default_code = 'invalid_reference'


class InvalidArgumentError(DomainError):
    """Raised for malformed dates, non-positive amounts and out-of-range periods"""
    default_message = 'Argumento inválido'
    default_code = 'invalid_argument'


class OutOfRangeError(DomainError):
    """Raised when a payment index does not address an entry of the ledger"""
    default_message = 'Índice de pagamento fora dos limites.'
    default_code = 'out_of_range'


class InvalidStateError(DomainError):
    """Raised when a lifecycle transition is not allowed from the current state"""
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Transição de estado inválida'
    default_code = 'invalid_state'


class MissingRequiredFieldError(DomainError):
    """Raised when a required input is absent"""
    default_message = 'Campo obrigatório ausente'
    default_code = 'missing_required_field'


class ConcurrentModificationError(DomainError):
    """Raised when a ledger entry changed between the caller's read and its write"""
    status_code = status.HTTP_409_CONFLICT
    default_message = 'O histórico de pagamentos foi alterado. Recarregue e tente novamente.'
    default_code = 'concurrent_modification'


def custom_exception_handler(exc, context):
    """Custom exception handler to return all errors in {message, code} format"""
    response = exception_handler(exc, context)

    if response is None:
        return response

    if isinstance(exc, DomainError):
        response.data = {'message': exc.message, 'code': exc.default_code}
        return response

    code = getattr(exc, 'default_code', 'error')

    if response.status_code == status.HTTP_400_BAD_REQUEST:
        message = "Dados inválidos"

        if isinstance(response.data, dict) and response.data:
            if 'message' in response.data:
                message = _first_text(response.data['message'])
            else:
                # Get first error from any field and translate it
                field, first_error = next(iter(response.data.items()))
                error_text = _first_text(first_error)
                error_code = getattr(_first_detail(first_error), 'code', None)

                if error_code == 'required':
                    message = f"Campo obrigatório ausente: {field}"
                    code = 'missing_required_field'
                elif error_code in ('blank', 'null'):
                    message = f"Campo não pode ser vazio: {field}"
                    code = 'missing_required_field'
                else:
                    message = f"{field}: {error_text}"
                    code = 'invalid_argument'
        elif isinstance(response.data, list) and response.data:
            message = _first_text(response.data)

        response.data = {'message': message, 'code': code}

    elif response.status_code == status.HTTP_401_UNAUTHORIZED:
        response.data = {'message': "Não autenticado", 'code': 'not_authenticated'}
    elif response.status_code == status.HTTP_403_FORBIDDEN:
        response.data = {'message': "Acesso negado", 'code': 'permission_denied'}
    elif response.status_code == status.HTTP_404_NOT_FOUND:
        response.data = {'message': "Não encontrado", 'code': 'not_found'}
    elif response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        response.data = {'message': "Método não permitido", 'code': 'method_not_allowed'}

    return response


def _first_text(value):
    return str(_first_detail(value))


def _first_detail(value):
    while isinstance(value, (list, tuple)) and value:
        value = value[0]
    if isinstance(value, dict) and value:
        return _first_detail(next(iter(value.values())))
    return value
