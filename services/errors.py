"""
Domain errors raised by the services layer.
Routers map each family to an HTTP status.
"""


class PostMasterError(Exception):
    """Base class for every domain error"""

    status_code = 400
    error_code = "error"

    def __init__(self, message: str = ""):
        # The class docstring doubles as the default user-facing message
        self.message = message or (self.__doc__ or "").strip()
        super().__init__(self.message)


# Credential errors: shown inline, no state change

class CredentialError(PostMasterError):
    """Invalid credentials"""
    status_code = 401
    error_code = "invalid_credentials"


class InvalidCredentialsError(CredentialError):
    """Credenciais inválidas."""


# Authorization errors

class AuthorizationError(PostMasterError):
    """Not allowed"""
    status_code = 403
    error_code = "forbidden"


class BlockedAccountError(AuthorizationError):
    """Sua conta foi bloqueada. Contate o suporte."""
    error_code = "account_blocked"


class AccessDeniedError(AuthorizationError):
    """Acesso negado."""
    error_code = "access_denied"


class AccessExpiredError(AuthorizationError):
    """O seu período de teste terminou. Escolha um plano para continuar."""
    error_code = "access_expired"


class NotAuthenticatedError(PostMasterError):
    """Sessão não iniciada."""
    status_code = 401
    error_code = "not_authenticated"


# Integrity errors: fatal to the session

class IntegrityError(PostMasterError):
    """A conta foi removida."""
    status_code = 401
    error_code = "account_removed"


# Validation errors

class ValidationError(PostMasterError):
    """Invalid request"""
    error_code = "validation_error"


class MissingFieldsError(ValidationError):
    """Preencha todos os campos."""
    error_code = "missing_fields"


class DuplicateEmailError(ValidationError):
    """E-mail já cadastrado."""
    error_code = "duplicate_email"


class AdminAlreadyExistsError(AuthorizationError):
    """Já existe um administrador."""
    error_code = "admin_exists"


class NotFoundError(PostMasterError):
    """Not found"""
    status_code = 404
    error_code = "not_found"


class UserNotFoundError(NotFoundError):
    """Usuário não encontrado."""
    error_code = "user_not_found"


class PostNotFoundError(NotFoundError):
    """Publicação não encontrada."""
    error_code = "post_not_found"
