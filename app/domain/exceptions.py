from __future__ import annotations


class DomainError(Exception):
    """Base para erros de dominio."""

    code = "domain_error"


class InvalidCredentialsError(DomainError):
    """Email desconhecido, senha incorreta ou conta sem senha."""

    code = "invalid_credentials"


class EmailAlreadyExistsError(DomainError):
    """Email ja cadastrado."""

    code = "email_already_exists"


class InvalidRefreshTokenError(DomainError):
    """Refresh token invalido, expirado, revogado ou de usuario inexistente."""

    code = "invalid_refresh_token"


class UnsupportedProviderError(DomainError):
    """Provedor OAuth nao registrado."""

    code = "unsupported_provider"


class IdentityExtractionFailedError(DomainError):
    """Perfil do provedor OAuth sem dados suficientes para montar a identidade."""

    code = "identity_extraction_failed"


class UserNotFoundError(DomainError):
    """Usuario autenticado nao existe mais."""

    code = "user_not_found"


class InvalidTokenError(DomainError):
    """Token com assinatura ou formato invalido."""

    code = "invalid_token"


class ExpiredTokenError(InvalidTokenError):
    """Token com assinatura valida, mas expirado."""

    code = "expired_token"


class OAuthProviderError(RuntimeError):
    """Falha de comunicacao com o provedor OAuth."""
