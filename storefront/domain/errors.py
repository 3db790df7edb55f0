# storefront/domain/errors.py


class NotFoundError(LookupError):
    """Brak koszyka / pozycji / produktu (404, w odroznieniu od PermissionError -> 403)."""


class UpstreamError(RuntimeError):
    """Zewnetrzne API (POS, klasyfikator) nie odpowiedzialo poprawnie po retry."""


class RateLimitedError(UpstreamError):
    """Dostawca odpowiedzial 429."""


class ConfigurationError(RuntimeError):
    """Brak wymaganej konfiguracji (np. tokenu), zglaszany przy starcie joba."""
